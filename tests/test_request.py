import io

import pytest

from nxapi.clients.request import Request, merge_query, override_base
from nxapi.core.body import Body


def test_body_is_buffered():
    req = Request("post", "https://10.0.0.1/api/mo/sys.json", io.BytesIO(b'{"a":1}'))
    assert req.method == "POST"
    assert req.body == b'{"a":1}'
    # the buffered body stays available for every attempt
    assert req.body == b'{"a":1}'


def test_body_from_str_and_body():
    assert Request("PUT", "https://h/x", "{}").body == b"{}"
    assert Request("PUT", "https://h/x", Body().set("a", "b")).body == b'{"a":"b"}'
    assert Request("GET", "https://h/x").body is None


def test_merge_query_keeps_existing():
    url = merge_query("https://h/x.json?a=1", [("b", "2"), ("b", "3")])
    assert url == "https://h/x.json?a=1&b=2&b=3"
    assert merge_query("https://h/x.json", None) == "https://h/x.json"


def test_override_base():
    assert override_base("https://10.0.0.1/api/mo/sys.json?q=1", "http://other:8080/") == "http://other:8080/api/mo/sys.json?q=1"


def test_mapping_and_list_bodies_are_json():
    assert Request("POST", "https://h/x", {"a": 1}).body == b'{"a":1}'
    assert Request("POST", "https://h/x", [{"a": "b"}]).body == b'[{"a":"b"}]'


def test_unsupported_body_type():
    with pytest.raises(TypeError):
        Request("POST", "https://h/x", 42)
