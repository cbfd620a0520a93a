import io
import threading
from collections import deque
from urllib.parse import urlsplit

import pytest
import requests
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict

from nxapi.clients.nxos import Client
from nxapi.config.config import ClientConfig

TEST_URL = "https://10.0.0.1"


class _FailingRaw:
    """Response body stream that fails on read."""

    def read(self, *args, **kwargs):
        raise requests.exceptions.ChunkedEncodingError("fail")

    def close(self):
        pass


class FakeAdapter(BaseAdapter):
    """Serves queued replies in order and records every request it receives.

    A reply is one of:
      - (status, body) tuple
      - an exception instance, raised from send()
      - ("unreadable", status): a response whose body cannot be read
    A reply may be registered for one path with ``route``; routed replies take
    precedence over the queue.
    """

    def __init__(self):
        super().__init__()
        self.replies = deque()
        self.routes = {}
        self.requests = []
        self._lock = threading.Lock()

    def reply(self, status=200, body=""):
        self.replies.append((status, body))
        return self

    def fail(self, exc=None):
        self.replies.append(exc or requests.exceptions.ConnectionError("fail"))
        return self

    def unreadable(self, status=200):
        self.replies.append(("unreadable", status))
        return self

    def route(self, path, status=200, body=""):
        self.routes[path] = (status, body)
        return self

    def paths(self):
        return [urlsplit(r.url).path for r in self.requests]

    def send(self, request, **kwargs):
        with self._lock:
            self.requests.append(request)
            path = urlsplit(request.url).path
            if path in self.routes:
                reply = self.routes[path]
            elif self.replies:
                reply = self.replies.popleft()
            else:
                reply = (200, "")

        if isinstance(reply, Exception):
            raise reply

        resp = requests.Response()
        resp.request = request
        resp.url = request.url
        resp.headers = CaseInsensitiveDict({"Content-Type": "application/json"})
        resp.encoding = "utf-8"
        if reply[0] == "unreadable":
            resp.status_code = reply[1]
            resp.raw = _FailingRaw()
        else:
            status, body = reply
            resp.status_code = status
            resp.raw = io.BytesIO(str(body).encode("utf-8"))
        return resp

    def close(self):
        pass


class SleepRecorder:
    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def adapter():
    return FakeAdapter()


@pytest.fixture
def sleeps():
    return SleepRecorder()


@pytest.fixture
def make_client(adapter, sleeps):
    """Build a Client whose session is served by ``adapter``.

    The token is pre-set so requests do not trigger a login unless a test
    clears it.
    """

    def _make(token="token", **config):
        config.setdefault("max_retries", 0)
        client = Client(TEST_URL, "usr", "pwd", config=ClientConfig(**config), sleep=sleeps)
        client.session.mount("https://", adapter)
        client.auth.token = token
        client.auth.last_refresh = client.auth.clock()
        return client

    return _make


@pytest.fixture
def client(make_client):
    return make_client()
