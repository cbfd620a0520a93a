"""Request descriptor for a single NX-API call."""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from ..core.body import Body

QueryParams = Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]


def _query_pairs(query: Optional[QueryParams]) -> List[Tuple[str, str]]:
    """Flatten query parameters into (key, value) pairs.

    Repeated keys are kept in order; list values are comma-joined, e.g.
    ``{"rsp-subtree-include": ["faults", "health"]}``.
    """
    if not query:
        return []
    items = query.items() if isinstance(query, Mapping) else query
    pairs = []
    for key, value in items:
        if isinstance(value, (list, tuple)):
            value = ",".join(str(v) for v in value)
        pairs.append((str(key), str(value)))
    return pairs


def merge_query(url: str, query: Optional[QueryParams]) -> str:
    """Merge ``query`` into the query string already present on ``url``."""
    pairs = _query_pairs(query)
    if not pairs:
        return url
    parts = urlsplit(url)
    existing = parse_qsl(parts.query, keep_blank_values=True)
    return urlunsplit(parts._replace(query=urlencode(existing + pairs)))


def override_base(url: str, base_url: str) -> str:
    """Keep the path and query of ``url`` but send it to ``base_url``."""
    parts = urlsplit(url)
    rest = parts.path
    if parts.query:
        rest += "?" + parts.query
    return base_url.rstrip("/") + rest


def _read_body(body: Any) -> Optional[bytes]:
    if body is None:
        return None
    if isinstance(body, bytes):
        return body
    if isinstance(body, str):
        return body.encode("utf-8")
    if isinstance(body, Body):
        return body.text.encode("utf-8")
    if isinstance(body, (Mapping, list, tuple)):
        return json.dumps(body, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    if hasattr(body, "read"):
        return _read_body(body.read())
    raise TypeError(f"Unsupported request body type: {type(body).__name__}")


@dataclass(frozen=True)
class Request:
    """One HTTP call: method, fully resolved URL, body and per-request flags.

    The body is buffered to bytes at construction so every retry attempt can
    send it again.

    Attributes:
        method: HTTP method in uppercase.
        url: Target URL including any query string.
        body: Request payload as bytes, or None.
        headers: Extra headers sent with this request only.
        auth: Optional (username, password) pair for basic authentication.
        refresh: Check (and if needed renew) the session token before sending.
        log_payload: Log request and response payloads at DEBUG level.
        override_url: Base URL that replaced the client's, if any.
    """

    method: str
    url: str
    body: Optional[bytes] = None
    headers: Dict[str, str] = field(default_factory=dict)
    auth: Optional[Tuple[str, str]] = None
    refresh: bool = True
    log_payload: bool = True
    override_url: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "body", _read_body(self.body))
        if self.override_url:
            object.__setattr__(self, "url", override_base(self.url, self.override_url))

