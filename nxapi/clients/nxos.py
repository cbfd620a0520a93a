"""Cisco NX-OS NX-API REST client.

This module provides the Client class for interacting with the NX-API REST
interface. Requests are retried with jittered exponential backoff, and the
session token is obtained and refreshed through AuthSession.
"""

import logging
import random
import time
from typing import Callable, Optional

import requests
from tenacity import RetryCallState, Retrying, retry_if_exception_type, stop_after_attempt

from ..config.config import ClientConfig, DeviceConfig
from ..core.backoff import stop_when_backoff_exhausted, wait_jittered_backoff
from ..core.body import Body, Res
from .auth import AuthSession
from .errors import AuthError, HttpError, JsonError
from .http import HttpClient
from .request import QueryParams, Request, merge_query

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({500, 501, 502, 503, 504, 405})
ERROR_CODE_PATH = "imdata.0.error.attributes.code"
JSONRPC_PATH = "/ins"


class RetryableStatus(HttpError):
    """Internal signal for a retryable status; surfaces as HttpError once retries run out."""


class Client:
    """Client for one NX-OS device.

    A Client is safe to share between threads. Requests run concurrently;
    only token login/refresh is serialized.

    Attributes:
        url: The device base URL, e.g. ``https://10.0.0.1``.
        config: The ClientConfig tunables.
        auth: The AuthSession holding the session token.
        http: The HttpClient transport.
    """

    def __init__(
        self,
        url: str,
        username: str,
        password: str,
        config: Optional[ClientConfig] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        rand: Callable[[], float] = random.random,
    ):
        """Initialize the client.

        Args:
            url: The device base URL.
            username: The device username.
            password: The device password.
            config: Tunables; defaults apply when omitted.
            session: Optional pre-built requests.Session to send requests with.
            sleep: Function used to wait between retries.
            clock: Monotonic clock used for token age.
            rand: Source of uniform floats for backoff jitter.
        """
        self.url = url.rstrip("/")
        self.username = username
        self.password = password
        self.config = (config or ClientConfig()).validate()
        self.http = HttpClient(
            verify=not self.config.insecure,
            timeout=self.config.request_timeout,
            pool_maxsize=self.config.pool_maxsize,
            session=session,
        )
        self.auth = AuthSession(
            self,
            username,
            password,
            refresh_interval=self.config.refresh_interval,
            clock=clock,
        )
        self._sleep = sleep
        self._rand = rand

    @classmethod
    def from_config(cls, device: DeviceConfig, **kwargs) -> "Client":
        return cls(device.url, device.username, device.password, config=device.client, **kwargs)

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self.http.close()

    @property
    def session(self) -> requests.Session:
        return self.http.session

    @property
    def token(self) -> str:
        return self.auth.token

    def new_request(
        self,
        method: str,
        path: str,
        body=None,
        *,
        query: Optional[QueryParams] = None,
        refresh: bool = True,
        log_payload: bool = True,
        override_url: Optional[str] = None,
        json_suffix: bool = True,
        headers=None,
        auth=None,
    ) -> Request:
        """Build a Request for ``path`` relative to the device URL.

        ``.json`` is appended to ``path`` unless ``json_suffix`` is False.

        Example:
            req = client.new_request("GET", "/api/mo/sys/bgp")
            res = client.do(req)
        """
        url = self.url + path + (".json" if json_suffix else "")
        return Request(
            method=method,
            url=merge_query(url, query),
            body=body,
            headers=dict(headers or {}),
            auth=auth,
            refresh=refresh,
            log_payload=log_payload,
            override_url=override_url,
        )

    def _log_retry(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception()
        logger.warning(
            "Retrying after error: %s, retries: %d, sleeping %.1fs",
            exc,
            retry_state.attempt_number - 1,
            retry_state.next_action.sleep if retry_state.next_action else 0,
        )

    def _attempt(self, req: Request) -> Res:
        if req.log_payload:
            logger.debug("HTTP Request: %s, %s, %s", req.method, req.url, (req.body or b"").decode("utf-8", "replace"))
        else:
            logger.debug("HTTP Request: %s, %s", req.method, req.url)

        status, content = self.http.send(req)
        raw = content.decode("utf-8", "replace")
        if req.log_payload:
            logger.debug("HTTP Response: %s %s", status, raw)

        if status in RETRYABLE_STATUS_CODES:
            raise RetryableStatus(status, raw)
        return Res(raw, status_code=status)

    def do(self, req: Request, retry: bool = True) -> Res:
        """Send ``req``, retrying transient failures.

        Connection errors, body read errors and the statuses in
        RETRYABLE_STATUS_CODES are retried per the backoff settings. Any other
        status ends the loop immediately. With ``retry`` False a single attempt
        is made.

        Returns:
            The parsed response.

        Raises:
            requests.RequestException: If the transport keeps failing.
            HttpError: If a retryable status persists after the last retry.
            JsonError: If the response carries an imdata error code.
        """
        retryer = Retrying(
            retry=retry_if_exception_type((requests.RequestException, RetryableStatus)),
            stop=stop_when_backoff_exhausted(self.config) if retry else stop_after_attempt(1),
            wait=wait_jittered_backoff(self.config, self._rand),
            sleep=self._sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )
        try:
            res = retryer(self._attempt, req)
        except RetryableStatus as e:
            logger.error("HTTP request failed: %s %s returned %d", req.method, req.url, e.status)
            raise HttpError(e.status, e.body) from None
        except requests.RequestException as e:
            logger.error("HTTP connection error on %s %s: %s", req.method, req.url, e)
            raise

        # only a non-empty string code counts as an error
        code = res.get(ERROR_CODE_PATH).value
        if isinstance(code, str) and code:
            logger.error("JSON error: %s", res.raw)
            raise JsonError(res)
        return res

    def authenticate(self) -> None:
        """Log in or refresh the token as needed. See AuthSession.authenticate."""
        self.auth.authenticate()

    def login(self) -> None:
        self.auth.login()

    def refresh(self) -> None:
        self.auth.refresh()

    def _authenticated_do(self, req: Request) -> Res:
        # An authentication failure is logged, not raised: the request itself
        # is still sent and reports whatever the device answers.
        if req.refresh:
            try:
                self.authenticate()
            except AuthError as e:
                logger.warning("Authentication failed, sending request anyway: %s", e)
        return self.do(req)

    def get(self, path: str, **kwargs) -> Res:
        """Make a GET request and return the raw result, wrapped in imdata, e.g.

            {"totalCount": "1", "imdata": [{"bgpEntity": {"attributes": {"dn": "sys/bgp"}}}]}
        """
        return self._authenticated_do(self.new_request("GET", path, **kwargs))

    def get_class(self, class_name: str, **kwargs) -> Res:
        """GET all objects of ``class_name``; the result is the imdata list."""
        return self.get(f"/api/class/{class_name}", **kwargs).get("imdata")

    def get_dn(self, dn: str, **kwargs) -> Res:
        """GET the object at ``dn``; the result is its first imdata entry."""
        return self.get(f"/api/mo/{dn}", **kwargs).get("imdata.0")

    def delete_dn(self, dn: str, **kwargs) -> Res:
        return self._authenticated_do(self.new_request("DELETE", f"/api/mo/{dn}", **kwargs))

    def post(self, dn: str, data, **kwargs) -> Res:
        """POST ``data`` (a JSON string or Body) to ``dn``."""
        return self._authenticated_do(self.new_request("POST", f"/api/mo/{dn}", data, **kwargs))

    def put(self, dn: str, data, **kwargs) -> Res:
        """PUT ``data`` (a JSON string or Body) to ``dn``."""
        return self._authenticated_do(self.new_request("PUT", f"/api/mo/{dn}", data, **kwargs))

    def json_rpc(self, command: str, **kwargs) -> Res:
        """Run a CLI ``command`` through the JSON-RPC endpoint.

        Uses basic authentication rather than the session token.
        """
        body = (
            Body("[]")
            .set("0.jsonrpc", "2.0")
            .set("0.method", "cli")
            .set("0.params.cmd", command)
            .set_raw("0.params.version", "1")
            .set_raw("0.id", "1")
        )
        headers = {"Content-Type": "application/json-rpc", "Cache-Control": "no-cache"}
        req = self.new_request(
            "POST",
            JSONRPC_PATH,
            body,
            json_suffix=False,
            headers=headers,
            auth=(self.username, self.password),
            **kwargs,
        )
        return self.do(req)
