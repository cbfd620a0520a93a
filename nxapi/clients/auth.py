"""NX-API session authentication.

This module handles the token lifecycle for the NX-API REST interface:
- Login with username/password via aaaLogin
- Token refresh via aaaRefresh once the token is older than the refresh interval
- Serialization of both behind a single lock shared by all callers
"""

import json
import logging
import threading
import time
from typing import Callable, Optional

import requests

from ..config.config import DEFAULT_REFRESH_INTERVAL
from ..core.backoff import next_delay
from .errors import AuthError, HttpError, NxapiError

logger = logging.getLogger(__name__)


class AuthSession:
    """Holds the session token of one client and decides when to renew it.

    Token state (``token`` and ``last_refresh``) is only mutated while
    ``authenticate`` holds the lock, or by ``login``/``refresh`` called from
    it. Callers that invoke ``login`` or ``refresh`` directly manage the token
    lifecycle themselves.

    Attributes:
        client: The owning ``Client``, used to build and send requests.
        username: The device username.
        password: The device password.
        refresh_interval: Token age in seconds after which it is refreshed.
    """

    LOGIN_PATH = "/api/aaaLogin"
    REFRESH_PATH = "/api/aaaRefresh"

    def __init__(
        self,
        client,
        username: str,
        password: str,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.username = username
        self.password = password
        self.refresh_interval = refresh_interval
        self.clock = clock

        self.token: str = ""
        self.last_refresh: Optional[float] = None
        self._lock = threading.Lock()

    def _needs_refresh(self) -> bool:
        if self.last_refresh is None:
            return True
        return self.clock() - self.last_refresh > self.refresh_interval

    def _store(self, token: str, endpoint: str) -> None:
        if not token:
            logger.warning("No token returned by %s", endpoint)
        self.token = token
        self.last_refresh = self.clock()

    def login(self, retry: bool = True) -> None:
        """Authenticate with username and password.

        The request bypasses the refresh check and payload logging so the
        credentials never reach the logs. With ``retry`` False a single
        attempt is made.

        Raises:
            AuthError: If the request fails or the device returns an error.
        """
        payload = {"aaaUser": {"attributes": {"name": self.username, "pwd": self.password}}}
        req = self.client.new_request(
            "POST",
            self.LOGIN_PATH,
            json.dumps(payload, separators=(",", ":")),
            refresh=False,
            log_payload=False,
        )
        try:
            res = self.client.do(req, retry=retry)
        except (NxapiError, requests.RequestException) as e:
            logger.error("Login to %s failed: %s", self.client.url, e)
            raise AuthError(f"Login failed: {e}", status_code=getattr(e, "status", None)) from e

        self._store(res.get("imdata.0.aaaLogin.attributes.token").text, "aaaLogin")
        logger.info("Logged in to %s as %s", self.client.url, self.username)

    def refresh(self, retry: bool = True) -> None:
        """Renew the current token using the existing session cookie.

        With ``retry`` False a single attempt is made.

        Raises:
            AuthError: If the request fails or the device returns an error.
        """
        req = self.client.new_request("GET", self.REFRESH_PATH, refresh=False, log_payload=False)
        try:
            res = self.client.do(req, retry=retry)
        except (NxapiError, requests.RequestException) as e:
            logger.error("Token refresh on %s failed: %s", self.client.url, e)
            raise AuthError(f"Token refresh failed: {e}", status_code=getattr(e, "status", None)) from e

        self._store(res.get("imdata.0.aaaRefresh.attributes.token").text, "aaaRefresh")
        logger.info("Refreshed token on %s", self.client.url)

    def _renew_locked(self) -> None:
        """Single login or refresh attempt, when one is needed. Caller holds the lock."""
        if not self.token:
            logger.debug("No token held, logging in")
            self.login(retry=False)
        elif self._needs_refresh():
            logger.debug("Token older than %ss, refreshing", self.refresh_interval)
            self.refresh(retry=False)
        else:
            logger.debug("Using cached token")

    def authenticate(self) -> None:
        """Log in if no token is held, or refresh it once it is too old.

        Only one thread performs a login or refresh attempt at a time; the
        others block on the lock and then find a fresh token. Transient
        failures are retried with backoff, sleeping with the lock released,
        and the token state is checked again after reacquiring it.

        Raises:
            AuthError: If the login or refresh fails.
        """
        attempt = 0
        while True:
            with self._lock:
                try:
                    self._renew_locked()
                    return
                except AuthError as e:
                    if not isinstance(e.__cause__, (requests.RequestException, HttpError)):
                        raise
                    error = e

            delay, allowed = next_delay(attempt, self.client.config, self.client._rand)
            if not allowed:
                raise error
            logger.warning("Authentication failed: %s, retries: %d, sleeping %.1fs", error, attempt, delay)
            self.client._sleep(delay)
            attempt += 1
