import logging
from typing import Optional, Tuple

import requests
from requests.adapters import HTTPAdapter

from ..config.config import DEFAULT_POOL_MAXSIZE, DEFAULT_REQUEST_TIMEOUT
from .request import Request

logger = logging.getLogger(__name__)


class HttpClient:
    """Thin ``requests.Session`` wrapper used as the transport for one device.

    The session keeps the device's cookie jar, so the login cookie is replayed
    on every following request (including token refresh).
    """

    def __init__(
        self,
        verify: bool = True,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        pool_maxsize: int = DEFAULT_POOL_MAXSIZE,
        session: Optional[requests.Session] = None,
    ):
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.verify = verify
        adapter = HTTPAdapter(pool_connections=1, pool_maxsize=pool_maxsize)
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)

    def send(self, req: Request) -> Tuple[int, bytes]:
        """Send ``req`` once and return its status code and full body.

        Raises:
            requests.RequestException: On connection failures or when the
                response body cannot be read.
        """
        resp = self.session.request(
            req.method,
            req.url,
            data=req.body,
            headers=req.headers or None,
            auth=req.auth,
            timeout=self.timeout,
            stream=True,
        )
        try:
            content = resp.content
        except requests.RequestException as e:
            logger.error("Cannot read response body from %s: %s", req.url, e)
            raise
        finally:
            resp.close()
        return resp.status_code, content

    def close(self) -> None:
        self.session.close()
