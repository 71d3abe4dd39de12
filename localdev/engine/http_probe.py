"""HTTP probes against services exposed through the ingress"""

import logging
from typing import Optional

import requests

logger = logging.getLogger(__name__)

NO_RESPONSE = "000"


class HttpProbe:
    """Thin requests wrapper that never raises on network errors

    Status ``000`` stands for "no HTTP response at all" (DNS failure,
    connection refused, timeout), matching what curl reports.
    """

    def __init__(self, timeout: float = 10, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.session = session or requests.Session()

    def status_code(self, url: str, follow_redirects: bool = False) -> str:
        try:
            response = self.session.get(url, timeout=self.timeout, allow_redirects=follow_redirects)
        except requests.RequestException as e:
            logger.debug("GET %s failed: %s", url, e)
            return NO_RESPONSE
        return str(response.status_code)

    def text(self, url: str) -> Optional[str]:
        """Response body, or None when the request did not complete"""
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            logger.debug("GET %s failed: %s", url, e)
            return None
        return response.text
