"""Remote AutoMatch service REST client."""
import logging
import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential
from typing import Any, Dict, Optional
from automatch.config import settings

logger = logging.getLogger(__name__)


class BackendError(Exception):
    """AutoMatch service call failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class BackendUnavailable(BackendError):
    """Service unreachable or not configured; callers fall back to local scoring."""


class BackendAuthError(BackendError):
    """Service rejected the token (401/403); callers fall back to local scoring."""


class AutoMatchBackendClient:
    """Client for the separate AutoMatch service that runs heavier matches."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        access_token: Optional[str] = None,
        timeout: Optional[float] = None
    ):
        """
        Initialize AutoMatch service client.

        Args:
            base_url: Service base URL (uses settings if not provided)
            access_token: Bearer token forwarded to the service (uses settings if not provided)
            timeout: Request timeout in seconds (uses settings if not provided)
        """
        self.base_url = (base_url or settings.api_base).rstrip("/")
        self.access_token = access_token or settings.api_token
        self.timeout = timeout or settings.api_timeout

        if not self.base_url:
            raise BackendUnavailable("AutoMatch service not configured. Set AUTOMATCH_API_BASE")

    @property
    def headers(self) -> Dict[str, str]:
        """Get request headers with bearer token if configured."""
        headers = {"Content-Type": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    @retry(
        retry=retry_if_exception_type(requests.ConnectionError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        reraise=True
    )
    def _send(self, method: str, url: str, data: Optional[Dict]) -> requests.Response:
        return requests.request(method, url, headers=self.headers, json=data, timeout=self.timeout)

    def _request(
        self,
        method: str,
        endpoint: str,
        data: Optional[Dict] = None
    ) -> Any:
        """
        Make API request; connection errors are retried with backoff.

        Args:
            method: HTTP method (GET, POST)
            endpoint: API endpoint (without base URL)
            data: Request body data

        Returns:
            Response payload with the {success, data} envelope removed
        """
        url = f"{self.base_url}/{endpoint}"

        try:
            response = self._send(method, url, data)
        except (requests.ConnectionError, requests.Timeout) as e:
            logger.warning(f"AutoMatch service unreachable at {url}: {e}")
            raise BackendUnavailable(f"AutoMatch service unreachable: {e}")

        if response.status_code in (401, 403):
            raise BackendAuthError(f"AutoMatch service rejected credentials ({response.status_code})",
                                   response.status_code)

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if not response.ok:
            message = payload.get("error") if isinstance(payload, dict) else None
            logger.error(f"AutoMatch service request failed: {response.status_code} {message or ''}")
            raise BackendError(message or f"AutoMatch request failed ({response.status_code})",
                               response.status_code)

        if isinstance(payload, dict) and "data" in payload:
            return payload["data"]
        return payload

    def run_automatch(
        self,
        deal_id: str,
        min_score: Optional[int] = None,
        max_results: Optional[int] = None,
        notify_matches: bool = False
    ) -> Dict:
        """Run AutoMatch for a deal on the service and save its matches."""
        body = {"minScore": min_score, "maxResults": max_results, "notifyMatches": notify_matches}
        return self._request("POST", f"automatch/run/{deal_id}", body)

    def get_matches(self, deal_id: str) -> Dict:
        """Fetch saved matches for a deal."""
        return self._request("GET", f"automatch/matches/{deal_id}")
