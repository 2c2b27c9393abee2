"""Client for the IVR sandbox functions that place and grade test calls."""
import asyncio
import logging
import re
import time
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple
from urllib.parse import urlencode

import httpx

from ..exceptions import CallInitiationError, MenuNavigationError, ResultCheckError
from ..models.schemas import CallResult, IvrTestConfig
from ..utils.config import TwilioConfig
from ..utils.signing import build_request_headers, generate_signature

logger = logging.getLogger(__name__)

_SUCCESS_CODES = (200, 202)
_CALL_INITIATED_RE = re.compile(r"Call initiated:\s*([A-Za-z0-9]+)")
_CALL_SID_XML_RE = re.compile(r"<CallSid>([^<]+)</CallSid>")


def generate_unique_identifier() -> int:
    """Millisecond timestamp used to correlate a call with its sandbox record."""
    return int(time.time() * 1000)


def build_query_params(params: Optional[Mapping[str, Any]]) -> str:
    """Render params as a query-string suffix starting with '&'."""
    if not params:
        return ""
    return "&" + urlencode({key: str(value) for key, value in params.items()})


def extract_call_sid(body: Any) -> Optional[str]:
    """Pull the call SID out of a start-call response body."""
    if isinstance(body, dict):
        sid = body.get("callSid") or body.get("sid")
        return str(sid) if sid else None
    if not isinstance(body, str):
        return None

    match = _CALL_INITIATED_RE.search(body) or _CALL_SID_XML_RE.search(body)
    return match.group(1).strip() if match else None


def raise_for_result(result: CallResult) -> CallResult:
    """Fail on the sandbox's menu-navigation failure sentinel."""
    if result.navigation_failed:
        raise MenuNavigationError(result.outcome)
    return result


class IvrClient:
    """Places signed calls through the sandbox and reads their results."""

    def __init__(self, config: TwilioConfig, http_client: Optional[httpx.AsyncClient] = None):
        if not config.auth_token:
            raise ValueError("Twilio auth token (TWILIO_AUTH_TOKEN) is required")
        self.config = config
        self.client = http_client or httpx.AsyncClient(timeout=config.request_timeout)
        self._owns_client = http_client is None

    async def close(self):
        """Close HTTP client."""
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "IvrClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    def build_call_urls(self, ivr_config: IvrTestConfig, unique_identifier: int) -> Tuple[str, str]:
        """Start and check URLs for one call, before params are appended."""
        start_url = f"{ivr_config.base_url}/{ivr_config.start_path}?uniqueIdentifier={unique_identifier}"
        check_url = f"{ivr_config.base_url}/{ivr_config.check_path}?uniqueIdentifier={unique_identifier}"
        return start_url, check_url

    def signed_request(self, url: str, params: Optional[Mapping[str, Any]] = None) -> Tuple[str, Dict[str, str]]:
        """Sign ``url`` with ``params`` and return the final URL and headers.

        The signature covers the URL as given plus the params map; the params
        are appended to the query string afterwards.
        """
        signature = generate_signature(url, params, self.config.auth_token)
        headers = build_request_headers(signature, self.config.auth_token)
        return url + build_query_params(params), headers

    async def _post(self, url: str, params: Optional[Mapping[str, Any]]) -> httpx.Response:
        request_url, headers = self.signed_request(url, params)
        return await self.client.post(request_url, headers=headers)

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            return response.json()
        return response.text.strip()

    async def initiate_call(self, start_url: str, params: Optional[Mapping[str, Any]] = None) -> str:
        """Start an IVR call and return its call SID.

        No retries here: any transport or HTTP failure is fatal for the
        scenario.
        """
        logger.info(f"Initiating IVR call: {start_url}")
        try:
            response = await self._post(start_url, params)
        except httpx.HTTPError as e:
            raise CallInitiationError(f"Request error: {e}") from e

        if response.status_code not in _SUCCESS_CODES:
            raise CallInitiationError(
                f"Request failed with status {response.status_code}: {response.text}",
                status_code=response.status_code,
                response_body=response.text
            )

        try:
            body = self._decode(response)
        except ValueError as e:
            raise CallInitiationError(
                f"Error parsing JSON response: {response.text}",
                status_code=response.status_code,
                response_body=response.text
            ) from e

        call_sid = extract_call_sid(body)
        if not call_sid:
            raise CallInitiationError(
                "Response received, but no Call SID found",
                status_code=response.status_code,
                response_body=response.text
            )

        logger.info(f"IVR call initiated, call SID: {call_sid}")
        return call_sid

    async def check_call_results(self, check_url: str, params: Optional[Mapping[str, Any]] = None) -> CallResult:
        """Read the sandbox's verdict for a call."""
        logger.info(f"Checking call results: {check_url}")
        try:
            response = await self._post(check_url, params)
        except httpx.HTTPError as e:
            raise ResultCheckError(f"Request error: {e}") from e

        if response.status_code not in _SUCCESS_CODES:
            raise ResultCheckError(
                f"Request failed with status {response.status_code}: {response.text}",
                status_code=response.status_code,
                response_body=response.text
            )

        try:
            outcome = self._decode(response)
        except ValueError as e:
            raise ResultCheckError(
                f"Error parsing JSON response: {response.text}",
                status_code=response.status_code,
                response_body=response.text
            ) from e

        logger.info(f"Call results: {outcome}")
        return CallResult(outcome=outcome)

    async def fetch_call_results(
        self,
        check_url: str,
        params: Optional[Mapping[str, Any]] = None,
        pending_wait: float = 15.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    ) -> CallResult:
        """Check results, asking exactly once more if transcription is still pending."""
        result = await self.check_call_results(check_url, params)
        if result.pending:
            logger.info(f"Transcription still pending, checking again in {pending_wait}s")
            await sleep(pending_wait)
            result = await self.check_call_results(check_url, params)
        return result
