"""
Transport and retry engine for the coin analysis backend.

`AnalysisClient` uploads one or two prepared coin images to the backend's
/analyze endpoint and turns whatever comes back into either a validated
`CoinAnalysisResponse` or one of the typed errors in `errors`.

Per call:
    connectivity pre-check -> build multipart body -> send (1 + max_retries attempts)
    -> decode -> result | error

Transient failures (timeouts, dropped connections, corrupted transfers) and
"all fields unknown" answers are retried; server-reported errors and malformed
responses are raised immediately. An unknown-analysis answer that survives all
retries is returned as a normal response.
"""

import asyncio
import errno
import logging
import socket
from typing import Optional, Tuple

import aiohttp
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    before_sleep_log,
    retry_if_exception,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
    wait_none,
)

from ..config import BackoffPolicy, ClientConfig
from ..utils.log_utils import get_logger
from .connectivity import ConnectivityProbe, TCPConnectivityProbe, check_connectivity
from .errors import (
    AnalysisError,
    ConnectionFailed,
    DataCorruption,
    InvalidRequest,
    MalformedResponse,
    NoConnectivity,
    RequestTimeout,
    ServerError,
    TransportError,
)
from .models import AnalysisErrorResponse, AnalysisRequest, CoinAnalysisResponse
from .multipart import content_type_for, encode_multipart, new_boundary

logger = get_logger(__name__)

PREVIEW_CHARS = 500

_OFFLINE_ERRNOS = {errno.ENETUNREACH, errno.ENETDOWN}
_CORRUPTION_MARKERS = ("checksum", "udp", "offload")


def classify_transport_error(err: BaseException) -> AnalysisError:
    """Map an aiohttp/asyncio exception raised while talking to the backend to an AnalysisError."""
    if isinstance(err, AnalysisError):
        return err
    if isinstance(err, asyncio.TimeoutError):
        return RequestTimeout()
    if isinstance(err, aiohttp.InvalidURL):
        return InvalidRequest(f"Invalid URL: {err}")
    if isinstance(err, aiohttp.ClientConnectorError):
        os_error = err.os_error
        if isinstance(os_error, socket.gaierror) or os_error.errno in _OFFLINE_ERRNOS:
            return NoConnectivity()
        return ConnectionFailed()
    if isinstance(err, (aiohttp.ServerDisconnectedError, aiohttp.ClientOSError)):
        return ConnectionFailed()
    if isinstance(err, aiohttp.ClientPayloadError):
        return DataCorruption()
    if any(marker in str(err).lower() for marker in _CORRUPTION_MARKERS):
        return DataCorruption()
    return TransportError(err)


def _preview(payload: bytes) -> str:
    return payload[:PREVIEW_CHARS].decode("utf-8", errors="replace")


def _server_error_message(payload: bytes) -> Optional[str]:
    """The `error` field if the body has the backend's error shape."""
    try:
        return AnalysisErrorResponse.model_validate_json(payload).error
    except ValidationError:
        return None


def malformed_from_validation(err: ValidationError) -> MalformedResponse:
    """Describe the first problem pydantic found, keeping the offending field path."""
    first = err.errors()[0]
    path = ".".join(str(part) for part in first["loc"]) or None
    kind = first["type"]
    if path is None or kind in ("json_invalid", "json_type"):
        return MalformedResponse(MalformedResponse.CORRUPTED, path, first["msg"])
    if kind == "missing" or (kind.endswith("_type") and first.get("input") is None):
        return MalformedResponse(MalformedResponse.MISSING, path, first["msg"])
    return MalformedResponse(MalformedResponse.TYPE_MISMATCH, path, first["msg"])


def decode_analysis_response(status: int, payload: bytes) -> CoinAnalysisResponse:
    """Validate an /analyze response.

    Raises:
        ServerError: Non-200 status, or a 200 whose body has the error shape
        MalformedResponse: A 200 whose body matches neither shape
    """
    if status != 200:
        message = _server_error_message(payload)
        logger.warning("Server returned status %d: %s", status, message or _preview(payload))
        raise ServerError(message or f"Server error: {status}", status=status)

    try:
        return CoinAnalysisResponse.model_validate_json(payload)
    except ValidationError as err:
        message = _server_error_message(payload)
        if message is not None:
            logger.warning("Server returned error: %s", message)
            raise ServerError(message, status=status) from err
        logger.error("Failed to decode analysis response: %s", err)
        logger.debug("Raw response: %s", payload.decode("utf-8", errors="replace"))
        raise malformed_from_validation(err) from err


def _is_retryable(err: BaseException) -> bool:
    return isinstance(err, AnalysisError) and err.retryable


def _is_unknown_analysis(response: CoinAnalysisResponse) -> bool:
    if response.coin_analysis.is_unknown_analysis:
        logger.warning("Backend returned all unknown values, it may not have processed the image")
        return True
    return False


def _last_outcome(retry_state: RetryCallState):
    # Out of attempts: re-raise the last error, or hand back the last (unknown) result
    return retry_state.outcome.result()


class AnalysisClient:
    """Async client for the coin analysis backend.

    The client holds no per-call state; one instance (and its connection pool)
    can serve concurrent calls. Use it as an async context manager so the
    session it creates is closed.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
        probe: Optional[ConnectivityProbe] = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Endpoint, timeout and retry settings. Defaults to ClientConfig().
            session: Session to reuse. A session passed in is never closed by the client.
            probe: Connectivity check. Defaults to a TCP connect to the backend host.
        """
        self.config = config or ClientConfig()
        self.probe = probe or TCPConnectivityProbe.for_url(self.config.base_url)
        self._session = session
        self._owns_session = session is None
        self._request_timeout = aiohttp.ClientTimeout(total=self.config.request_timeout)

    async def __aenter__(self) -> "AnalysisClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            connector = aiohttp.TCPConnector(limit_per_host=self.config.connections_per_host)
            self._session = aiohttp.ClientSession(
                connector=connector,
                cookie_jar=aiohttp.DummyCookieJar(),
                timeout=self._request_timeout,
            )
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    def _retrying(self) -> AsyncRetrying:
        if self.config.backoff is BackoffPolicy.EXPONENTIAL:
            wait = wait_exponential(multiplier=self.config.backoff_multiplier, max=self.config.backoff_max)
        else:
            wait = wait_none()
        return AsyncRetrying(
            stop=stop_after_attempt(self.config.max_retries + 1),
            wait=wait,
            retry=retry_if_exception(_is_retryable) | retry_if_result(_is_unknown_analysis),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            retry_error_callback=_last_outcome,
        )

    async def _ensure_connectivity(self) -> None:
        if not await check_connectivity(self.probe, self.config.connectivity_timeout):
            logger.error("No internet connection available")
            raise NoConnectivity()

    async def analyze(self, request: AnalysisRequest) -> CoinAnalysisResponse:
        """Upload the request's images and return the validated analysis.

        Args:
            request: One image, or front and back images

        Returns:
            The decoded response. Check `coin_analysis.is_unknown_analysis`:
            an unidentified coin is not an error.

        Raises:
            AnalysisError: Any failure, see the errors module
        """
        await self._ensure_connectivity()

        boundary = new_boundary(request.parts)
        body = encode_multipart(request.parts, boundary)
        total = self.config.max_retries + 1
        label = "both sides analysis" if request.is_both_sides else "analysis"
        logger.info(
            "Uploading %d image(s) for %s (%d image bytes, %d body bytes)",
            len(request.parts), label, request.total_bytes, len(body),
        )

        attempt = 0

        async def send_once() -> CoinAnalysisResponse:
            nonlocal attempt
            attempt += 1
            logger.info("Attempt %d of %d for %s", attempt, total, label)
            return await self._post_analysis(body, boundary)

        try:
            async with asyncio.timeout(self.config.operation_timeout):
                response = await self._retrying()(send_once)
        except TimeoutError as err:
            logger.error("%s did not finish within %.1fs", label.capitalize(), self.config.operation_timeout)
            raise RequestTimeout() from err

        if not response.coin_analysis.is_unknown_analysis:
            logger.info("%s completed successfully on attempt %d", label.capitalize(), attempt)
        return response

    async def _post_analysis(self, body: bytes, boundary: str) -> CoinAnalysisResponse:
        headers = {"Content-Type": content_type_for(boundary)}
        try:
            async with self._get_session().post(
                self.config.analyze_url, data=body, headers=headers, timeout=self._request_timeout
            ) as response:
                status = response.status
                payload = await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as err:
            error = classify_transport_error(err)
            logger.warning("Request failed with %s: %s", type(err).__name__, error)
            raise error from err

        logger.debug("HTTP status %d, %d bytes", status, len(payload))
        logger.debug("Response preview: %s", _preview(payload))
        result = decode_analysis_response(status, payload)
        logger.debug(
            "Decoded response: year=%s country=%s model=%s",
            result.coin_analysis.basic_info.released_year,
            result.coin_analysis.basic_info.country,
            result.metadata.model_used,
        )
        return result

    async def _get(self, url: str, timeout: aiohttp.ClientTimeout) -> Tuple[int, bytes]:
        try:
            async with self._get_session().get(url, timeout=timeout) as response:
                return response.status, await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as err:
            error = classify_transport_error(err)
            logger.warning("GET %s failed with %s: %s", url, type(err).__name__, error)
            raise error from err

    async def check_health(self) -> bool:
        """Return True if GET /health answers 200.

        Raises:
            NoConnectivity: If the network looks offline
            ServerError: On any other status
            AnalysisError: On transport failures
        """
        logger.info("Checking backend health...")
        await self._ensure_connectivity()
        status, payload = await self._get(self.config.health_url, self._request_timeout)
        logger.debug("Health check HTTP status %d: %s", status, _preview(payload))
        if status != 200:
            raise ServerError(f"Backend health check failed with status: {status}", status=status)
        logger.info("Backend is healthy and responding")
        return True

    async def test_connection(self) -> str:
        """Check that the backend's root URL answers; 404 also counts as reachable."""
        logger.info("Testing backend connection...")
        status, _ = await self._get(
            self.config.url("/"), aiohttp.ClientTimeout(total=self.config.probe_timeout)
        )
        if status in (200, 404):
            return f"Backend server is reachable (Status: {status})"
        return f"Backend server responded with unexpected status: {status}"
