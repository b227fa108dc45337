"""HTTP client for the remote water potability prediction service."""

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx
from opentelemetry import trace

from potability.config import ClientConfig
from potability.errors import (
    CONNECTIVITY_MESSAGE,
    MALFORMED_MESSAGE,
    UNKNOWN_MESSAGE,
    ErrorType,
    PredictionServiceError,
    classify_status,
)
from potability.models import PredictionResponse, WaterQualityInput
from potability.retry import RetryPolicy, retry_async

logger = logging.getLogger(__name__)


def _is_transient(exc: Exception) -> bool:
    return isinstance(exc, PredictionServiceError) and exc.is_transient


class PredictionClient:
    """Async prediction client with per-attempt timeouts and bounded retries.

    Every outcome, including exhausted retries and unexpected errors, is
    returned as a PredictionResponse rather than raised.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        http: Optional[httpx.AsyncClient] = None,
        sleep=asyncio.sleep,
    ):
        self.config = config or ClientConfig.from_env()
        self.tracer = trace.get_tracer(__name__)
        self._http = http or httpx.AsyncClient()
        self._sleep = sleep

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self):
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    async def send_prediction(
        self,
        data: WaterQualityInput,
        max_attempts: Optional[int] = None,
    ) -> PredictionResponse:
        """POST the measurements to the prediction endpoint.

        Timeouts, transport failures, 5xx and 429 responses are retried with
        a linearly growing delay; other failures are returned immediately.
        """
        attempts_made = 0

        async def attempt(index: int) -> PredictionResponse:
            nonlocal attempts_made
            attempts_made = index + 1
            return await self._post(data, index)

        with self.tracer.start_as_current_span("potability.predict") as span:
            span.set_attribute("potability.endpoint", self.config.predict_url)

            try:
                policy = RetryPolicy(max_attempts=max_attempts or self.config.max_attempts)
                span.set_attribute("potability.max_attempts", policy.max_attempts)
                result = await retry_async(attempt, policy, _is_transient, sleep=self._sleep)
                span.set_attribute("potability.success", result.success)
                return result

            except PredictionServiceError as e:
                span.set_attribute("potability.error_type", e.error_type.value)
                logger.warning(
                    "Prediction failed after %d attempt(s): %s", attempts_made, e.message,
                    extra={"potability_attributes": {
                        "potability.attempts": attempts_made,
                        "potability.error_type": e.error_type.value,
                        "potability.status_code": e.status_code,
                    }},
                )
                return PredictionResponse.failure(e.user_message, e.details)

            except Exception:
                span.set_attribute("potability.error_type", ErrorType.UNKNOWN.value)
                logger.exception("Unexpected error calling prediction service")
                return PredictionResponse.failure(UNKNOWN_MESSAGE)

            finally:
                span.set_attribute("potability.attempts", attempts_made)

    async def check_reachable(self) -> bool:
        """Single bounded GET against the service root; never raises."""
        try:
            resp = await self._http.get(
                self.config.base_url,
                timeout=self.config.probe_timeout_ms / 1000,
            )
            return 200 <= resp.status_code < 300
        except Exception as e:
            logger.info("Connection test failed: %s", e)
            return False

    async def get_health_status(self) -> Optional[Dict[str, Any]]:
        """Fetch the service's /health document, or None if unavailable."""
        try:
            resp = await self._http.get(
                f"{self.config.base_url.rstrip('/')}/health",
                timeout=self.config.probe_timeout_ms / 1000,
            )
            if resp.status_code == 200:
                return resp.json()
        except Exception as e:
            logger.info("Health check failed: %s", e)
        return None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _post(self, data: WaterQualityInput, attempt: int) -> PredictionResponse:
        timeout = self.config.timeout_for(attempt)
        logger.info("Sending prediction request (attempt %d, timeout %.0fs)", attempt + 1, timeout)

        try:
            resp = await self._http.post(
                self.config.predict_url,
                json=data.to_wire(),
                headers={
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                    "User-Agent": self.config.user_agent,
                },
                timeout=timeout,
            )
        except httpx.TimeoutException as e:
            raise PredictionServiceError(
                ErrorType.TIMEOUT,
                f"Request to {self.config.predict_url} timed out after {timeout}s",
                CONNECTIVITY_MESSAGE,
            ) from e
        except httpx.TransportError as e:
            raise PredictionServiceError(
                ErrorType.NETWORK_UNREACHABLE,
                f"Transport error ({type(e).__name__}): {e}",
                CONNECTIVITY_MESSAGE,
            ) from e

        logger.info("Response status: %d", resp.status_code)
        if not 200 <= resp.status_code < 300:
            raise classify_status(resp.status_code, resp.text)

        try:
            return PredictionResponse.model_validate(resp.json())
        except ValueError as e:
            raise PredictionServiceError(
                ErrorType.MALFORMED_RESPONSE,
                f"Unparsable prediction document: {e}",
                MALFORMED_MESSAGE,
            ) from e
