"""Prediction orchestration: validate, persist, predict, enhance."""

import logging
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Mapping, Optional

from opentelemetry import trace

from potability.client import PredictionClient
from potability.config import BlendPolicy
from potability.enhancer import ResultEnhancer
from potability.models import PredictionResponse, WaterQualityInput
from potability.storage import LastInputCache
from potability.validation import (
    RawValue,
    ValidationResult,
    all_passed,
    build_input,
    collect_errors,
    collect_warnings,
    is_fully_compliant,
    validate_form,
)

logger = logging.getLogger(__name__)

VALIDATION_FAILED_MESSAGE = "Please correct the highlighted fields and try again."
BUSY_MESSAGE = "A prediction is already in progress. Please wait for it to finish."
UNEXPECTED_MESSAGE = (
    "Unable to complete analysis. Please check your connection and try again."
)


class PredictionState(Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    LOCAL_VERDICT = "local_verdict"
    REMOTE_CALL = "remote_call"
    ENHANCING = "enhancing"
    COMPLETE = "complete"
    ERROR = "error"


class PredictionOrchestrator:
    """Coordinates a single prediction attempt at a time.

    A ``predict()`` issued while another is still running is rejected with a
    failure response; the held ``current_response`` is left untouched.
    """

    def __init__(
        self,
        client: PredictionClient,
        cache: Optional[LastInputCache] = None,
        enhancer: Optional[ResultEnhancer] = None,
        policy: Optional[BlendPolicy] = None,
    ):
        self.client = client
        self.cache = cache
        self.enhancer = enhancer or ResultEnhancer(client, policy)
        self.tracer = trace.get_tracer(__name__)

        self.state = PredictionState.IDLE
        self.current_response: Optional[PredictionResponse] = None
        self.field_results: Dict[str, ValidationResult] = {}
        self.last_input: Optional[WaterQualityInput] = None
        self.api_connected: bool = False
        self._busy = False

    @property
    def is_loading(self) -> bool:
        return self._busy

    @property
    def warnings(self) -> List[str]:
        return collect_warnings(self.field_results)

    @property
    def errors(self) -> List[str]:
        return collect_errors(self.field_results)

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    def load_last_input(self) -> Optional[WaterQualityInput]:
        """Restore the last validated input from the cache, if any."""
        if self.cache is not None:
            self.last_input = self.cache.load()
        return self.last_input

    def form_values(self) -> Dict[str, str]:
        """Raw text values to pre-populate the input form with."""
        if self.last_input is None:
            return {}
        return {
            name: format(Decimal(repr(value)), "f")
            for name, value in self.last_input.values().items()
        }

    async def check_connectivity(self) -> bool:
        self.api_connected = await self.client.check_reachable()
        return self.api_connected

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------

    def validate(self, raw_values: Mapping[str, RawValue]) -> Dict[str, ValidationResult]:
        self.field_results = validate_form(raw_values)
        return self.field_results

    async def predict(self, raw_values: Mapping[str, RawValue]) -> PredictionResponse:
        """Run one prediction for the given raw form values."""
        if self._busy:
            logger.warning("Rejected prediction request: another one is in progress")
            return PredictionResponse.failure(BUSY_MESSAGE)

        self._busy = True
        try:
            with self.tracer.start_as_current_span("potability.orchestrate") as span:
                response = await self._run(raw_values)
                span.set_attribute("potability.state", self.state.value)
        except Exception:
            logger.exception("Prediction failed with unexpected error")
            self.state = PredictionState.ERROR
            response = PredictionResponse.failure(UNEXPECTED_MESSAGE)
        finally:
            self._busy = False

        self.current_response = response
        return response

    def reset(self):
        self.state = PredictionState.IDLE
        self.current_response = None
        self.field_results = {}

    async def _run(self, raw_values: Mapping[str, RawValue]) -> PredictionResponse:
        self.state = PredictionState.VALIDATING
        results = self.validate(raw_values)
        if not all_passed(results):
            invalid = [name for name, result in results.items() if not result.is_valid]
            logger.info(
                "Form validation failed",
                extra={"potability_attributes": {"potability.invalid_fields": invalid}},
            )
            self.state = PredictionState.ERROR
            return PredictionResponse.failure(VALIDATION_FAILED_MESSAGE, collect_errors(results))

        data = build_input(results)
        self._remember(data)

        remote = None
        if is_fully_compliant(data):
            self.state = PredictionState.LOCAL_VERDICT
        else:
            self.state = PredictionState.REMOTE_CALL
            remote = await self.client.send_prediction(data)

        self.state = PredictionState.ENHANCING
        response = await self.enhancer.enhance(data, remote)

        self.state = PredictionState.COMPLETE if response.success else PredictionState.ERROR
        return response

    def _remember(self, data: WaterQualityInput):
        self.last_input = data
        if self.cache is None:
            return
        try:
            self.cache.save(data)
        except (OSError, ValueError) as e:
            logger.warning("Error saving last prediction: %s", e)
