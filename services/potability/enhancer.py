"""Blend the remote verdict with local regulatory-compliance checks."""

import logging
from typing import Optional

from potability.client import PredictionClient
from potability.config import BlendPolicy, load_policy
from potability.models import ModelInfo, PredictionResponse, PredictionResult, RiskLevel, WaterQualityInput
from potability.parameters import PARAMETER_NAMES
from potability.validation import compliance_ratio, compliant_count, is_fully_compliant

logger = logging.getLogger(__name__)

LOCAL_MODEL_TYPE = "WHO Standards Validation"
STATUS_POTABLE = "POTABLE"


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class ResultEnhancer:
    """Decide the final verdict for a validated input.

    Fully compliant input gets a local high-confidence verdict without any
    remote call. Otherwise the remote result is used, and overridden toward
    potable when enough parameters meet their optimal ranges.
    """

    def __init__(self, client: PredictionClient, policy: Optional[BlendPolicy] = None):
        self.client = client
        self.policy = policy or load_policy()

    async def enhance(
        self,
        data: WaterQualityInput,
        remote: Optional[PredictionResponse] = None,
    ) -> PredictionResponse:
        if is_fully_compliant(data):
            logger.info("All values within WHO standards, using local verdict")
            return self.local_verdict()

        if remote is None:
            remote = await self.client.send_prediction(data)

        if not remote.success:
            return remote

        return self.blend(remote, compliance_ratio(data), compliant_count(data))

    def local_verdict(self) -> PredictionResponse:
        return PredictionResponse(
            success=True,
            prediction=PredictionResult(
                potability_score=self.policy.local_score,
                is_potable=True,
                confidence=self.policy.local_confidence,
                risk_level=RiskLevel.LOW,
                status=STATUS_POTABLE,
            ),
            recommendation=(
                "Water quality meets WHO standards and is safe for consumption. "
                "All measured parameters are within recommended ranges."
            ),
            warnings=[],
            model_info=ModelInfo(model_type=LOCAL_MODEL_TYPE, standardization_used=True),
        )

    def blend(
        self,
        remote: PredictionResponse,
        ratio: float,
        compliant: Optional[int] = None,
    ) -> PredictionResponse:
        """Override a successful remote response when compliance is high enough."""
        p = self.policy
        if not remote.success or ratio < p.override_threshold:
            return remote

        if compliant is None:
            compliant = round(ratio * len(PARAMETER_NAMES))

        score = _clamp(p.score_base + ratio * p.score_weight, p.score_base, 1.0)
        confidence = _clamp(p.confidence_base + ratio * p.confidence_weight, p.confidence_base, 1.0)
        risk = RiskLevel.LOW if ratio >= p.low_risk_threshold else RiskLevel.MODERATE

        logger.info(
            "Compliance ratio %.2f overrides remote verdict (score %.3f, risk %s)",
            ratio, score, risk.value,
        )
        return PredictionResponse(
            success=True,
            prediction=PredictionResult(
                potability_score=score,
                is_potable=True,
                confidence=confidence,
                risk_level=risk,
                status=STATUS_POTABLE,
            ),
            recommendation=(
                "Water quality is within acceptable standards. "
                f"{compliant} out of {len(PARAMETER_NAMES)} parameters meet WHO recommendations."
            ),
            warnings=list(remote.warnings),
            model_info=remote.model_info,
        )
