"""Environment-driven configuration for the prediction client and policy."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict


@dataclass
class ClientConfig:
    """Remote prediction endpoint settings."""
    base_url: str = "https://water-potability-api-7qnr.onrender.com"
    predict_path: str = "/predict"
    timeout_ms: int = 15000
    timeout_step_ms: int = 5000  # added per retry for cold starts
    max_attempts: int = 2
    probe_timeout_ms: int = 10000
    user_agent: str = "WaterQualityApp/1.0.0"

    @property
    def predict_url(self) -> str:
        return f"{self.base_url.rstrip('/')}{self.predict_path}"

    def timeout_for(self, attempt: int) -> float:
        """Per-attempt timeout in seconds for a 0-based attempt index."""
        return (self.timeout_ms + attempt * self.timeout_step_ms) / 1000

    @classmethod
    def from_env(cls) -> "ClientConfig":
        return cls(
            base_url=os.getenv("POTABILITY_API_BASE_URL", cls.base_url),
            predict_path=os.getenv("POTABILITY_PREDICT_PATH", cls.predict_path),
            timeout_ms=int(os.getenv("POTABILITY_TIMEOUT_MS", str(cls.timeout_ms))),
            timeout_step_ms=int(os.getenv("POTABILITY_TIMEOUT_STEP_MS", str(cls.timeout_step_ms))),
            max_attempts=int(os.getenv("POTABILITY_MAX_ATTEMPTS", str(cls.max_attempts))),
            probe_timeout_ms=int(os.getenv("POTABILITY_PROBE_TIMEOUT_MS", str(cls.probe_timeout_ms))),
            user_agent=os.getenv("POTABILITY_USER_AGENT", cls.user_agent),
        )


@dataclass(frozen=True)
class BlendPolicy:
    """Constants for trusting regulatory compliance over the remote model."""
    override_threshold: float = 0.7
    low_risk_threshold: float = 0.9
    score_base: float = 0.6
    score_weight: float = 0.4
    confidence_base: float = 0.8
    confidence_weight: float = 0.2
    local_score: float = 0.85
    local_confidence: float = 0.92


_POLICY_PROFILES: Dict[str, BlendPolicy] = {
    "default": BlendPolicy(),
    "strict": BlendPolicy(override_threshold=0.85, low_risk_threshold=1.0),
}


def load_policy(profile: str = "") -> BlendPolicy:
    """Look up a named blend profile, falling back to the default."""
    profile = profile or os.getenv("POTABILITY_BLEND_PROFILE", "default")
    return _POLICY_PROFILES.get(profile, _POLICY_PROFILES["default"])


def store_path() -> Path:
    default = Path.home() / ".potability" / "store.json"
    return Path(os.getenv("POTABILITY_STORE_PATH", str(default)))
