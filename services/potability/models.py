"""Pydantic models for the prediction request/response documents."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from potability.parameters import PARAMETER_NAMES, REGISTRY


class RiskLevel(str, Enum):
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    VERY_HIGH = "VERY HIGH"


class WaterQualityInput(BaseModel):
    """Validated set of the nine measurements.

    Every field is checked against its registry bound on construction, so an
    instance only exists for in-bounds input.
    """
    model_config = ConfigDict(frozen=True)

    ph: float
    hardness: float
    solids: float
    chloramines: float
    sulfate: float
    conductivity: float
    organic_carbon: float
    trihalomethanes: float
    turbidity: float

    @model_validator(mode="after")
    def _check_bounds(self):
        for name in PARAMETER_NAMES:
            param = REGISTRY[name]
            value = getattr(self, name)
            if not param.is_valid_value(value):
                raise ValueError(
                    f"{name}={value} outside {param.range_string()}"
                )
        return self

    def to_wire(self) -> Dict[str, float]:
        """Flat document keyed by the API's snake_case parameter names."""
        return {REGISTRY[name].json_key: getattr(self, name) for name in PARAMETER_NAMES}

    @classmethod
    def from_wire(cls, data: Dict[str, Any]) -> "WaterQualityInput":
        return cls(**{name: data[REGISTRY[name].json_key] for name in PARAMETER_NAMES})

    def values(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in PARAMETER_NAMES}


class PredictionResult(BaseModel):
    """Potability verdict, either from the remote model or synthesized locally."""
    model_config = ConfigDict(frozen=True)

    potability_score: float = Field(ge=0.0, le=1.0)
    is_potable: bool
    confidence: float = Field(ge=0.0, le=1.0)
    risk_level: RiskLevel
    status: str


class ModelInfo(BaseModel):
    """Metadata describing whichever model produced the result."""
    model_config = ConfigDict(frozen=True, protected_namespaces=())

    model_type: str
    standardization_used: bool
    scaler_available: Optional[bool] = None


class PredictionResponse(BaseModel):
    """Single normalized outcome of a prediction attempt.

    Exactly one of the success payload (``prediction``) or the failure
    payload (``error``) is populated.
    """
    model_config = ConfigDict(frozen=True, protected_namespaces=())

    success: bool
    prediction: Optional[PredictionResult] = None
    recommendation: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)
    model_info: Optional[ModelInfo] = None
    error: Optional[str] = None
    details: Optional[List[str]] = None
    timestamp: str = Field(default_factory=lambda: datetime.now().isoformat())

    @field_validator("warnings", mode="before")
    @classmethod
    def _null_warnings(cls, value):
        return [] if value is None else value

    @model_validator(mode="after")
    def _check_payload(self):
        if self.success:
            if self.prediction is None:
                raise ValueError("successful response requires a prediction")
            if self.error is not None:
                raise ValueError("successful response cannot carry an error")
        else:
            if self.error is None:
                raise ValueError("failed response requires an error message")
            if self.prediction is not None:
                raise ValueError("failed response cannot carry a prediction")
        return self

    @classmethod
    def failure(cls, error: str, details: Optional[List[str]] = None) -> "PredictionResponse":
        return cls(success=False, error=error, details=details or None)
