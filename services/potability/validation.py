"""Input validation against registry bounds and WHO guidance.

Field checks never raise: every raw value comes back as a ``Valid`` or
``Invalid`` result so callers can show all problems at once.
"""

import math
import re
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Union

from potability.errors import ErrorType
from potability.models import RiskLevel, WaterQualityInput
from potability.parameters import PARAMETER_NAMES, REGISTRY, display_name, lookup

ERROR_REQUIRED = "This field is required"
ERROR_INVALID_NUMBER = "Please enter a valid number"
ERROR_OUT_OF_RANGE = "Value is out of range"

# Optional leading minus, digits, at most one decimal point
_NUMERIC_RE = re.compile(r"^-?(\d+\.?\d*|\.\d+)$")
_SANITIZE_RE = re.compile(r"[^0-9.\-]")

RawValue = Union[str, float, int, None]


@dataclass(frozen=True)
class Valid:
    value: float
    warning: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return True


@dataclass(frozen=True)
class Invalid:
    error: str
    error_type: ErrorType = ErrorType.UNKNOWN

    @property
    def is_valid(self) -> bool:
        return False


ValidationResult = Union[Valid, Invalid]


def _parse(raw: RawValue) -> Union[float, Invalid]:
    if raw is None:
        return Invalid(ERROR_REQUIRED, ErrorType.REQUIRED_FIELD_MISSING)
    if isinstance(raw, bool):
        return Invalid(ERROR_INVALID_NUMBER, ErrorType.NOT_A_NUMBER)
    if isinstance(raw, (int, float)):
        value = float(raw)
        if math.isnan(value) or math.isinf(value):
            return Invalid(ERROR_INVALID_NUMBER, ErrorType.NOT_A_NUMBER)
        return value

    text = str(raw).strip()
    if not text:
        return Invalid(ERROR_REQUIRED, ErrorType.REQUIRED_FIELD_MISSING)
    if not _NUMERIC_RE.match(text):
        return Invalid(ERROR_INVALID_NUMBER, ErrorType.NOT_A_NUMBER)
    return float(text)


def validate_field(name: str, raw: RawValue) -> ValidationResult:
    """Validate one raw field value against its registry entry."""
    param = lookup(name)
    if param is None:
        return Invalid(f"Unknown parameter: {name}", ErrorType.UNKNOWN)

    parsed = _parse(raw)
    if isinstance(parsed, Invalid):
        return parsed

    if not param.is_valid_value(parsed):
        return Invalid(
            f"{ERROR_OUT_OF_RANGE}: {param.range_string()}",
            ErrorType.OUT_OF_RANGE,
        )

    warning = None if param.is_optimal(parsed) else param.warning
    return Valid(parsed, warning)


def validate_all(raw_values: Mapping[str, RawValue]) -> Dict[str, ValidationResult]:
    """Validate every supplied field independently (no short-circuit)."""
    return {name: validate_field(name, raw) for name, raw in raw_values.items()}


def validate_form(raw_values: Mapping[str, RawValue]) -> Dict[str, ValidationResult]:
    """Validate the full nine-field form; missing fields count as blank."""
    normalized = {k.strip().lower(): v for k, v in raw_values.items()}
    return {name: validate_field(name, normalized.get(name)) for name in PARAMETER_NAMES}


def all_passed(results: Mapping[str, ValidationResult]) -> bool:
    return all(r.is_valid for r in results.values())


def collect_errors(results: Mapping[str, ValidationResult]) -> List[str]:
    """Display-ready error strings, one per invalid field."""
    return [
        format_validation_error(display_name(name), r.error)
        for name, r in results.items()
        if isinstance(r, Invalid)
    ]


def collect_warnings(results: Mapping[str, ValidationResult]) -> List[str]:
    return [r.warning for r in results.values() if isinstance(r, Valid) and r.warning]


def format_validation_error(parameter_label: str, error: str) -> str:
    return f"{parameter_label}: {error}"


def build_input(results: Mapping[str, ValidationResult]) -> WaterQualityInput:
    """Assemble a WaterQualityInput from a fully valid result map.

    Raises ValueError if any of the nine fields is missing or invalid.
    """
    values = {}
    for name in PARAMETER_NAMES:
        result = results.get(name)
        if not isinstance(result, Valid):
            raise ValueError(f"{name} has not been validated")
        values[name] = result.value
    return WaterQualityInput(**values)


def is_within_regulatory_range(name: str, value: float) -> bool:
    param = lookup(name)
    return param.is_optimal(value) if param else False


def compliant_count(data: WaterQualityInput) -> int:
    return sum(1 for name, value in data.values().items() if REGISTRY[name].is_optimal(value))


def is_fully_compliant(data: WaterQualityInput) -> bool:
    """True only if every field sits inside its regulatory-optimal range."""
    return compliant_count(data) == len(PARAMETER_NAMES)


def compliance_ratio(data: WaterQualityInput) -> float:
    """Fraction of the nine fields inside their regulatory-optimal range."""
    return compliant_count(data) / len(PARAMETER_NAMES)


def risk_tier(values: Union[WaterQualityInput, Mapping[str, float]]) -> RiskLevel:
    """Classify overall risk from counts of severe and moderate violations.

    The checks run as a priority cascade: VERY HIGH, then HIGH, then
    MODERATE, falling back to LOW.
    """
    if isinstance(values, WaterQualityInput):
        values = values.values()

    severe = 0
    moderate = 0
    for name, value in values.items():
        param = lookup(name)
        if param is None or param.is_optimal(value):
            continue
        if param.is_severe(value):
            severe += 1
        else:
            moderate += 1

    if severe >= 3:
        return RiskLevel.VERY_HIGH
    elif severe >= 1 or moderate >= 4:
        return RiskLevel.HIGH
    elif moderate >= 2:
        return RiskLevel.MODERATE
    return RiskLevel.LOW


def completion_ratio(raw_values: Mapping[str, RawValue]) -> float:
    """Fraction of the nine fields that have been filled in."""
    normalized = {k.strip().lower(): v for k, v in raw_values.items()}
    filled = 0
    for name in PARAMETER_NAMES:
        raw = normalized.get(name)
        if raw is not None and str(raw).strip():
            filled += 1
    return filled / len(PARAMETER_NAMES)


def sanitize_numeric_input(text: str) -> str:
    """Strip everything except digits, decimal point and minus sign."""
    return _SANITIZE_RE.sub("", text)


def format_number_for_display(value: float) -> str:
    if value == int(value):
        return str(int(value))
    return f"{value:.2f}"
