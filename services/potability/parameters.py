"""Static registry of the nine water-chemistry parameters.

Bounds match the prediction API's validation constraints; the optimal
sub-ranges follow WHO drinking-water guidance (or typical ranges where WHO
sets no guideline value).
"""

from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass(frozen=True)
class WaterParameter:
    """Registry entry for a single measured parameter."""
    name: str
    label: str
    unit: str
    min_value: float
    max_value: float
    optimal_range: str
    description: str
    json_key: str
    optimal_low: Optional[float] = None
    optimal_high: Optional[float] = None
    severe_low: Optional[float] = None
    severe_high: Optional[float] = None
    warning: str = ""

    def is_valid_value(self, value: float) -> bool:
        return self.min_value <= value <= self.max_value

    def is_optimal(self, value: float) -> bool:
        """True when value sits inside the regulatory-optimal sub-range."""
        if self.optimal_low is not None and value < self.optimal_low:
            return False
        if self.optimal_high is not None and value > self.optimal_high:
            return False
        return True

    def is_severe(self, value: float) -> bool:
        """True when value is far enough outside the optimal range to count as high risk."""
        if self.severe_low is not None and value < self.severe_low:
            return True
        if self.severe_high is not None and value > self.severe_high:
            return True
        return False

    def range_string(self) -> str:
        return f"{self.min_value:g}-{self.max_value:g} {self.unit}"


_PARAMETERS = [
    WaterParameter(
        name="ph",
        label="pH Level",
        unit="pH scale",
        min_value=0.0,
        max_value=14.0,
        optimal_range="6.5 - 8.5 (WHO recommended)",
        description="Measure of water acidity or alkalinity",
        json_key="ph",
        optimal_low=6.5,
        optimal_high=8.5,
        severe_low=5.0,
        severe_high=10.0,
        warning="Outside WHO recommended pH range (6.5-8.5)",
    ),
    WaterParameter(
        name="hardness",
        label="Water Hardness",
        unit="mg/L",
        min_value=0.0,
        max_value=500.0,
        optimal_range="0 - 120 (WHO recommended)",
        description="Concentration of calcium and magnesium ions",
        json_key="hardness",
        optimal_high=120.0,
        severe_high=300.0,
        warning="Hard water detected (WHO recommends <120 mg/L)",
    ),
    WaterParameter(
        name="solids",
        label="Total Dissolved Solids",
        unit="ppm",
        min_value=0.0,
        max_value=50000.0,
        optimal_range="0 - 1000 (WHO recommended)",
        description="Total amount of dissolved minerals and salts",
        json_key="solids",
        optimal_high=1000.0,
        severe_high=5000.0,
        warning="High TDS level (WHO recommends <1000 ppm)",
    ),
    WaterParameter(
        name="chloramines",
        label="Chloramines",
        unit="ppm",
        min_value=0.0,
        max_value=15.0,
        optimal_range="0 - 5 (WHO recommended)",
        description="Chemical compounds used for water disinfection",
        json_key="chloramines",
        optimal_high=5.0,
        severe_high=10.0,
        warning="High chloramine level (WHO recommends <5 ppm)",
    ),
    WaterParameter(
        name="sulfate",
        label="Sulfate",
        unit="mg/L",
        min_value=0.0,
        max_value=500.0,
        optimal_range="0 - 250 (WHO recommended)",
        description="Naturally occurring salt in water",
        json_key="sulfate",
        optimal_high=250.0,
        severe_high=400.0,
        warning="High sulfate level (WHO recommends <250 mg/L)",
    ),
    WaterParameter(
        name="conductivity",
        label="Electrical Conductivity",
        unit="μS/cm",
        min_value=0.0,
        max_value=2000.0,
        optimal_range="50 - 1500 (typical range)",
        description="Ability of water to conduct electric current",
        json_key="conductivity",
        optimal_low=50.0,
        optimal_high=1500.0,
        severe_low=20.0,
        severe_high=1800.0,
        warning="Outside typical conductivity range (50-1500 μS/cm)",
    ),
    WaterParameter(
        name="organic_carbon",
        label="Organic Carbon",
        unit="ppm",
        min_value=0.0,
        max_value=30.0,
        optimal_range="0 - 2 (typical range)",
        description="Amount of organic matter in water",
        json_key="organic_carbon",
        optimal_high=2.0,
        severe_high=10.0,
        warning="High organic carbon (typical range <2 ppm)",
    ),
    WaterParameter(
        name="trihalomethanes",
        label="Trihalomethanes",
        unit="μg/L",
        min_value=0.0,
        max_value=200.0,
        optimal_range="0 - 100 (WHO recommended)",
        description="Chemical compounds formed during water treatment",
        json_key="trihalomethanes",
        optimal_high=100.0,
        severe_high=150.0,
        warning="High trihalomethanes (WHO recommends <100 μg/L)",
    ),
    WaterParameter(
        name="turbidity",
        label="Turbidity",
        unit="NTU",
        min_value=0.0,
        max_value=10.0,
        optimal_range="0 - 1 (WHO recommended)",
        description="Measure of water clarity",
        json_key="turbidity",
        optimal_high=1.0,
        severe_high=5.0,
        warning="High turbidity level (WHO recommends <1 NTU)",
    ),
]

REGISTRY: Dict[str, WaterParameter] = {p.name: p for p in _PARAMETERS}

PARAMETER_NAMES: List[str] = [p.name for p in _PARAMETERS]


def lookup(name: str) -> Optional[WaterParameter]:
    """Get a parameter by name (case-insensitive), or None if unknown."""
    return REGISTRY.get(name.strip().lower())


def all_parameters() -> List[WaterParameter]:
    """Return every parameter in input-flow order."""
    return list(_PARAMETERS)


def pages(size: int = 3) -> List[List[WaterParameter]]:
    """Group parameters into consecutive pages for stepwise input."""
    return [_PARAMETERS[i:i + size] for i in range(0, len(_PARAMETERS), size)]


def display_name(name: str) -> str:
    param = lookup(name)
    return param.label if param else name


def unit(name: str) -> str:
    param = lookup(name)
    return param.unit if param else ""


# Sample measurements for demos and smoke checks
SAMPLE_GOOD_WATER: Dict[str, float] = {
    "ph": 7.0,
    "hardness": 100.0,
    "solids": 500.0,
    "chloramines": 3.0,
    "sulfate": 150.0,
    "conductivity": 400.0,
    "organic_carbon": 1.5,
    "trihalomethanes": 50.0,
    "turbidity": 0.8,
}

SAMPLE_POOR_WATER: Dict[str, float] = {
    "ph": 3.5,
    "hardness": 480.0,
    "solids": 49000.0,
    "chloramines": 14.5,
    "sulfate": 480.0,
    "conductivity": 1950.0,
    "organic_carbon": 29.0,
    "trihalomethanes": 195.0,
    "turbidity": 9.8,
}
