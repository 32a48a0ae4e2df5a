"""
Fixed feature table for the heart disease risk model.

Each of the thirteen inputs is bound to a fixed index. The table carries two
distinct ranges per feature:

- validation range: the clinically plausible bound for the raw value,
- normalization range: the scale the model expects before weighting.

A value can pass validation and still clamp to 0 or 1 after normalization.
"""

from dataclasses import dataclass
from typing import Dict, Tuple


@dataclass(frozen=True)
class FeatureSpec:
    key: str
    name: str
    valid_min: float
    valid_max: float
    norm_min: float
    norm_max: float
    weight: float
    description: str = ""

    def __post_init__(self):
        if self.valid_min > self.valid_max:
            raise ValueError(
                f"{self.key}: valid_min {self.valid_min} exceeds valid_max {self.valid_max}"
            )
        if self.norm_min >= self.norm_max:
            raise ValueError(
                f"{self.key}: norm_min {self.norm_min} must be below norm_max {self.norm_max}"
            )

    @property
    def norm_span(self) -> float:
        return self.norm_max - self.norm_min


# =================================================
# Model constants
# =================================================
BIAS = -2.5

FEATURE_SPECS: Tuple[FeatureSpec, ...] = (
    FeatureSpec("age", "Age", 0, 100, 20, 80, 0.045,
                "Patient age in years"),
    FeatureSpec("sex", "Sex", 0, 1, 0, 1, 0.32,
                "0 = female, 1 = male"),
    FeatureSpec("cp", "Chest Pain", 1, 4, 1, 4, 0.55,
                "1 = typical angina, 2 = atypical angina, 3 = non-anginal pain, 4 = asymptomatic"),
    FeatureSpec("trestbps", "Resting BP", 0, 200, 90, 200, 0.01,
                "Resting blood pressure (mm Hg)"),
    FeatureSpec("chol", "Cholesterol", 0, 600, 100, 400, 0.005,
                "Serum cholesterol (mg/dl)"),
    FeatureSpec("fbs", "Fasting BS", 0, 1, 0, 1, 0.15,
                "Fasting blood sugar > 120 mg/dl (1 = yes, 0 = no)"),
    FeatureSpec("restecg", "Resting ECG", 0, 2, 0, 2, 0.1,
                "Resting electrocardiographic result (0-2)"),
    FeatureSpec("thalach", "Max Heart Rate", 0, 220, 60, 220, -0.02,
                "Maximum heart rate achieved (bpm)"),
    FeatureSpec("exang", "Exercise Angina", 0, 1, 0, 1, 0.4,
                "Exercise induced angina (1 = yes, 0 = no)"),
    FeatureSpec("oldpeak", "ST Depression", 0, 6, 0, 6, 0.6,
                "ST depression induced by exercise relative to rest"),
    FeatureSpec("slope", "ST Slope", 1, 3, 1, 3, 0.3,
                "Slope of the peak exercise ST segment (1-3)"),
    FeatureSpec("ca", "Vessels", 0, 3, 0, 3, 0.8,
                "Major vessels colored by fluoroscopy (0-3)"),
    FeatureSpec("thal", "Thalassemia", 1, 3, 1, 3, 0.45,
                "1 = normal, 2 = fixed defect, 3 = reversible defect"),
)

FEATURE_COUNT = len(FEATURE_SPECS)
FEATURE_KEYS: Tuple[str, ...] = tuple(spec.key for spec in FEATURE_SPECS)
FEATURE_NAMES: Tuple[str, ...] = tuple(spec.name for spec in FEATURE_SPECS)
WEIGHTS: Tuple[float, ...] = tuple(spec.weight for spec in FEATURE_SPECS)


# =================================================
# Reference patients
# =================================================
DEFAULT_FEATURES: Tuple[float, ...] = (
    50, 1, 2, 120, 200, 0, 0, 150, 0, 1.0, 2, 0, 2,
)

SAMPLE_PATIENTS: Dict[str, Tuple[float, ...]] = {
    "high_risk": (65, 1, 4, 160, 300, 1, 2, 120, 1, 3.0, 3, 2, 3),
    "low_risk": (35, 0, 1, 110, 180, 0, 0, 180, 0, 0.0, 1, 0, 1),
}


def index_of(key: str) -> int:
    """Position of a feature key in the vector."""
    try:
        return FEATURE_KEYS.index(key)
    except ValueError:
        raise KeyError(f"Unknown feature: {key}") from None


def to_vector(values: Dict[str, float]) -> Tuple[float, ...]:
    """Order a key -> value mapping into a feature vector."""
    missing = [key for key in FEATURE_KEYS if key not in values]
    if missing:
        raise ValueError(f"Missing features: {', '.join(missing)}")
    return tuple(float(values[key]) for key in FEATURE_KEYS)
