"""
Scoring core of the heart disease risk model.

Pipeline
--------
raw vector -> validate -> normalize -> score -> PredictionResult

The model is an additive logistic model over normalized features:

    logit = BIAS + sum(weight[i] * normalized[i])
    probability = 1 / (1 + exp(-clamp(logit, -500, 500)))

Each term ``weight[i] * normalized[i]`` is kept as the feature's
contribution. Contributions live on the logit scale: they add up to the
logit exactly, but they are only an approximation of each feature's effect
on the probability.

All functions here are pure. ``score`` assumes its input already passed
``validate`` and performs no checks of its own.
"""

import logging
import math
from dataclasses import asdict, dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .feature_spec import BIAS, FEATURE_COUNT, FEATURE_KEYS, FEATURE_SPECS, WEIGHTS


logger = logging.getLogger(__name__)

LOGIT_LIMIT = 500.0
HIGH_RISK_THRESHOLD = 0.5


def _frozen(values) -> np.ndarray:
    arr = np.array(values, dtype=float)
    arr.setflags(write=False)
    return arr


_NORM_MIN = _frozen([spec.norm_min for spec in FEATURE_SPECS])
_NORM_SPAN = _frozen([spec.norm_span for spec in FEATURE_SPECS])
_WEIGHTS = _frozen(WEIGHTS)


# =================================================
# Result types
# =================================================
class RiskLevel(str, Enum):
    HIGH = "high"
    LOW = "low"


def classify_risk(probability: float) -> RiskLevel:
    """HIGH strictly above 0.5, LOW otherwise."""
    if probability > HIGH_RISK_THRESHOLD:
        return RiskLevel.HIGH
    return RiskLevel.LOW


@dataclass(frozen=True)
class PredictionResult:
    probability: float
    contributions: Tuple[float, ...]
    logit: float

    @property
    def risk_level(self) -> RiskLevel:
        return classify_risk(self.probability)

    @property
    def percent(self) -> float:
        return self.probability * 100.0

    @property
    def confidence(self) -> float:
        """Distance from the 0.5 decision point, rescaled to [0, 1]."""
        return abs(self.probability - HIGH_RISK_THRESHOLD) * 2


@dataclass(frozen=True)
class Violation:
    """One reason a feature vector was rejected.

    ``kind`` is ``"shape"`` when the vector has the wrong length and
    ``"range"`` when a value falls outside its validation bounds.
    """
    kind: str
    message: str
    index: Optional[int] = None
    key: Optional[str] = None
    value: Optional[float] = None
    lower: Optional[float] = None
    upper: Optional[float] = None

    def to_dict(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v is not None}


# =================================================
# Validator
# =================================================
def find_violations(features: Sequence[float]) -> List[Violation]:
    """List every reason ``features`` fails validation (empty when valid)."""
    if len(features) != FEATURE_COUNT:
        return [
            Violation(
                kind="shape",
                message=f"expected {FEATURE_COUNT} features, got {len(features)}",
            )
        ]

    violations = []
    for index, (value, spec) in enumerate(zip(features, FEATURE_SPECS)):
        value = float(value)
        if not math.isfinite(value) or value < spec.valid_min or value > spec.valid_max:
            violations.append(
                Violation(
                    kind="range",
                    message=(
                        f"{spec.key}={value} outside "
                        f"[{spec.valid_min}, {spec.valid_max}]"
                    ),
                    index=index,
                    key=spec.key,
                    value=value,
                    lower=spec.valid_min,
                    upper=spec.valid_max,
                )
            )
    return violations


def validate(features: Sequence[float]) -> bool:
    """True when the vector has 13 values, each inside its inclusive bounds."""
    violations = find_violations(features)
    if violations:
        logger.debug("Validation failed: %s", "; ".join(v.message for v in violations))
    return not violations


# =================================================
# Normalizer
# =================================================
def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def normalize(features: Sequence[float]) -> Tuple[float, ...]:
    """Rescale each feature into [0, 1] by its normalization range."""
    raw = np.asarray(features, dtype=float)
    scaled = np.clip((raw - _NORM_MIN) / _NORM_SPAN, 0.0, 1.0)
    return tuple(float(v) for v in scaled)


# =================================================
# Scorer
# =================================================
def sigmoid(x: float) -> float:
    # Clamp is the only overflow guard for exp
    x = clamp(x, -LOGIT_LIMIT, LOGIT_LIMIT)
    return 1.0 / (1.0 + math.exp(-x))


def score(features: Sequence[float]) -> PredictionResult:
    normalized = np.asarray(normalize(features))
    contributions = _WEIGHTS * normalized
    logit = BIAS + float(np.sum(contributions))
    probability = sigmoid(logit)

    logger.debug("Scored vector: logit=%.4f probability=%.4f", logit, probability)

    return PredictionResult(
        probability=probability,
        contributions=tuple(float(c) for c in contributions),
        logit=logit,
    )


# =================================================
# Batch scoring
# =================================================
RESULT_COLUMNS = ["valid", "logit", "probability", "risk_level"]


def score_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Score every row of a DataFrame keyed by feature name.

    Rows that fail validation are never scored; they come back with
    ``valid=False`` and NaN scores.
    """
    missing = [key for key in FEATURE_KEYS if key not in df.columns]
    if missing:
        raise ValueError(f"Feature columns missing: {', '.join(missing)}")

    rows = []
    features = df[list(FEATURE_KEYS)].astype(float)
    for values in features.itertuples(index=False, name=None):
        if not validate(values):
            rows.append(
                {"valid": False, "logit": np.nan, "probability": np.nan, "risk_level": None}
            )
            continue

        result = score(values)
        rows.append(
            {
                "valid": True,
                "logit": result.logit,
                "probability": result.probability,
                "risk_level": result.risk_level.value,
            }
        )

    return pd.DataFrame(rows, index=df.index, columns=RESULT_COLUMNS)
