"""
Ranking of per-feature contributions for display.

A contribution >= 0 (zero included) increases risk; a negative one
decreases it. Attributions are ordered by descending absolute contribution
with ties kept in feature-index order.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .feature_spec import FEATURE_KEYS, FEATURE_NAMES
from .risk_model import PredictionResult, score

DEFAULT_TOP_K = 5


@dataclass(frozen=True)
class FeatureAttribution:
    name: str
    contribution: float
    original_value: float
    index: int = -1

    @property
    def key(self) -> Optional[str]:
        if 0 <= self.index < len(FEATURE_KEYS):
            return FEATURE_KEYS[self.index]
        return None

    @property
    def increases_risk(self) -> bool:
        return self.contribution >= 0

    @property
    def direction(self) -> str:
        return "increases" if self.increases_risk else "decreases"

    @property
    def magnitude(self) -> float:
        return abs(self.contribution)

    def to_dict(self) -> dict:
        return {
            "feature": self.key,
            "name": self.name,
            "contribution": self.contribution,
            "original_value": self.original_value,
            "direction": self.direction,
        }


def rank(
    contributions: Sequence[float],
    original_features: Sequence[float],
    names: Sequence[str] = FEATURE_NAMES,
) -> List[FeatureAttribution]:
    if not len(contributions) == len(original_features) == len(names):
        raise ValueError(
            "contributions, original_features and names must have the same length"
        )

    order = sorted(
        range(len(contributions)),
        key=lambda i: (-abs(contributions[i]), i),
    )
    return [
        FeatureAttribution(
            name=names[i],
            contribution=float(contributions[i]),
            original_value=float(original_features[i]),
            index=i,
        )
        for i in order
    ]


def top_k(ranked: Sequence[FeatureAttribution], k: int = DEFAULT_TOP_K) -> List[FeatureAttribution]:
    if k < 0:
        raise ValueError("k must be non-negative")
    return list(ranked[:k])


def explain(
    features: Sequence[float],
) -> Tuple[PredictionResult, List[FeatureAttribution]]:
    """Score an already validated vector and rank its attributions."""
    result = score(features)
    return result, rank(result.contributions, features)
