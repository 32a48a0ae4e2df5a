"""Plain-text rendering of a prediction and its ranked attributions."""

from typing import List, Sequence

from .feature_spec import BIAS, FEATURE_COUNT
from .ranking import DEFAULT_TOP_K, FeatureAttribution, rank, top_k
from .risk_model import PredictionResult, RiskLevel

RULE_WIDTH = 60


def format_attribution(attr: FeatureAttribution) -> str:
    return (
        f"{attr.name} ({attr.original_value:.1f}): "
        f"{attr.direction} risk by {attr.magnitude:.4f}"
    )


def headline(result: PredictionResult) -> str:
    return (
        f"{result.risk_level.value.upper()} RISK - "
        f"{result.percent:.1f}% probability of heart disease"
    )


def _impact_line(attr: FeatureAttribution) -> str:
    sign = "+" if attr.increases_risk else "-"
    return f"{attr.name:<15} ({attr.original_value:.1f}): {sign}{attr.magnitude:.4f}"


def render_explanation(
    result: PredictionResult,
    features: Sequence[float],
    top: int = DEFAULT_TOP_K,
) -> str:
    ranked = rank(result.contributions, features)

    lines: List[str] = [headline(result), "", "FEATURE IMPORTANCE ANALYSIS", "=" * RULE_WIDTH, ""]

    lines.append(f"TOP {top} CONTRIBUTING FACTORS:")
    lines.append("")
    for attr in top_k(ranked, top):
        lines.append(f"{attr.name:<15} ({attr.original_value:.1f}): "
                     f"{attr.direction.upper()} risk by {attr.magnitude:.4f}")

    lines += ["", "-" * RULE_WIDTH, "ALL FEATURES IMPACT:", ""]
    lines += [_impact_line(attr) for attr in ranked]

    lines += [
        "",
        "=" * RULE_WIDTH,
        "INTERPRETATION:",
        "- Positive values (+) increase heart disease risk",
        "- Negative values (-) decrease heart disease risk",
        "- Larger absolute values have more impact on the prediction",
    ]
    return "\n".join(lines)


def advice(result: PredictionResult) -> str:
    if result.risk_level is RiskLevel.HIGH:
        return "High risk detected! Please consult a healthcare professional."
    return "Low risk detected. Continue maintaining a healthy lifestyle."


def render_transparency(result: PredictionResult) -> str:
    lines = [
        "TRANSPARENCY INFORMATION",
        "=" * RULE_WIDTH,
        "",
        "ALGORITHM DETAILS:",
        "- Model type: additive logistic model with fixed coefficients",
        f"- Features used: {FEATURE_COUNT} clinical and demographic variables",
        f"- Bias term: {BIAS}",
        "- Each feature is rescaled to [0, 1] before weighting",
        "",
        "HOW CONTRIBUTIONS ARE COMPUTED:",
        "- contribution = weight x normalized value",
        "- bias + sum of contributions = logit",
        "- probability = 1 / (1 + exp(-logit))",
        "",
        "PREDICTION CONFIDENCE:",
        f"- Confidence Level: {result.confidence * 100:.1f}%",
        f"- Risk Probability: {result.percent:.1f}%",
        f"- Classification: {result.risk_level.value.capitalize()} Risk",
        "",
        "LIMITATIONS:",
        "- Contributions are on the logit scale and only approximate each",
        "  feature's effect on the final probability",
        "- Coefficients are fixed and the estimate is not a diagnosis",
        "",
        advice(result),
    ]
    return "\n".join(lines)
