from typing import Dict, List, Optional, Tuple      # Typing helpers for list-based and optional fields

from pydantic import BaseModel, ConfigDict          # BaseModel provides parsing, validation and serialization

from ..models.feature_spec import to_vector         # Fixed feature order used by the scoring core


class HeartDiseaseRequest(BaseModel):               # Request schema: one patient, thirteen named measurements
    # Non-numeric text and booleans are rejected here; clinical range checks belong to the scoring core
    model_config = ConfigDict(strict=True, allow_inf_nan=False)

    age: float                                      # Age in years
    sex: float                                      # 0 = female, 1 = male
    cp: float                                       # Chest pain type 1..4
    trestbps: float                                 # Resting blood pressure (mm Hg)
    chol: float                                     # Serum cholesterol (mg/dl)
    fbs: float                                      # Fasting blood sugar > 120 mg/dl flag
    restecg: float                                  # Resting ECG code 0..2
    thalach: float                                  # Maximum heart rate achieved (bpm)
    exang: float                                    # Exercise induced angina flag
    oldpeak: float                                  # ST depression relative to rest
    slope: float                                    # Peak exercise ST segment slope 1..3
    ca: float                                       # Major vessels colored by fluoroscopy 0..3
    thal: float                                     # Thalassemia code 1..3

    def to_vector(self) -> Tuple[float, ...]:       # Order fields into the fixed feature vector
        return to_vector(self.model_dump())


class PredictionResponse(BaseModel):                # Response schema returned after prediction
    probability: float                              # Probability of heart disease in [0, 1]
    risk_level: str                                 # "high" above 0.5, otherwise "low"
    logit: float                                    # Pre-sigmoid linear score


class AttributionItem(BaseModel):                   # One ranked feature attribution
    feature: str                                    # Feature key (e.g. "ca")
    name: str                                       # Display name (e.g. "Vessels")
    contribution: float                             # Signed weight x normalized value
    original_value: float                           # Raw input value as submitted
    direction: str                                  # "increases" or "decreases"


class ExplanationResponse(PredictionResponse):      # Prediction plus ranked attributions
    top: List[AttributionItem]                      # Top-K attributions by absolute contribution
    all: List[AttributionItem]                      # Every attribution in ranked order
    explanation: str                                # Rendered plain-text report
    transparency: str                               # Model description, confidence and advice


class FeatureSpecItem(BaseModel):                   # One row of the fixed feature table
    index: int
    key: str
    name: str
    valid_min: float
    valid_max: float
    norm_min: float
    norm_max: float
    weight: float
    description: str


class FeatureSpecsResponse(BaseModel):              # Whole model configuration
    bias: float
    features: List[FeatureSpecItem]
    defaults: Dict[str, float]                      # Form reset values keyed by feature
    samples: Dict[str, Dict[str, float]]            # Reference high- and low-risk patients


class BatchPredictionItem(BaseModel):               # One row of a batch prediction
    valid: bool                                     # False when the row failed range validation
    probability: Optional[float] = None             # Absent for rows that were not scored
    risk_level: Optional[str] = None
    logit: Optional[float] = None
