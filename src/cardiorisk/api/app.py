import time
import json
import logging
from collections import defaultdict
from typing import Annotated, Any, List, Tuple

import pandas as pd
from fastapi import FastAPI, Request, HTTPException, Query
from fastapi.responses import Response, JSONResponse
from pydantic import Field, TypeAdapter, ValidationError
from prometheus_client import Counter, Histogram, generate_latest

from ..config import (
    APP_NAME,
    EXPLAIN_TOP_K,
    MAX_BATCH_ROWS,
    RATE_LIMIT_REQUESTS,
    RATE_LIMIT_WINDOW,
)
from ..logging_config import configure_logging
from ..models.feature_spec import (
    BIAS,
    DEFAULT_FEATURES,
    FEATURE_COUNT,
    FEATURE_KEYS,
    FEATURE_SPECS,
    SAMPLE_PATIENTS,
)
from ..models.ranking import explain as explain_vector, top_k as take_top
from ..models.report import render_explanation, render_transparency
from ..models.risk_model import find_violations, score, score_frame
from .schemas import (
    AttributionItem,
    BatchPredictionItem,
    ExplanationResponse,
    FeatureSpecItem,
    FeatureSpecsResponse,
    HeartDiseaseRequest,
    PredictionResponse,
)


# =================================================
# Structured JSON logging
# =================================================
configure_logging()
logger = logging.getLogger(__name__)


# =================================================
# Prometheus metrics
# =================================================
REQUEST_COUNT = Counter(
    "api_requests_total",
    "Total API requests",
    ["method", "endpoint", "status"],
)

REQUEST_LATENCY = Histogram(
    "api_request_latency_seconds",
    "API request latency",
    ["endpoint"],
)

PREDICTIONS_TOTAL = Counter(
    "model_predictions_total",
    "Total number of scored feature vectors",
)

PREDICTION_ERRORS_TOTAL = Counter(
    "model_prediction_errors_total",
    "Total prediction errors",
)

VALIDATION_FAILURES_TOTAL = Counter(
    "model_validation_failures_total",
    "Feature vectors rejected by range or shape validation",
    ["kind"],
)

PREDICTION_LATENCY = Histogram(
    "model_prediction_latency_seconds",
    "Prediction latency",
)


# =================================================
# Rate limiting storage
# =================================================
rate_limit_store = defaultdict(list)


# =================================================
# FastAPI app
# =================================================
app = FastAPI(title=APP_NAME)

_batch_adapter = TypeAdapter(
    Annotated[List[HeartDiseaseRequest], Field(max_length=MAX_BATCH_ROWS)]
)


# =================================================
# Middleware: logging + metrics
# =================================================
@app.middleware("http")
async def log_and_metrics(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time

    REQUEST_COUNT.labels(
        method=request.method,
        endpoint=request.url.path,
        status=str(response.status_code),
    ).inc()

    REQUEST_LATENCY.labels(
        endpoint=request.url.path
    ).observe(duration)

    logger.info(
        "%s %s status=%s latency=%.4fs",
        request.method,
        request.url.path,
        response.status_code,
        duration,
    )

    return response


# =================================================
# Helpers
# =================================================
def check_rate_limit(request: Request) -> None:
    client_ip = request.client.host if request.client else "unknown"
    now = time.time()

    rate_limit_store[client_ip] = [
        t for t in rate_limit_store[client_ip]
        if now - t < RATE_LIMIT_WINDOW
    ]

    if len(rate_limit_store[client_ip]) >= RATE_LIMIT_REQUESTS:
        PREDICTION_ERRORS_TOTAL.inc()
        raise HTTPException(
            status_code=429,
            detail="rate_limit_exceeded",
        )

    rate_limit_store[client_ip].append(now)


async def read_json(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        PREDICTION_ERRORS_TOTAL.inc()
        raise HTTPException(
            status_code=400,
            detail="invalid_json",
        )


def invalid_input(exc: ValidationError) -> JSONResponse:
    PREDICTION_ERRORS_TOTAL.inc()
    return JSONResponse(
        status_code=422,
        content={"details": exc.errors(include_url=False, include_context=False, include_input=False)},
    )


def rejected_vector(features: Tuple[float, ...]):
    """422 response when the core rejects the vector, else None."""
    violations = find_violations(features)
    if not violations:
        return None

    for violation in violations:
        VALIDATION_FAILURES_TOTAL.labels(kind=violation.kind).inc()

    logger.info(
        json.dumps(
            {
                "event": "validation_failed",
                "violations": [v.message for v in violations],
            }
        )
    )

    return JSONResponse(
        status_code=422,
        content={
            "error": "validation_failed",
            "violations": [v.to_dict() for v in violations],
        },
    )


# =================================================
# Health check
# =================================================
@app.get("/")
def health():
    return {"status": "ok"}


# =================================================
# Model configuration
# =================================================
@app.get("/features", response_model=FeatureSpecsResponse)
def features():
    return FeatureSpecsResponse(
        bias=BIAS,
        features=[
            FeatureSpecItem(
                index=index,
                key=spec.key,
                name=spec.name,
                valid_min=spec.valid_min,
                valid_max=spec.valid_max,
                norm_min=spec.norm_min,
                norm_max=spec.norm_max,
                weight=spec.weight,
                description=spec.description,
            )
            for index, spec in enumerate(FEATURE_SPECS)
        ],
        defaults=dict(zip(FEATURE_KEYS, DEFAULT_FEATURES)),
        samples={
            name: dict(zip(FEATURE_KEYS, vector))
            for name, vector in SAMPLE_PATIENTS.items()
        },
    )


# =================================================
# Prediction endpoint
# =================================================
@app.post("/predict")
async def predict(request: Request):
    start_time = time.time()
    check_rate_limit(request)

    body = await read_json(request)
    try:
        data = HeartDiseaseRequest.model_validate(body)
    except ValidationError as exc:
        return invalid_input(exc)

    vector = data.to_vector()
    rejected = rejected_vector(vector)
    if rejected is not None:
        return rejected

    try:
        result = score(vector)
    except Exception:
        PREDICTION_ERRORS_TOTAL.inc()
        logger.exception("Prediction failed")
        raise HTTPException(
            status_code=500,
            detail="prediction_failed",
        )

    PREDICTIONS_TOTAL.inc()
    PREDICTION_LATENCY.observe(time.time() - start_time)

    logger.info(
        json.dumps(
            {
                "event": "prediction",
                "probability": round(result.probability, 4),
                "risk_level": result.risk_level.value,
            }
        )
    )

    return PredictionResponse(
        probability=result.probability,
        risk_level=result.risk_level.value,
        logit=result.logit,
    )


# =================================================
# Explanation endpoint
# =================================================
@app.post("/explain")
async def explain(
    request: Request,
    top_k: int = Query(EXPLAIN_TOP_K, ge=0, le=FEATURE_COUNT),
):
    start_time = time.time()
    check_rate_limit(request)

    body = await read_json(request)
    try:
        data = HeartDiseaseRequest.model_validate(body)
    except ValidationError as exc:
        return invalid_input(exc)

    vector = data.to_vector()
    rejected = rejected_vector(vector)
    if rejected is not None:
        return rejected

    try:
        result, ranked = explain_vector(vector)
        text = render_explanation(result, vector, top=top_k)
        transparency = render_transparency(result)
    except Exception:
        PREDICTION_ERRORS_TOTAL.inc()
        logger.exception("Explanation failed")
        raise HTTPException(
            status_code=500,
            detail="explanation_failed",
        )

    PREDICTIONS_TOTAL.inc()
    PREDICTION_LATENCY.observe(time.time() - start_time)

    logger.info(
        json.dumps(
            {
                "event": "explanation",
                "probability": round(result.probability, 4),
                "top_feature": ranked[0].key,
            }
        )
    )

    items = [AttributionItem(**attr.to_dict()) for attr in ranked]
    return ExplanationResponse(
        probability=result.probability,
        risk_level=result.risk_level.value,
        logit=result.logit,
        top=take_top(items, top_k),
        all=items,
        explanation=text,
        transparency=transparency,
    )


# =================================================
# Batch prediction endpoint
# =================================================
@app.post("/predict/batch")
async def predict_batch(request: Request):
    start_time = time.time()
    check_rate_limit(request)

    body = await read_json(request)
    try:
        patients = _batch_adapter.validate_python(body)
    except ValidationError as exc:
        return invalid_input(exc)

    df = pd.DataFrame(
        [patient.model_dump() for patient in patients],
        columns=list(FEATURE_KEYS),
    )
    scored = score_frame(df)

    items = []
    for row in scored.to_dict(orient="records"):
        if row["valid"]:
            items.append(
                BatchPredictionItem(
                    valid=True,
                    probability=row["probability"],
                    risk_level=row["risk_level"],
                    logit=row["logit"],
                )
            )
        else:
            VALIDATION_FAILURES_TOTAL.labels(kind="range").inc()
            items.append(BatchPredictionItem(valid=False))

    PREDICTIONS_TOTAL.inc(int(scored["valid"].sum()))
    PREDICTION_LATENCY.observe(time.time() - start_time)

    logger.info(
        json.dumps(
            {
                "event": "batch_prediction",
                "rows": len(items),
                "scored": int(scored["valid"].sum()),
            }
        )
    )

    return {"predictions": items}


# =================================================
# Metrics endpoint
# =================================================
@app.get("/metrics")
def metrics():
    return Response(
        generate_latest(),
        media_type="text/plain",
    )
