"""Water Potability API - validates measurements and serves blended verdicts."""

import os
import time
from contextlib import asynccontextmanager
from typing import Dict, List, Optional, Union

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
import uvicorn
from pydantic import BaseModel

from potability.client import PredictionClient
from potability.config import ClientConfig, load_policy, store_path
from potability.health import HealthChecker
from potability.models import PredictionResponse
from potability.orchestrator import PredictionOrchestrator
from potability.parameters import SAMPLE_GOOD_WATER, SAMPLE_POOR_WATER, all_parameters
from potability.storage import KeyValueStore, LastInputCache
from potability.telemetry import setup_telemetry
from potability.validation import Invalid, collect_errors, collect_warnings, completion_ratio, validate_form

RawForm = Dict[str, Union[str, float, None]]

SAMPLES = {"good": SAMPLE_GOOD_WATER, "poor": SAMPLE_POOR_WATER}


# Request/Response Models
class ParameterInfo(BaseModel):
    name: str
    label: str
    unit: str
    min_value: float
    max_value: float
    optimal_range: str
    description: str


class FieldResult(BaseModel):
    valid: bool
    value: Optional[float] = None
    warning: Optional[str] = None
    error: Optional[str] = None


class ValidateResponse(BaseModel):
    valid: bool
    completion: float
    fields: Dict[str, FieldResult]
    errors: List[str]
    warnings: List[str]


class PredictEnvelope(BaseModel):
    """Prediction outcome plus the per-field validation view."""
    response: PredictionResponse
    state: str
    fields: Dict[str, FieldResult]
    input_warnings: List[str]


def _field_view(results) -> Dict[str, FieldResult]:
    view = {}
    for name, result in results.items():
        if isinstance(result, Invalid):
            view[name] = FieldResult(valid=False, error=result.error)
        else:
            view[name] = FieldResult(valid=True, value=result.value, warning=result.warning)
    return view


# Lifespan for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup resources."""
    client = PredictionClient(ClientConfig.from_env())
    cache = LastInputCache(KeyValueStore(store_path()))
    app.state.orchestrator = PredictionOrchestrator(client, cache, policy=load_policy())
    app.state.orchestrator.load_last_input()
    app.state.health = HealthChecker(client)

    yield

    await client.aclose()


app = FastAPI(
    title="Water Potability API",
    description="Validates water chemistry and predicts potability",
    lifespan=lifespan
)

tracer, meter = setup_telemetry(app, "potability-api")

predict_counter = meter.create_counter("potability_predictions_total")
predict_latency = meter.create_histogram("potability_predict_duration_ms")


# Health Endpoints
@app.get("/startup")
async def startup():
    """Startup probe - returns 200 once the remote API has been probed."""
    if await app.state.health.startup_check():
        return {"status": "started", "service": "potability-api"}
    raise HTTPException(status_code=503, detail="Service starting")


@app.get("/health")
async def health():
    """Liveness probe - returns 200 if process is alive."""
    if await app.state.health.liveness_check():
        return {"status": "healthy", "service": "potability-api", "version": os.getenv("SERVICE_VERSION", "1.0.0")}
    raise HTTPException(status_code=500, detail="Service unhealthy")


@app.get("/ready")
async def ready():
    """Readiness probe - reports remote reachability as well."""
    if await app.state.health.readiness_check():
        return {
            "status": app.state.health.state.value,
            "service": "potability-api",
            "remote_reachable": app.state.health.remote_reachable,
        }
    raise HTTPException(status_code=503, detail="Service not ready")


# Reference data
@app.get("/parameters", response_model=List[ParameterInfo])
async def parameters():
    return [
        ParameterInfo(
            name=p.name,
            label=p.label,
            unit=p.unit,
            min_value=p.min_value,
            max_value=p.max_value,
            optimal_range=p.optimal_range,
            description=p.description,
        )
        for p in all_parameters()
    ]


@app.get("/samples/{kind}")
async def sample(kind: str):
    if kind not in SAMPLES:
        raise HTTPException(status_code=404, detail={"error": "unknown_sample", "sample": kind})
    return SAMPLES[kind]


@app.get("/last-input")
async def last_input():
    """Form values from the last validated input, for pre-filling."""
    return app.state.orchestrator.form_values()


# Validation and prediction
@app.post("/validate", response_model=ValidateResponse)
async def validate(form: RawForm):
    results = validate_form(form)
    return ValidateResponse(
        valid=all(r.is_valid for r in results.values()),
        completion=completion_ratio(form),
        fields=_field_view(results),
        errors=collect_errors(results),
        warnings=collect_warnings(results),
    )


@app.post("/predict", response_model=PredictEnvelope)
async def predict(form: RawForm):
    """
    Validate the form and return a potability verdict.

    Validation failures and remote failures are reported inside the
    envelope's ``response`` with ``success = false``; the HTTP status stays
    200 unless another prediction is already in progress (409).
    """
    orchestrator: PredictionOrchestrator = app.state.orchestrator
    if orchestrator.is_loading:
        predict_counter.add(1, {"outcome": "rejected"})
        raise HTTPException(status_code=409, detail={"error": "prediction_in_progress"})

    start_time = time.time()
    response = await orchestrator.predict(form)
    latency_ms = (time.time() - start_time) * 1000

    predict_counter.add(1, {"outcome": "success" if response.success else "error"})
    predict_latency.record(latency_ms, {"state": orchestrator.state.value})

    return PredictEnvelope(
        response=response,
        state=orchestrator.state.value,
        fields=_field_view(orchestrator.field_results),
        input_warnings=orchestrator.warnings,
    )


# Error handlers
@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors."""
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "message": str(exc),
            "service": "potability-api"
        }
    )


if __name__ == "__main__":
    uvicorn.run(
        app,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
