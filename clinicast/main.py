import logging
from celery import Celery
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from clinicast.adapters.config.settings_loader import load_settings
from clinicast.adapters.stores.factory import build_store
from clinicast.core.domain.errors import InsufficientHistoryError, MalformedInputError
from clinicast.core.domain.models import SmoothingParameters
from clinicast.core.domain.readings import PainEntry, Reading, SignalType
from clinicast.core.domain.vitals import VitalsSnapshot
from clinicast.core.services.engine import ClinicalEngine
from clinicast.core.services.pain_model import PainPredictionService

# Configuration (Load from YAML with Env Overrides)
settings = load_settings()

# Logging
logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)

# Engine (one per process, state behind the configured store)
engine = ClinicalEngine(build_store(settings), settings)
pain_service = PainPredictionService(engine)

# Celery Application
celery_app = Celery("clinicast", broker=settings.redis_url, backend=settings.redis_url)

# FastAPI Application
app = FastAPI(title="Clinicast")


class ForecastBody(BaseModel):
    readings: list[Reading]
    horizon: int = Field(default=6, ge=0)
    interval_hours: float = Field(default=1.0, gt=0)
    use_tuned_parameters: bool = False


class ReadingsBody(BaseModel):
    readings: list[Reading]


class HistoryBody(BaseModel):
    values: list[float]


class AccuracySampleBody(BaseModel):
    predicted: float
    actual: float


class PainDiaryBody(BaseModel):
    entries: list[PainEntry]


@app.exception_handler(MalformedInputError)
async def malformed_input_handler(request: Request, exc: MalformedInputError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(InsufficientHistoryError)
async def insufficient_history_handler(request: Request, exc: InsufficientHistoryError):
    return JSONResponse(
        status_code=409,
        content={"detail": str(exc), "required": exc.required, "available": exc.available},
    )


@app.get("/health")
def health_check():
    return {"status": "ok", "version": "0.1.0", "store": settings.store_type}

@app.post("/forecast")
def forecast(body: ForecastBody):
    """
    Forecast a reading window. Tuned parameters are used only when requested.
    """
    params = None
    if body.use_tuned_parameters and body.readings:
        latest = body.readings[-1]
        params = engine.get_cached_parameters(latest.subject_id, latest.signal_type)
    return engine.forecast_readings(body.readings, body.horizon, body.interval_hours, params)

@app.post("/scores/news2")
def score_news2(vitals: VitalsSnapshot):
    return engine.score_news2(vitals)

@app.post("/scores/mews")
def score_mews(vitals: VitalsSnapshot):
    return engine.score_mews(vitals)

@app.post("/triggers")
def detect_triggers(body: ReadingsBody):
    return engine.detect_triggers(body.readings)

@app.post("/trend")
def classify_trend(body: ReadingsBody):
    return engine.classify_trend(body.readings)

@app.get("/parameters/{subject_id}/{signal_type}")
def get_parameters(subject_id: str, signal_type: SignalType):
    params = engine.get_cached_parameters(subject_id, signal_type)
    if params is None:
        return {"cached": False, **engine.default_parameters.model_dump()}
    return {"cached": True, **params.model_dump()}

@app.post("/parameters/{subject_id}/{signal_type}")
def optimize_parameters(subject_id: str, signal_type: SignalType, body: HistoryBody) -> SmoothingParameters:
    """
    Run the grid search now and cache the result for the subject/signal.
    """
    return engine.optimize_parameters(body.values, subject_id, signal_type)

@app.post("/parameters/{subject_id}/{signal_type}/retune")
def trigger_retune(subject_id: str, signal_type: SignalType, body: HistoryBody):
    """
    Dispatch the grid search to a background worker.
    """
    task = retune_parameters_task.delay(subject_id, signal_type.value, body.values)
    return {"message": "Retune triggered", "task_id": str(task.id)}

@app.get("/accuracy/{key}/{method}")
def get_accuracy(key: str, method: str):
    return engine.get_accuracy(key, method)

@app.post("/accuracy/{key}/{method}")
def record_accuracy(key: str, method: str, body: AccuracySampleBody):
    engine.record_accuracy(key, body.predicted, body.actual, method)
    return engine.get_accuracy(key, method)

@app.post("/pain/{subject_id}/train")
def train_pain_model(subject_id: str, body: PainDiaryBody):
    model = pain_service.train(subject_id, body.entries)
    return model.model_dump()

@app.post("/pain/{subject_id}/predict")
def predict_pain(subject_id: str, body: PainDiaryBody):
    return pain_service.predict_next_day(subject_id, body.entries)

@app.post("/pain/{subject_id}/alerts")
def pain_alerts(subject_id: str, body: PainDiaryBody):
    """
    Evaluate the pain diary for escalation, breakthrough, overuse and curve alerts.
    """
    return pain_service.check_alerts(subject_id, body.entries)

# Celery Tasks
@celery_app.task(name="clinicast.tasks.retune_parameters")
def retune_parameters_task(subject_id: str, signal_type: str, values: list[float]):
    """
    Background task to re-run the smoothing grid search for one subject/signal.
    """
    logger.info(f"Starting retune task for {subject_id}/{signal_type} over {len(values)} points")
    try:
        params = engine.optimize_parameters(values, subject_id, signal_type)
        return params.model_dump()
    except Exception as e:
        logger.error(f"Retune failed for {subject_id}/{signal_type}: {e}")
        raise e
