"""FastAPI application — ticket categorization REST API.

    POST /analyze                              single ticket
    POST /analyze/batch                        up to max_batch_size tickets
    POST /train                                fit + persist + swap both models
    POST /update                               hot-swap one model from an artifact
    POST /evaluate                             category accuracy on a labelled CSV
    GET  /model/info                           metadata of the bound models
    GET  /ready                                readiness + timestamp
    GET  /categories                           category list
    GET  /categories/{category}/subcategories  sub-category list
    POST /probabilities/categories             category distribution for text
    POST /probabilities/subcategories          sub-category distribution for text

Run:  uvicorn categorizer.api.main:app --reload
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from categorizer.analyzer import TicketAnalyzer
from categorizer.batch import BatchOrchestrator
from categorizer.catalog import DEFAULT_CATALOG
from categorizer.config import EVAL_DIR, LOG_FORMAT, LOG_LEVEL, MODEL_DIR
from categorizer.errors import (
    ArtifactNotFound,
    CategorizerError,
    DatasetNotFound,
    ModelNotReady,
    OperationTimeout,
    ValidationError,
)
from categorizer.lifecycle import ModelLifecycleManager
from categorizer.schemas import (
    AnalysisRequest,
    AnalysisResult,
    BatchRequest,
    BatchResult,
    EvaluationResult,
    ModelInfo,
    ReadyStatus,
)

logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
logger = logging.getLogger(__name__)

NOT_READY_DETAIL = "AI service is not ready. Please try again later."

# ── Request schemas ──────────────────────────────────────────────────────


class TrainModelRequest(BaseModel):
    training_data_path: str = Field(..., min_length=1, examples=["data/tickets.csv"])


class UpdateModelRequest(BaseModel):
    new_model_path: str = Field(..., min_length=1, examples=["exports/category_model.joblib"])


class EvaluateModelRequest(BaseModel):
    test_data_path: str = Field(..., min_length=1, examples=["data/tickets_test.csv"])


class TextAnalysisRequest(BaseModel):
    text: str = Field(..., examples=["Payment failed twice"])


class SubCategoryAnalysisRequest(BaseModel):
    text: str = Field(..., examples=["Payment failed twice"])
    category: str = Field(..., examples=["Billing"])


class MessageResponse(BaseModel):
    message: str


# ── Global state ─────────────────────────────────────────────────────────

_state: dict = {
    "manager": None,
    "analyzer": None,
    "orchestrator": None,
}


def _manager() -> ModelLifecycleManager:
    return _state["manager"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting categorizer API with model dir %s", MODEL_DIR)
    manager = ModelLifecycleManager(MODEL_DIR, report_dir=EVAL_DIR)
    manager.load()
    analyzer = TicketAnalyzer(manager, DEFAULT_CATALOG)
    _state["manager"] = manager
    _state["analyzer"] = analyzer
    _state["orchestrator"] = BatchOrchestrator(analyzer)

    yield

    _state["manager"] = None
    _state["analyzer"] = None
    _state["orchestrator"] = None


app = FastAPI(
    title="Ticket Categorizer",
    description=(
        "Classifies support tickets into a category and sub-category, "
        "returns confidence scores and probability distributions, and "
        "manages the lifecycle of the underlying models."
    ),
    version="1.0.0",
    lifespan=lifespan,
)


# ── Analysis ─────────────────────────────────────────────────────────────


@app.post("/analyze", response_model=AnalysisResult)
def analyze(req: AnalysisRequest):
    try:
        return _state["analyzer"].analyze(req)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.message)
    except ModelNotReady:
        logger.warning("ML model not ready for ticket %s", req.ticket_id)
        raise HTTPException(status_code=503, detail=NOT_READY_DETAIL)
    except Exception:
        logger.exception("Error analyzing ticket %s", req.ticket_id)
        raise HTTPException(status_code=500, detail="An error occurred while analyzing the ticket")


@app.post("/analyze/batch", response_model=BatchResult)
def analyze_batch(req: BatchRequest):
    if not req.tickets:
        raise HTTPException(status_code=400, detail="At least one ticket must be provided for batch analysis")
    if len(req.tickets) > req.max_batch_size:
        raise HTTPException(
            status_code=400,
            detail=f"Batch size cannot exceed {req.max_batch_size} tickets",
        )
    return _state["orchestrator"].analyze_batch(req)


# ── Lifecycle ────────────────────────────────────────────────────────────


@app.post("/train", response_model=MessageResponse)
def train(req: TrainModelRequest):
    try:
        ok = _manager().train(req.training_data_path)
    except DatasetNotFound:
        raise HTTPException(status_code=400, detail="Training data file not found")
    if not ok:
        raise HTTPException(status_code=500, detail="Model training failed")
    return MessageResponse(message="Model training completed successfully")


@app.post("/update", response_model=MessageResponse)
def update(req: UpdateModelRequest):
    try:
        ok = _manager().update(req.new_model_path)
    except ArtifactNotFound:
        raise HTTPException(status_code=400, detail="New model file not found")
    if not ok:
        raise HTTPException(status_code=500, detail="Model update failed")
    return MessageResponse(message="Model updated successfully")


@app.post("/evaluate", response_model=EvaluationResult)
def evaluate(req: EvaluateModelRequest):
    try:
        accuracy = _manager().evaluate(req.test_data_path)
    except DatasetNotFound:
        raise HTTPException(status_code=400, detail="Test data file not found")
    except OperationTimeout as exc:
        raise HTTPException(status_code=504, detail=exc.message)
    except CategorizerError:
        logger.exception("Error evaluating model")
        raise HTTPException(status_code=500, detail="An error occurred while evaluating the model")
    return EvaluationResult(accuracy=accuracy, test_data_path=req.test_data_path)


@app.get("/model/info", response_model=ModelInfo)
def model_info():
    return _manager().info()


@app.get("/ready", response_model=ReadyStatus)
def ready():
    return ReadyStatus(is_ready=_manager().is_ready())


# ── Catalog & probabilities ──────────────────────────────────────────────


@app.get("/categories", response_model=list[str])
def categories():
    return _state["analyzer"].catalog.categories()


@app.get("/categories/{category}/subcategories", response_model=list[str])
def sub_categories(category: str):
    if not category.strip():
        raise HTTPException(status_code=400, detail="Category is required")
    return _state["analyzer"].catalog.sub_categories(category)


@app.post("/probabilities/categories", response_model=dict[str, float])
def category_probabilities(req: TextAnalysisRequest):
    if not req.text.strip():
        raise HTTPException(status_code=400, detail="Text is required for analysis")
    return _state["analyzer"].category_probabilities(req.text)


@app.post("/probabilities/subcategories", response_model=dict[str, float])
def sub_category_probabilities(req: SubCategoryAnalysisRequest):
    if not req.text.strip():
        raise HTTPException(status_code=400, detail="Text is required for analysis")
    if not req.category.strip():
        raise HTTPException(status_code=400, detail="Category is required for sub-category analysis")
    return _state["analyzer"].sub_category_probabilities(req.text, req.category)
