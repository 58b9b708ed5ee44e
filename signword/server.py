#!/usr/bin/env python3
"""
Sign Word Recognizer - FastAPI Server
Exposes label training, prediction and model persistence over HTTP
"""

import os
import logging
from contextlib import asynccontextmanager
from typing import Dict, List, Optional
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from dotenv import load_dotenv

from .config import Cfg, load_config
from .controller import ModelController
from .embedding import build_embedder
from .errors import (
    DimensionMismatchError,
    DuplicateLabelError,
    EmbeddingUnavailableError,
    EmptyLabelError,
    EmptyModelError,
    ModelLoadFailedError,
    ModelNotReadyError,
    SaveFailedError,
    SignWordError,
    StorageUnavailableError,
    UnknownLabelError,
)
from .recognizer import WordRecognizer
from .storage import build_storage

logger = logging.getLogger(__name__)

# Error -> HTTP status
ERROR_STATUS = {
    EmptyLabelError: 400,
    UnknownLabelError: 404,
    DuplicateLabelError: 409,
    EmptyModelError: 409,
    ModelNotReadyError: 409,
    DimensionMismatchError: 422,
    EmbeddingUnavailableError: 503,
    StorageUnavailableError: 503,
    SaveFailedError: 503,
    ModelLoadFailedError: 503,
}

# Request/Response models
class LabelRequest(BaseModel):
    label: str

class ImageRequest(BaseModel):
    image: str  # base64 or data URI

class BurstRequest(BaseModel):
    images: List[str]
    interval_ms: Optional[int] = None

class StatusResponse(BaseModel):
    status: str
    state: str
    dirty: bool
    saving: bool
    labels: List[str]
    counts: Dict[str, int]

class LabelResponse(BaseModel):
    label: str
    count: int
    counts: Dict[str, int]

class BurstResponse(BaseModel):
    label: str
    added: int
    count: int

class PredictResponse(BaseModel):
    word: str
    confidence: float
    accepted: bool
    sentence: Optional[str] = None
    history: List[str]
    timestamp: str

class SaveResponse(BaseModel):
    success: bool
    dirty: bool
    timestamp: str


def create_app(cfg: Optional[Cfg] = None, controller: Optional[ModelController] = None,
               recognizer: Optional[WordRecognizer] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        cfg: Configuration; loaded from SIGNWORD_CONFIG or the packaged default if None
        controller: Pre-built controller; built from cfg if None
        recognizer: Pre-built recognizer; built from cfg if None
    """
    if cfg is None:
        cfg = load_config(os.getenv("SIGNWORD_CONFIG"))
    if controller is None:
        controller = ModelController.from_config(
            cfg, build_embedder(cfg.embedding), build_storage(cfg.storage)
        )
    if recognizer is None:
        recognizer = WordRecognizer.from_config(cfg, controller)

    # Lifespan manager for FastAPI
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Load the saved model on startup"""
        logger.info("🚀 Starting Sign Word Recognizer...")
        try:
            await controller.load_model()
            recognizer.refresh_targets()
            logger.info(f"✅ Model ready with labels: {controller.labels}")
        except ModelLoadFailedError as e:
            # Keep serving; training stays blocked until /load succeeds or /reset
            logger.error(f"❌ Model load failed: {e}")

        yield

        logger.info("🧹 Shutting down server...")
        if controller.dirty:
            logger.warning("⚠️ Shutting down with unsaved changes")

    app = FastAPI(
        title="Sign Word Recognizer API",
        description="Train webcam gestures as words and recognize words and sentences",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.cfg = cfg
    app.state.controller = controller
    app.state.recognizer = recognizer

    @app.exception_handler(SignWordError)
    async def signword_error_handler(request: Request, exc: SignWordError):
        status = next(
            (code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), 500
        )
        if status >= 500:
            logger.error(f"❌ {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status,
            content={"error": type(exc).__name__, "detail": str(exc)}
        )

    @app.get("/", response_model=StatusResponse)
    async def root():
        """Health check endpoint"""
        return StatusResponse(
            status="online",
            state=controller.state.value,
            dirty=controller.dirty,
            saving=controller.is_saving,
            labels=controller.labels,
            counts=controller.example_counts()
        )

    @app.post("/labels", response_model=LabelResponse, status_code=201)
    async def add_label(request: LabelRequest):
        """Register a new word or sentence label"""
        label = controller.add_label(request.label)
        recognizer.refresh_targets()
        return LabelResponse(label=label, count=0, counts=controller.example_counts())

    @app.delete("/labels/{label}", response_model=LabelResponse)
    async def delete_label(label: str, remove: bool = False):
        """Clear a label's examples, or remove the label entirely with ?remove=true"""
        changed = controller.remove_label(label) if remove else controller.clear_label(label)
        if not changed:
            raise UnknownLabelError(label)
        return LabelResponse(label=label, count=0, counts=controller.example_counts())

    @app.post("/labels/{label}/examples", response_model=LabelResponse)
    async def add_example(label: str, request: ImageRequest):
        """Capture one training example"""
        count = await controller.capture_example(label, request.image)
        return LabelResponse(label=label, count=count, counts=controller.example_counts())

    @app.post("/labels/{label}/burst", response_model=BurstResponse)
    async def add_burst(label: str, request: BurstRequest):
        """Capture a burst of training examples in order"""
        if len(request.images) > cfg.capture.burst_size:
            return JSONResponse(
                status_code=400,
                content={
                    "error": "BurstTooLarge",
                    "detail": f"At most {cfg.capture.burst_size} images per burst"
                }
            )
        interval_ms = cfg.capture.interval_ms if request.interval_ms is None else request.interval_ms
        added = await controller.capture_burst(label, request.images, interval_s=interval_ms / 1000.0)
        return BurstResponse(label=label, added=added, count=controller.count_for(label))

    @app.post("/predict", response_model=PredictResponse)
    async def predict(request: ImageRequest):
        """Recognize the word shown in a snapshot"""
        result = await recognizer.recognize(request.image)
        return PredictResponse(
            word=result.word,
            confidence=result.confidence,
            accepted=result.accepted,
            sentence=result.sentence,
            history=result.history,
            timestamp=datetime.now().isoformat()
        )

    @app.post("/history/clear")
    async def clear_history():
        """Forget recognized words and the detected sentence"""
        recognizer.reset_history()
        return {"success": True}

    @app.post("/save", response_model=SaveResponse)
    async def save():
        """Persist the trained dataset"""
        await controller.save()
        return SaveResponse(success=True, dirty=controller.dirty, timestamp=datetime.now().isoformat())

    @app.post("/load", response_model=StatusResponse)
    async def load():
        """Reload the persisted dataset, discarding unsaved changes"""
        await controller.load_model()
        recognizer.refresh_targets()
        return await root()

    @app.post("/reset", response_model=StatusResponse)
    async def reset():
        """Start over with an empty model"""
        controller.reset()
        recognizer.reset_history()
        return await root()

    return app


def main():
    import uvicorn

    load_dotenv()
    cfg = load_config(os.getenv("SIGNWORD_CONFIG"))
    logging.basicConfig(level=getattr(logging, cfg.logging.level, logging.INFO))

    logger.info(f"🚀 Starting FastAPI server on http://{cfg.server.host}:{cfg.server.port}")
    logger.info(f"📚 API documentation available at http://localhost:{cfg.server.port}/docs")

    uvicorn.run(
        create_app(cfg),
        host=cfg.server.host,
        port=cfg.server.port,
        log_level=cfg.logging.level.lower()
    )


if __name__ == "__main__":
    main()
