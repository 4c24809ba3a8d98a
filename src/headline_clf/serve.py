from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Dict, List, Union

from fastapi import APIRouter, FastAPI
from pydantic import BaseModel, Field
import uvicorn

from headline_clf.config import LOG_FORMAT
from headline_clf.predict_text import Predictor

LOGGER = logging.getLogger(__name__)


class PredictRequest(BaseModel):
    text: str = Field(..., description="Headline to classify")


class PredictResponse(BaseModel):
    predictions: List[Dict[str, float]]


class ErrorResponse(BaseModel):
    error: str


def build_router(predictor: Predictor) -> APIRouter:
    router = APIRouter()

    @router.get("/hc")
    async def health_check():
        return {"status": "healthy"}

    @router.post("/predict", response_model=Union[PredictResponse, ErrorResponse])
    def predict(body: PredictRequest):
        try:
            predictions = predictor.predict(body.text)
        except (ValueError, RuntimeError) as exc:
            LOGGER.warning("Prediction failed: %s", exc)
            return ErrorResponse(error=str(exc))
        return PredictResponse(predictions=predictions)

    return router


def create_app(predictor: Predictor) -> FastAPI:
    app = FastAPI(title="Headline Classifier", version="0.1.0")
    app.include_router(build_router(predictor))
    LOGGER.info("FastAPI app ready | classes=%s threshold=%.2f", len(predictor.index_to_class), predictor.threshold)
    return app


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Serve headline predictions over HTTP.")
    parser.add_argument("--artifact_dir", type=Path, required=True)
    parser.add_argument("--host", type=str, default="127.0.0.1")
    parser.add_argument("--port", type=int, default=3030)
    parser.add_argument("--threshold", type=float, default=None)
    return parser


def main() -> None:
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    args = _build_arg_parser().parse_args()
    predictor = Predictor(args.artifact_dir, threshold=args.threshold)
    uvicorn.run(create_app(predictor), host=args.host, port=args.port)


if __name__ == "__main__":
    main()
