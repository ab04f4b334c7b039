import asyncio
import time
from functools import lru_cache

import structlog
from fastapi import FastAPI, Depends, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .engine import RiskAssessmentEngine
from .errors import AssessmentError
from .logging_config import configure_logging
from .models import AssessmentResult, ErrorResponse, SubmissionInput
from .settings import Settings

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()


def get_engine(settings: Settings = Depends(get_settings)) -> RiskAssessmentEngine:
    return RiskAssessmentEngine(settings)


settings = get_settings()
configure_logging(settings)
logger = structlog.get_logger(__name__)

# Implicit queue: extra requests wait on the semaphore
semaphore = asyncio.Semaphore(settings.max_concurrency)

api = FastAPI(title="Submission Risk Assessment API", version="1.0.0")
api.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["POST", "OPTIONS", "GET"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=CORS_HEADERS)


@api.exception_handler(AssessmentError)
async def assessment_error_handler(request: Request, exc: AssessmentError):
    return _error(exc.status_code, exc.message)


@api.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    fields = sorted({str(err["loc"][-1]) for err in exc.errors() if err.get("loc")})
    message = f"Invalid submission: {', '.join(fields)}" if fields else "Invalid submission"
    return _error(400, message)


@api.get("/health")
async def health():
    return {"status": "ok"}


@api.options("/")
@api.options("/analyze-submission")
async def preflight():
    return Response(status_code=200, headers=CORS_HEADERS)


@api.post(
    "/analyze-submission",
    response_model=AssessmentResult,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
@api.post("/", response_model=AssessmentResult, include_in_schema=False)
async def analyze_submission(
    payload: SubmissionInput,
    response: Response,
    engine: RiskAssessmentEngine = Depends(get_engine),
):
    start = time.time()
    async with semaphore:
        try:
            result = await engine.assess(payload)
        except AssessmentError:
            raise
        except Exception as e:
            logger.exception("assessment_failed", author_id=payload.author_id)
            raise AssessmentError(str(e) or "Analysis failed") from e

    response.headers.update(CORS_HEADERS)
    logger.info("request_complete", processing_ms=int((time.time() - start) * 1000))
    return result
