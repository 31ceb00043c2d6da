# mdcat_generator/api/routes.py
import logging
from typing import Optional

from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse, JSONResponse

from ..core.config import config
from ..core.errors import ErrorKind, GenerationError
from ..core.utils import DateTimeUtils
from ..models.schemas import GenerateQuestionsRequest
from ..services.generation_service import get_generation_service

logger = logging.getLogger(__name__)

router = APIRouter()

AVAILABLE_ENDPOINTS = ["/api/generate-questions"]

# Client-facing messages for errors the user can only retry
RETRY_MESSAGES = {
    ErrorKind.TIMEOUT: "Generation timeout. Please try with fewer questions or try again later.",
    ErrorKind.UPSTREAM: "AI service temporarily unavailable. Please try again in a few minutes.",
}


def generation_error_response(exc: GenerationError, response_time: Optional[int] = None) -> JSONResponse:
    """Map a GenerationError to its HTTP response by kind"""
    content = {
        "success": False,
        "error": RETRY_MESSAGES.get(exc.kind, exc.message),
        "type": exc.kind.value
    }
    if exc.kind in RETRY_MESSAGES and not config.is_production:
        content["detail"] = exc.message
    if response_time is not None:
        content["responseTime"] = response_time
    return JSONResponse(status_code=exc.status_code, content=content)


@router.get("/", response_class=FileResponse)
async def home():
    """Serve the client page"""
    index_path = config.STATIC_DIR / "index.html"
    if not index_path.exists():
        raise HTTPException(status_code=404, detail="index.html not found")
    return FileResponse(index_path)


@router.post("/api/generate-questions")
@router.post("/generate-questions")
async def generate_questions(payload: GenerateQuestionsRequest):
    """Generate a validated MDCAT question set"""
    start_time = DateTimeUtils.get_current_timestamp()
    logger.info(f"📥 Received request: {payload.model_dump(by_alias=True, exclude_none=True)}")

    try:
        params = payload.to_params()
        logger.info(f"🔧 Final generation parameters: {params}")

        generation_service = get_generation_service()
        questions = await generation_service.generate_test(params)

    except GenerationError as e:
        response_time = DateTimeUtils.elapsed_ms(start_time)
        logger.error(f"❌ Question generation failed after {response_time}ms: {e}")
        return generation_error_response(e, response_time)

    response_time = DateTimeUtils.elapsed_ms(start_time)
    logger.info(f"✅ Generated {len(questions)} questions in {response_time}ms")

    return {
        "success": True,
        "questions": questions,
        "metadata": generation_service.build_metadata(params, questions, response_time)
    }


@router.api_route("/api/{path:path}", methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"])
async def api_not_found(path: str):
    """Unknown API endpoints"""
    return JSONResponse(
        status_code=404,
        content={
            "success": False,
            "error": "API endpoint not found",
            "availableEndpoints": AVAILABLE_ENDPOINTS
        }
    )
