# mdcat_generator/main.py
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .core.config import config
from .core.errors import GenerationError
from .core.ai_services import get_ai_service, close_ai_service
from .core.syllabus import SYLLABUS, UNIVERSITIES, syllabus_stats
from .core.utils import DateTimeUtils
from .models.schemas import describe_validation_errors
from .services.generation_service import close_generation_service
from .api.routes import router, generation_error_response, AVAILABLE_ENDPOINTS

# Setup logging
logging.basicConfig(
    level=getattr(logging, os.getenv('LOG_LEVEL', 'INFO').upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    logger.info(f"🚀 {config.API_TITLE} v{config.API_VERSION} starting...")

    try:
        # Validate configuration
        validation = config.validate()
        if not validation["valid"]:
            raise Exception(f"Configuration invalid: {validation['issues']}")

        logger.info("✅ Configuration validated")

        # Initialize AI service
        logger.info("🔄 Initializing AI service...")
        ai_service = get_ai_service()
        ai_health = ai_service.health_check()

        if ai_health["status"] != "healthy":
            raise Exception(f"AI service validation failed: {ai_health}")

        logger.info(f"✅ AI service ready ({ai_health['mode']} mode)")
        logger.info(f"🔐 API Key: {'✅ CONFIGURED' if config.has_api_key else '❌ MISSING'}")
        logger.info(f"🌟 Environment: {config.APP_ENV}")
        logger.info(f"📚 Syllabus coverage: {len(SYLLABUS)} subjects")

    except Exception as e:
        logger.error(f"❌ Startup failed: {e}")
        raise Exception(f"Application startup failed: {e}")

    yield

    # Cleanup on shutdown
    logger.info("👋 Shutting down...")
    close_generation_service()
    await close_ai_service()
    logger.info("✅ Graceful shutdown completed")

# Create FastAPI application
app = FastAPI(
    title=config.API_TITLE,
    description=config.API_DESCRIPTION,
    version=config.API_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=config.cors_origins != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Exception handlers
@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Handle malformed or out-of-range request bodies"""
    message = describe_validation_errors(exc.errors())
    logger.warning(f"Validation error: {message}")
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": message,
            "type": "validation_error"
        }
    )

@app.exception_handler(GenerationError)
async def generation_error_handler(request: Request, exc: GenerationError):
    """Handle generation errors raised outside the generate route"""
    logger.error(f"Generation error: {exc}")
    return generation_error_response(exc)

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal server error. Please try again." if config.is_production else str(exc),
            "type": "server_error"
        }
    )

# Include API routes
app.include_router(router)

# Health check endpoints
@app.get("/health")
async def health_check():
    """Service health and syllabus summary"""
    return {
        "status": "healthy",
        "timestamp": DateTimeUtils.get_iso_timestamp(),
        "hasApiKey": config.has_api_key,
        "environment": config.APP_ENV,
        "version": config.API_VERSION,
        "syllabusStats": syllabus_stats(),
        "universities": list(UNIVERSITIES)
    }

@app.get("/info")
async def api_info():
    """API information and capabilities"""
    return {
        "name": config.API_TITLE,
        "version": config.API_VERSION,
        "description": config.API_DESCRIPTION,
        "features": {
            "ai_question_generation": True,
            "offline_mode": config.offline_mode,
            "test_formats": ["full-test", "topic-test", "subject-test"]
        },
        "configuration": {
            "min_questions": config.MIN_QUESTION_COUNT,
            "max_questions": config.MAX_QUESTION_COUNT,
            "model": config.GROQ_MODEL,
            "timeout_seconds": config.GROQ_TIMEOUT
        },
        "endpoints": {
            "generate_questions": f"POST {AVAILABLE_ENDPOINTS[0]}",
            "health": "GET /health",
            "docs": "GET /docs"
        }
    }

if __name__ == "__main__":
    import uvicorn

    debug_mode = not config.is_production

    logger.info(f"🚀 Starting {config.API_TITLE}")
    logger.info(f"🌐 Server: http://{config.API_HOST}:{config.API_PORT}")
    logger.info(f"📊 Health check: http://{config.API_HOST}:{config.API_PORT}/health")

    uvicorn.run(
        "mdcat_generator.main:app",
        host=config.API_HOST,
        port=config.API_PORT,
        reload=debug_mode,
        log_level=os.getenv('LOG_LEVEL', 'info').lower(),
        access_log=debug_mode
    )
