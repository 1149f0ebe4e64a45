"""
Main FastAPI application.
"""
import logging
import uuid

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from regrader.api.v1.api import api_router
from regrader.core.config import settings
from regrader.core.error_responses import ErrorMessages
from regrader.core.errors import ExamAnalysisError
from regrader.core.logging_config import setup_logging

# Initialize logging configuration at startup
setup_logging()

logger = logging.getLogger(__name__)


# OpenAPI tags metadata
tags_metadata = [
    {
        "name": "health",
        "description": "Health check endpoints for monitoring application status",
    },
    {
        "name": "regrading",
        "description": "Regrade answer sheets under an edited answer key and rank students",
    },
    {
        "name": "cross-version",
        "description": "Per-question averages aggregated across exam versions",
    },
    {
        "name": "item-analysis",
        "description": "Difficulty, discrimination, distractor and reliability statistics",
    },
    {
        "name": "item-mapping",
        "description": "Detection and normalization of item analysis tables",
    },
]


def create_application() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description=(
            "**Exam Regrader API** - Regrading and item analysis of "
            "multi-version multiple-choice exams.\n\n"
            "This API provides:\n"
            "* Regrading of answer sheets under an edited answer key\n"
            "* Quartile ranking of students\n"
            "* Cross-version aggregation onto the master exam\n"
            "* Classical item analysis with keep/revise/investigate decisions\n"
        ),
        docs_url=f"{settings.API_V1_PREFIX}/docs",
        redoc_url=f"{settings.API_V1_PREFIX}/redoc",
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        openapi_tags=tags_metadata,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    # Include API router
    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    @app.exception_handler(ExamAnalysisError)
    async def analysis_exception_handler(request: Request, exc: ExamAnalysisError):
        """
        Report inconsistent exam data as 422 with the full analysis message.
        """
        logger.warning(
            f"Analysis rejected {request.method} {request.url.path}: "
            f"{exc.__class__.__name__}"
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": exc.message},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """
        Handle HTTP exceptions.
        """
        if exc.status_code >= 500:
            logger.error(f"HTTP {exc.status_code} on {request.url.path}: {exc.detail}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        """
        Handle request validation errors.
        """
        errors = [
            {
                "loc": list(error.get("loc", [])),
                "msg": str(error.get("msg", "")),
                "type": str(error.get("type", "")),
            }
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": errors},
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """
        Handle unexpected exceptions.

        Generates a unique error_id (UUID) for each exception so a specific
        failure can be traced in the logs. The error_id is included in the
        response body and logged with the full exception.
        """
        error_id = str(uuid.uuid4())

        logger.exception(
            f"Unhandled exception [error_id={error_id}]: {exc}",
            extra={"error_id": error_id},
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": ErrorMessages.INTERNAL_ERROR,
                "error_id": error_id,
            },
        )

    return app


app = create_application()


@app.get("/")
async def root():
    """
    Root endpoint.
    """
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": f"{settings.API_V1_PREFIX}/docs",
    }
