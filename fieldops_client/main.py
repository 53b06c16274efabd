from contextlib import asynccontextmanager
from typing import List, Optional
import logging

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from .config import get_settings, validate_settings
from .client.api_client import ApiClient
from .client.exceptions import ApiError
from .health import FunctionHealthChecker

settings = get_settings()

# Configure logging
logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    # Startup
    validate_settings(settings)
    app.state.settings = settings
    app.state.api_client = ApiClient(settings)
    app.state.health_checker = FunctionHealthChecker(app.state.api_client)
    logger.info(f"{settings.SERVICE_NAME} started successfully")

    yield

    # Shutdown
    await app.state.api_client.close()
    logger.info(f"{settings.SERVICE_NAME} shut down successfully")

app = FastAPI(
    title=settings.SERVICE_NAME,
    version=settings.VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan
)

@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": settings.VERSION}

@app.get(f"{settings.API_PREFIX}/health/functions")
async def function_health(
    request: Request,
    functions: Optional[List[str]] = Query(default=None)
):
    """Probe the platform's edge functions through the request client."""
    checker: FunctionHealthChecker = request.app.state.health_checker
    results = await checker.run(functions)
    return {
        **checker.summary(results),
        "results": [result.model_dump() for result in results]
    }

@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint"""
    try:
        return Response(
            generate_latest(),
            media_type=CONTENT_TYPE_LATEST
        )
    except Exception as e:
        logger.error(f"Error generating metrics: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail="Error generating metrics"
        )

# Error handlers
@app.exception_handler(ApiError)
async def api_error_handler(request, exc: ApiError):
    return JSONResponse(
        status_code=exc.status or 502,
        content={"error": exc.error.public_dict()},
    )

@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
    )
