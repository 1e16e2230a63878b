import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from .api import analytics, links, redirect
from .config import settings
from .core.exceptions import ShortLinkError, ValidationError
from .services.store import default_store
from .utils.validators import collect_error_messages

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Open the record store once per process and release it on shutdown
    default_store.open()
    yield
    default_store.close()


# Initialize FastAPI app
app = FastAPI(
    title="Clicktrail",
    description="URL shortener with click analytics",
    version="1.0.0",
    lifespan=lifespan
)

# Setup rate limiter
app.state.limiter = links.limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(ShortLinkError)
async def short_link_error_handler(request: Request, exc: ShortLinkError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    content = {"success": False, "error": exc.message}
    if exc.details:
        content["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Invalid request bodies become a 400 with one message per field"""
    error = ValidationError("Invalid input data", details=collect_error_messages(exc.errors()))
    logger.info("Validation error on %s %s: %s", request.method, request.url.path, error.details)
    return await short_link_error_handler(request, error)


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify exact origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(links.router, prefix="/api", tags=["links"])
app.include_router(analytics.router, prefix="/api", tags=["analytics"])
app.include_router(redirect.router, tags=["redirect"])


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "Clicktrail", "baseUrl": settings.BASE_URL}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
