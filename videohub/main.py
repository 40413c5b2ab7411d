from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from .database import create_indexes, videos_collection
from .config import settings
from .errors import ApiError
from .responses import ApiResponse
from .feed_routes import router as feed_router
from .engagement_routes import router as engagement_router

# Setup logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger("uvicorn")

app = FastAPI(title=settings.PROJECT_NAME, version=settings.PROJECT_VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(feed_router, prefix="/api", tags=["Feeds"])
app.include_router(engagement_router, prefix="/api", tags=["Engagement"])


@app.exception_handler(ApiError)
def api_error_handler(request: Request, exc: ApiError):
    if exc.status_code >= 500:
        logger.error(f"❌ {request.method} {request.url.path} failed: {exc.message}")
    body = ApiResponse(statusCode=exc.status_code, data=None, message=exc.message)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


@app.on_event("startup")
def prepare_database():
    # --- DB Connection Check ---
    try:
        create_indexes()
        count = videos_collection.count_documents({})
        logger.info(f"✅ DATABASE CHECK: Found {count} videos in 'videos' collection.")
    except Exception as e:
        logger.error(f"❌ DATABASE CONNECTION ERROR: {e}")


@app.get("/")
def read_root():
    """Health check endpoint."""
    return {"status": "VideoHub Backend is running", "version": settings.PROJECT_VERSION}
