import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from studio_api.api.router import api_router
from studio_api.core.config import settings
from studio_api.core.errors import StudioError

# Configure logging once for the whole service
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    description="Video studio API: Mux uploads, webhook reconciliation and R2 thumbnail/preview management.",
    version="1.0.0",
    debug=settings.DEBUG,
)

app.include_router(api_router, prefix=settings.API_V1_STR)

# Domain errors carry their own status code
@app.exception_handler(StudioError)
async def studio_exception_handler(request: Request, exc: StudioError):
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
    )

# Catch everything else
@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.error(f"An unhandled exception occurred: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "An internal server error occurred."},
    )

@app.get("/")
def read_root():
    return {"message": f"Welcome to {settings.APP_NAME}! The server is running."}

@app.get("/health")
def health_check():
    return {"status": "ok"}

logger.info("FastAPI application startup complete.")
