from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from axent.advisor_api import advisor_router
from axent.config import settings
from axent.database import init_db
from axent.errors import AxentError
from axent.market_api import market_router
from axent.scanner_api import scanner_router
from axent.utils.logger import get_logger

logger = get_logger(__name__)

FUNCTIONS_PREFIX = "/functions/v1"
FUNCTION_ROUTERS = (market_router, advisor_router, scanner_router)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    init_db()

    yield

    logger.info("Shutting down application")


app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)

# Include routers
for router in FUNCTION_ROUTERS:
    app.include_router(router, prefix=FUNCTIONS_PREFIX)


# Error handlers
@app.exception_handler(AxentError)
async def axent_error_handler(request: Request, exc: AxentError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=400,
        content={"error": f"{field}: {message}" if field else message},
    )


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "functions": sorted(
            route.path.lstrip("/")
            for router in FUNCTION_ROUTERS
            for route in router.routes
        ),
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat()
    }


if __name__ == "__main__":
    logger.info("Starting FastAPI server...")
    uvicorn.run("axent.main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG)
