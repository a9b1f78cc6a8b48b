"""Main FastAPI application for the driving-stats admin backend."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .database import init_db, close_db
from .routers import push_router
from .services.push_provider import PushConfig, push_provider

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    logger.info("Starting drivestats admin backend")

    await init_db()
    logger.info("Database initialized")

    push_provider.configure(PushConfig.from_settings(settings))

    yield

    # Shutdown
    await push_provider.shutdown()
    await close_db()
    logger.info("Shutdown complete")


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report malformed request bodies as {"error": ...} with a 400."""
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())[1:])
        problems.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    return JSONResponse(status_code=400, content={"error": "; ".join(problems) or "Invalid request"})


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="DriveStats Admin",
        description="Push notification dispatch and device registration",
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS middleware for the admin dashboard
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, restrict to your domain
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.include_router(push_router)

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "push_enabled": push_provider.enabled,
        }

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.web_port)
