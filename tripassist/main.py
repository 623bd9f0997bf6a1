"""
FastAPI Application Entry Point.
"""
from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
import asyncio
import contextlib

from .api import router
from .config import configure_logging, settings
from .services.delivery import DeliveryService, get_delivery_service
from .services.session_store import run_expiry


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the session expiry sweeper for the lifetime of the app."""
    configure_logging(settings.log_level)
    delivery = get_delivery_service()
    sweeper = asyncio.create_task(
        run_expiry(delivery.store, settings.cleanup_interval_seconds)
    )
    yield
    sweeper.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweeper


# Create FastAPI app
app = FastAPI(
    title="Trip Assist",
    description="Travel itinerary delivery for an external workflow engine",
    version="1.0.0",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(router)


@app.get("/health")
async def health_check(delivery: DeliveryService = Depends(get_delivery_service)):
    """Health check endpoint."""
    return {
        "status": "healthy",
        "store": delivery.store.backend_name,
        "submission_mode": delivery.config.submission_mode
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "tripassist.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
