"""FastAPI application entry point."""
from contextlib import asynccontextmanager

from fastapi import FastAPI

from runcoach.database import run_migrations
from runcoach.logging_config import configure_logging
from runcoach.routers import chat, health, training_plans
from runcoach.services.runner_session import get_runner_session


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Prepare logging and storage, then restore the runner session."""
    configure_logging()
    run_migrations()
    get_runner_session()
    yield


app = FastAPI(title="RunCoach API", lifespan=lifespan)


@app.get("/health", tags=["system"])
async def health_check() -> dict[str, str]:
    """Simple health probe for liveness checks."""
    return {"status": "ok"}


# Include routers
app.include_router(health.router)
app.include_router(training_plans.router)
app.include_router(chat.router)
