import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import router
from app.config import get_settings
from app.services.container import ServiceContainer

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


# =============================================================================
# LIFESPAN: Startup and Shutdown Logic
# =============================================================================
#
# Before 'yield' (startup): build every service once. For the SQL quota
# backend this also creates the accounts table if it does not exist.
#
# After 'yield' (shutdown): close HTTP clients, clear the caches and dispose
# the database connection pool.
#
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""

    # === STARTUP ===
    app.state.services = await ServiceContainer.start(get_settings())

    # === YIELD (server is now running and handling requests) ===
    yield

    # === SHUTDOWN ===
    await app.state.services.close()


app = FastAPI(
    title="Otto Reliability Engine",
    description="Multi-agent reliability scoring for text and documents",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
