"""
FastAPI application entry point.

Assembles the FastAPI app with the oracle router.
"""

import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from oracle_advisor import __version__
from oracle_advisor.config import load_config
from oracle_advisor.oracle.oracle_api import router as oracle_router
from oracle_advisor.shared.logging.config import resolve_level, setup_logging


# ============================================================================
# Logging configuration (single source of truth for the HTTP entry point)
# ============================================================================
setup_logging(
    level=resolve_level(load_config().log_level),
    structured=os.environ.get("ORACLE_LOG_JSON", "").lower() in ("1", "true", "yes"),
)


# Create FastAPI app
app = FastAPI(
    title="Oracle Advisor",
    description="Senior-engineer guidance from a remote model or the caller's own",
    version=__version__,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(oracle_router)


@app.get("/")
async def root():
    """Root endpoint with API information."""
    config = load_config()
    return {
        "name": "Oracle Advisor",
        "version": __version__,
        "services": {
            "oracle": {
                "status": "active",
                "endpoints": "/api/oracle",
                "model": config.default_model,
                "sampling_mode": config.sampling_mode.value,
            },
        },
    }


@app.get("/health")
async def health():
    """Global health check endpoint."""
    return {"status": "healthy"}


def run() -> None:
    import uvicorn

    uvicorn.run(
        app,
        host=os.environ.get("ORACLE_HOST", "0.0.0.0"),
        port=int(os.environ.get("ORACLE_PORT", "8000")),
    )


if __name__ == "__main__":
    run()
