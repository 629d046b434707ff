"""FastAPI application entry point."""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from formrunner import __version__
from formrunner.config import get_settings
from formrunner.routers import forms, preview

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title=settings.app_name,
    description="Multi-step form runtime with conditional navigation, validation and progress tracking",
    version=__version__,
    debug=settings.debug,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(forms.router, prefix="/api/forms", tags=["Form Runtime"])
app.include_router(preview.router, prefix="/api/preview", tags=["Preview Sessions"])


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "formrunner"}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Form Runtime Service API",
        "docs": "/docs",
        "health": "/health",
    }
