"""FastAPI application entry point."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from wabnet import __version__
from wabnet.config import settings
from wabnet.log import configure_logging
from wabnet.routers import opportunities, storage

configure_logging(settings.log_level)

app = FastAPI(
    title="Opportunities API",
    description="Backend API for the opportunities board and its admin workflow",
    version=__version__,
)

# CORS middleware to allow the frontend to call the API
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url, settings.api_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount routers
app.include_router(opportunities.router, prefix="/api")
app.include_router(storage.router)
