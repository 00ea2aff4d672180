"""
Resin Order Tracker API - Main Application.

FastAPI application with CORS enabled for frontend communication.
"""

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import __version__

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Create FastAPI application
app = FastAPI(
    title="Resin Order Tracker API",
    description="REST API for tracking resin lots, sale items, clients and monthly profit",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Configure CORS - Allow all origins for development
# TODO: Restrict origins once the dashboard has a fixed deployment URL
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns the API status and version.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "resin-order-tracker-api"
    }


@app.get("/", tags=["Root"])
def root():
    """
    Root endpoint with API information.
    """
    return {
        "message": "Resin Order Tracker API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


# Import and include routers
from api.routers import clients, profit, resin_lots, sale_items

app.include_router(resin_lots.router, prefix="/api/v1", tags=["Resin Lots"])
app.include_router(sale_items.router, prefix="/api/v1", tags=["Sale Items"])
app.include_router(clients.router, prefix="/api/v1", tags=["Clients"])
app.include_router(profit.router, prefix="/api/v1", tags=["Profit"])
