"""
Event Ticketing Marketplace - FastAPI Backend
Main application entry point
"""

import os
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
import uvicorn

from app.core.config import settings
from app.core.db import engine, Base, SessionLocal
from app.api import routes_discounts, routes_events, routes_public, routes_transactions
from app.services.payment_window import ExpirySweeper
from app.utils.responses import register_error_handlers

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    # Create database tables
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created")

    sweeper = ExpirySweeper(SessionLocal, settings.EXPIRY_SWEEP_INTERVAL_SECONDS)
    sweeper.start()
    yield
    await sweeper.stop()
    logger.info("Application shutdown")

# Create FastAPI application
app = FastAPI(
    title="Event Ticketing Marketplace",
    description="Ticket reservation and payment confirmation backend",
    version="1.0.0",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Uploaded payment proofs
os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

# Include routers
app.include_router(routes_public.router, tags=["public"])
app.include_router(routes_events.router, prefix="/events", tags=["events"])
app.include_router(routes_transactions.router, prefix="/transactions", tags=["transactions"])
app.include_router(routes_discounts.router, tags=["discounts"])

# Note: Run this ASGI app directly with Uvicorn or Hypercorn. For Gunicorn,
# use `uvicorn.workers.UvicornWorker` instead of wrapping the app.

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="127.0.0.1",
        port=8000,
        reload=True
    )
