"""
Care Home Behaviours Admin - FastAPI Application

Main application entry point for the admin backend. Provides endpoints for:
- Behaviour-enabled home listing and role options
- User administration (list, create, change role, delete)
- Behaviour file ingestion: overview metrics merge, PDF/Excel upload,
  and the per-home processing script chain
- Liveness/readiness checks

Architecture:
- Modular router organization for separation of concerns
- CORS enabled for cross-origin frontend communication
- Dashboard tree kept in a MySQL-backed JSON document store
- Processing scripts run as child processes, one step at a time

Deployment:
- Development: Run via `python app.py` or `uvicorn app:app --reload`
- Production: Use Gunicorn/Uvicorn workers
"""

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from utils.shared import ensure_schema_initialized

# Import modular route handlers
from routes.health_routes import router as health_router
from routes.homes_routes import router as homes_router
from routes.users_routes import router as users_router
from routes.process_routes import router as process_router

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI application with metadata
app = FastAPI(
    title="Care Home Behaviours Admin API",
    version="1.0.0",
    description="Admin backend for the behaviours dashboard: homes, users and behaviour file processing"
)

# Configure CORS middleware for frontend communication
# Note: In production, replace "*" with specific allowed origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Ensure the node table exists (cold start on an empty database)
try:
    ensure_schema_initialized()
except Exception as e:
    # Routes report store errors per request if the database stays unavailable
    logger.warning(f"Document store schema not initialized: {e}")

app.include_router(health_router)    # Health check endpoints
app.include_router(homes_router)     # Homes, roles, metrics read-back
app.include_router(users_router)     # User administration
app.include_router(process_router)   # Behaviour file ingestion

# Development server entry point
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
        log_level="info"
    )
