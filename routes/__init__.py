"""FastAPI route modules package.

Contains all API route modules (health, homes, users, behaviour processing).
Each module defines an APIRouter and endpoint handlers.
"""
