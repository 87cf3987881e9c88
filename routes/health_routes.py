"""
Health and readiness endpoints.

- /api/health: liveness
- /healthz: readiness (document store reachable)
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from models.document_store import DocumentStore
from utils.errors import StoreError
from utils.shared import get_store

router = APIRouter()


@router.get('/api/health')
def api_health():
    """Summary: Liveness check.
    Returns: {status: "ok"}"""
    return {"status": "ok"}


@router.get('/healthz')
def healthz(store: DocumentStore = Depends(get_store)):
    """Summary: Readiness check (store round trip).
    Returns: {ok} or {ok: False, error}"""
    try:
        store.ping()
        return {"ok": True}
    except StoreError as e:
        return JSONResponse({"ok": False, "error": str(e)}, status_code=500)
