"""
Home listing endpoints.

- Lists behaviour-enabled homes from the store root
- Role options for user management ({admin} + current homes)
- Overview metrics read-back per home
"""

from fastapi import APIRouter, Depends
import logging

from models.document_store import DocumentStore
from services.home_registry import available_roles, fetch_home_codes
from services.metrics_writer import read_overview_metrics, resolve_alt_name
from utils.errors import StoreError
from utils.shared import error_response, get_store

router = APIRouter(prefix="/api/admin", tags=["homes"])
logger = logging.getLogger(__name__)


@router.get('/homes')
def list_homes(store: DocumentStore = Depends(get_store)):
    """Summary: List behaviour-enabled homes (ascending).
    Returns: {success, homes[]} or 500 {error, details}"""
    try:
        homes = fetch_home_codes(store)
    except StoreError as e:
        logger.error(f"Error fetching homes: {e}")
        return error_response('Failed to fetch homes', 500, details=str(e), kind=e.kind)
    return {'success': True, 'homes': homes}


@router.get('/roles')
def list_roles(store: DocumentStore = Depends(get_store)):
    """Summary: Roles a user can be given right now.
    Returns: {success, roles[]} ("admin" first, then home codes)"""
    try:
        homes = fetch_home_codes(store)
    except StoreError as e:
        logger.error(f"Error fetching roles: {e}")
        return error_response('Failed to fetch roles', 500, details=str(e), kind=e.kind)
    return {'success': True, 'roles': available_roles(homes)}


@router.get('/homes/{home}/metrics')
def get_home_metrics(home: str, store: DocumentStore = Depends(get_store)):
    """Summary: Stored overview metrics for a home (alias-resolved).
    Returns: {success, home, storageKey, metrics}"""
    try:
        metrics = read_overview_metrics(store, home)
    except StoreError as e:
        logger.error(f"Error reading metrics for {home}: {e}")
        return error_response('Failed to fetch metrics', 500, details=str(e), kind=e.kind)
    return {'success': True, 'home': home, 'storageKey': resolve_alt_name(home), 'metrics': metrics}
