"""
User management routes.

- List, create, change role, delete dashboard users
"""

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel
from typing import Any, Dict, Optional
import logging

from models import user_models as models
from models.document_store import DocumentStore
from utils.errors import StoreError
from utils.shared import error_response, get_store

router = APIRouter(prefix="/api/admin/users", tags=["users"])
logger = logging.getLogger(__name__)


class CreateUserRequest(BaseModel):
    """Summary: User creation payload.
    Fields: username, password (min 6), role (admin, a home code, or any new role)"""
    username: str = ''
    password: str = ''
    role: str = ''


class RoleUpdateRequest(BaseModel):
    role: str = ''


@router.get('')
def list_users(store: DocumentStore = Depends(get_store)):
    """Summary: List users (oldest first).
    Returns: {success, users[]}"""
    try:
        users = models.list_users(store)
    except StoreError as e:
        logger.error(f"Error fetching users: {e}")
        return error_response('Failed to fetch users', 500, details=str(e), kind=e.kind)
    return {'success': True, 'users': users}


@router.post('/create')
def create_user(req: CreateUserRequest, store: DocumentStore = Depends(get_store)):
    """Summary: Create user with validation and duplicate check.
    Returns: {success, user}. 400 on invalid input or duplicate username"""
    username = (req.username or '').strip()
    role = (req.role or '').strip()
    if len(username) < 3:
        return error_response('Username must be at least 3 characters', 400, kind='ValidationError')
    if not req.password or len(req.password) < 6:
        return error_response('Password must be at least 6 characters', 400, kind='ValidationError')
    if not role:
        return error_response('Role is required', 400, kind='ValidationError')
    try:
        if models.username_taken(store, username):
            return error_response('Username already exists', 400, kind='ValidationError')
        user = models.create_user(store, username, req.password, role)
    except StoreError as e:
        logger.error(f"Error creating user: {e}")
        return error_response('Failed to create user', 500, details=str(e), kind=e.kind)
    logger.info(f"Created user {user['id']} ({username}) with role {role}")
    return {'success': True, 'user': user}


@router.put('/{user_id}/role')
@router.patch('/{user_id}/role')
def update_role(user_id: str, req: RoleUpdateRequest, store: DocumentStore = Depends(get_store)):
    """Summary: Change a user's role.
    Returns: {success, user}. 400 empty role, 404 unknown user"""
    role = (req.role or '').strip()
    if not role:
        return error_response('Role is required', 400, kind='ValidationError')
    try:
        user = models.update_user_role(store, user_id, role)
    except StoreError as e:
        logger.error(f"Error updating user role: {e}")
        return error_response('Failed to update user role', 500, details=str(e), kind=e.kind)
    if user is None:
        return error_response('User not found', 404)
    return {'success': True, 'user': user}


def _delete(user_id: Optional[str], store: DocumentStore):
    user_id = (user_id or '').strip()
    if not user_id:
        return error_response('userId is required', 400, kind='ValidationError')
    try:
        deleted = models.delete_user(store, user_id)
    except StoreError as e:
        logger.error(f"Error deleting user: {e}")
        return error_response('Failed to delete user', 500, details=str(e), kind=e.kind)
    if not deleted:
        return error_response('User not found', 404)
    logger.info(f"Deleted user {user_id}")
    return {'success': True, 'deletedUserId': user_id}


@router.delete('')
def delete_user(payload: Dict[str, Any] = Body(default={}), store: DocumentStore = Depends(get_store)):
    """Summary: Delete user named in the body {userId}.
    Returns: {success, deletedUserId}"""
    return _delete(payload.get('userId'), store)


@router.delete('/{user_id}')
def delete_user_by_id(user_id: str, store: DocumentStore = Depends(get_store)):
    """Summary: Delete user by path id.
    Returns: {success, deletedUserId}"""
    return _delete(user_id, store)
