"""
Database Models Package

Contains the document store and the records kept in it.
"""

from .document_store import DocumentStore, split_path
from .user_models import (
    hash_password,
    verify_password,
    generate_user_id,
    create_user,
    get_user,
    list_users,
    update_user_role,
    delete_user,
)

__all__ = [
    'DocumentStore',
    'split_path',
    'hash_password',
    'verify_password',
    'generate_user_id',
    'create_user',
    'get_user',
    'list_users',
    'update_user_role',
    'delete_user',
]
