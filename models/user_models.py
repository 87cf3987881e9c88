"""
Dashboard User Records

Admin-managed user accounts stored in the document store under `/users`:

    /users/<id> = {
        "username": "jdoe",
        "email": "jdoe@example.com",
        "role": "admin" | "<home code>" | any free-form role,
        "loginCount": 0,
        "createdAt": "2024-05-01T09:30:00+00:00",
        "passwordHash": "<sha256 hex>"
    }

Roles are free-form strings. The admin UI offers `admin` plus every current
home code, but a role is stored as given.

Note:
    SHA-256 is used for simplicity. Production systems should use bcrypt
    or Argon2 with salt for better protection against rainbow table attacks.
"""

import hashlib
import secrets
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from models.document_store import DocumentStore

USERS_PATH = "/users"
EMAIL_DOMAIN = "example.com"

# Fields never returned to API callers
PRIVATE_FIELDS = frozenset({"passwordHash"})


def hash_password(password: str) -> str:
    """Hash password using SHA-256.

    Returns:
        64-character hexadecimal hash string
    """
    return hashlib.sha256(password.encode('utf-8')).hexdigest()


def verify_password(password: str, password_hash: str) -> bool:
    return secrets.compare_digest(hash_password(password), password_hash or "")


def generate_user_id() -> str:
    """28-character hex identifier, unique for practical purposes."""
    return secrets.token_hex(14)


def public_user(user_id: str, record: Dict[str, Any]) -> Dict[str, Any]:
    """User record as returned by the API (no credentials)."""
    user = {k: v for k, v in record.items() if k not in PRIVATE_FIELDS}
    user['id'] = user_id
    user.setdefault('username', None)
    user.setdefault('email', None)
    user.setdefault('loginCount', 0)
    user.setdefault('createdAt', None)
    return user


def list_users(store: DocumentStore) -> List[Dict[str, Any]]:
    """All users, oldest first. Malformed entries are skipped."""
    users = store.get(USERS_PATH) or {}
    if not isinstance(users, dict):
        return []
    items = [public_user(uid, rec) for uid, rec in users.items() if isinstance(rec, dict)]
    items.sort(key=lambda u: (u.get('createdAt') or '', u['id']))
    return items


def get_user(store: DocumentStore, user_id: str) -> Optional[Dict[str, Any]]:
    record = store.get(f"{USERS_PATH}/{user_id}")
    return record if isinstance(record, dict) else None


def username_taken(store: DocumentStore, username: str) -> bool:
    wanted = username.strip().lower()
    users = store.get(USERS_PATH) or {}
    if not isinstance(users, dict):
        return False
    return any(
        isinstance(rec, dict) and (rec.get('username') or '').strip().lower() == wanted
        for rec in users.values()
    )


def create_user(store: DocumentStore, username: str, password: str, role: str) -> Dict[str, Any]:
    """Store a new user and return its public record.

    Uniqueness is checked with a separate read, so two simultaneous requests
    for the same username can both succeed.
    """
    user_id = generate_user_id()
    record = {
        'username': username,
        'email': f"{username}@{EMAIL_DOMAIN}",
        'role': role,
        'loginCount': 0,
        'createdAt': datetime.now(timezone.utc).replace(microsecond=0).isoformat(),
        'passwordHash': hash_password(password),
    }
    store.set(f"{USERS_PATH}/{user_id}", record)
    return public_user(user_id, record)


def update_user_role(store: DocumentStore, user_id: str, role: str) -> Optional[Dict[str, Any]]:
    """Set a user's role. Returns None if the user does not exist."""
    record = get_user(store, user_id)
    if record is None:
        return None
    record['role'] = role
    store.set(f"{USERS_PATH}/{user_id}", record)
    return public_user(user_id, record)


def delete_user(store: DocumentStore, user_id: str) -> bool:
    """Remove a user. Returns False if the user does not exist."""
    if get_user(store, user_id) is None:
        return False
    store.delete(f"{USERS_PATH}/{user_id}")
    return True
