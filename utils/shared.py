from pathlib import Path
from typing import Any, List, Optional
import logging
import re

import pymysql
from fastapi.responses import JSONResponse

from config import ProcessingConfig, load_db_config, load_processing_config
from models.document_store import NODES_TABLE, DocumentStore
from utils.errors import BackendError, PipelineStepError

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).parent.parent  # backend directory
SCHEMA_SQL = BASE_DIR / "data" / "sql" / "store_schema.sql"

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def get_db_connection():
    cfg = load_db_config()
    return pymysql.connect(
        host=cfg.host,
        port=cfg.port,
        user=cfg.user,
        password=cfg.password,
        database=cfg.database,
        charset='utf8mb4',
        autocommit=False,
        cursorclass=pymysql.cursors.DictCursor,
    )


def ensure_database_exists() -> None:
    """Create target database if it does not exist.

    Connects without selecting a database first, then creates the
    configured database with UTF8MB4 if missing.
    """
    cfg = load_db_config()
    conn = None
    cur = None
    try:
        conn = pymysql.connect(
            host=cfg.host,
            port=cfg.port,
            user=cfg.user,
            password=cfg.password,
            charset='utf8mb4',
            autocommit=True,
            cursorclass=pymysql.cursors.DictCursor,
        )
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{cfg.database}` DEFAULT CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
    finally:
        if cur:
            cur.close()
        if conn:
            conn.close()


def ensure_schema_initialized(sql_file: Optional[Path] = None) -> None:
    """Summary: Ensure the node table exists; run schema SQL if missing.
    Args: sql_file: Optional path to SQL file (default: data/sql/store_schema.sql)"""
    sql_path = Path(sql_file) if sql_file else SCHEMA_SQL

    ensure_database_exists()

    conn = None
    cur = None
    try:
        conn = get_db_connection()
        cur = conn.cursor()
        cur.execute(
            "SELECT COUNT(*) AS cnt FROM information_schema.tables "
            "WHERE table_schema = DATABASE() AND table_name = %s",
            (NODES_TABLE,),
        )
        row = cur.fetchone() or {"cnt": 0}
        if int(row.get("cnt", 0)) > 0:
            return

        if not sql_path.exists():
            raise FileNotFoundError(f"Initialization SQL not found: {sql_path}")

        sql_text = sql_path.read_text(encoding="utf-8")
        statements = [s.strip() for s in sql_text.split(";") if s.strip()]
        for stmt in statements:
            cur.execute(stmt)

        conn.commit()
        logger.info(f"Document store schema initialized from {sql_path}")
    except Exception as exc:
        if conn:
            conn.rollback()
        logger.error(f"Error during schema initialization: {exc}")
        raise
    finally:
        if cur:
            cur.close()
        if conn:
            conn.close()


# FastAPI dependencies (overridden in tests)

def get_store() -> DocumentStore:
    return DocumentStore(get_db_connection)


def get_processing_config() -> ProcessingConfig:
    return load_processing_config()


# Form value parsing

def parse_int(value: Any) -> int:
    """Parse a leading signed integer from form text; anything else is 0.

    "12" -> 12, " -3" -> -3, "7.9" -> 7, "abc" -> 0, None -> 0
    """
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    match = _LEADING_INT.match(str(value))
    if not match:
        return 0
    return int(match.group(1))


def parse_residents(cell_value: Any) -> List[str]:
    """Comma-separated resident names -> ordered, de-duplicated list."""
    if cell_value is None:
        return []
    text = str(cell_value).strip()
    if not text:
        return []
    residents: List[str] = []
    for part in text.split(','):
        name = part.strip()
        if name and name not in residents:
            residents.append(name)
    return residents


# Error bodies

def error_response(error: str, status_code: int, details: Optional[str] = None, kind: Optional[str] = None) -> JSONResponse:
    body = {'error': error}
    if details is not None:
        body['details'] = details
    if kind is not None:
        body['kind'] = kind
    return JSONResponse(body, status_code=status_code)


def backend_error_response(error: str, exc: BackendError) -> JSONResponse:
    """Summary: Render a BackendError as {error, details, kind[, step]}."""
    body = {'error': error, 'details': str(exc), 'kind': exc.kind}
    if isinstance(exc, PipelineStepError):
        body['step'] = exc.step
    return JSONResponse(body, status_code=exc.status_code)
