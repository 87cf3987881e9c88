from __future__ import annotations
import io
import json
import sys
import threading
from pathlib import Path

import pymysql
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient


# Ensure project module path available (backend directory)
_BACKEND_DIR = Path(__file__).resolve().parent.parent
if str(_BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(_BACKEND_DIR))

from config import ProcessingConfig  # noqa: E402
from models.document_store import DocumentStore  # noqa: E402
from services.pipeline import StepOutput  # noqa: E402
from utils.errors import PipelineStepError  # noqa: E402
from utils.shared import get_processing_config, get_store  # noqa: E402


# In-memory fake of the `store_nodes` table (stateful, counts reads/writes).
# Locking statements take a per-row lock held until commit, rollback or close.

class FakeDatabase:
    def __init__(self):
        self.nodes = {}
        self.reads = 0
        self.writes = 0
        self.unavailable = False
        self.locked_reads = 0
        self._mutex = threading.Lock()
        self._row_locks = {}

    def connect(self):
        if self.unavailable:
            raise pymysql.err.OperationalError(2003, "Can't connect to MySQL server")
        return _FakeConn(self)

    def seed(self, tree):
        for key, value in tree.items():
            self.nodes[key] = json.dumps(value)

    def tree(self):
        return {key: json.loads(raw) for key, raw in self.nodes.items()}

    def reset_counters(self):
        self.reads = 0
        self.writes = 0

    def lock_row(self, key, conn):
        if key in conn.held:
            return
        with self._mutex:
            lock = self._row_locks.setdefault(key, threading.Lock())
        if not lock.acquire(timeout=10):
            raise pymysql.err.OperationalError(1205, "Lock wait timeout exceeded")
        conn.held.add(key)

    def release_rows(self, conn):
        for key in conn.held:
            self._row_locks[key].release()
        conn.held.clear()


class _FakeCursor:
    def __init__(self, db: FakeDatabase, conn):
        self._db = db
        self._conn = conn
        self._rows = []

    def execute(self, sql: str, params=None):
        db = self._db
        if sql.startswith("SELECT node_key, node_value FROM"):
            db.reads += 1
            self._rows = [{'node_key': k, 'node_value': v} for k, v in db.nodes.items()]
        elif sql.startswith("SELECT node_value FROM") and "WHERE node_key = %s" in sql:
            if sql.endswith("FOR UPDATE"):
                db.lock_row(params[0], self._conn)
                db.locked_reads += 1
            db.reads += 1
            raw = db.nodes.get(params[0])
            self._rows = [{'node_value': raw}] if raw is not None else []
        elif sql.startswith("INSERT INTO `store_nodes`"):
            key, value, _updated_at = params
            db.lock_row(key, self._conn)
            if sql.endswith("node_key = node_key"):
                db.nodes.setdefault(key, value)
            else:
                db.writes += 1
                db.nodes[key] = value
            self._rows = []
        elif sql.startswith("DELETE FROM `store_nodes`"):
            db.lock_row(params[0], self._conn)
            db.writes += 1
            db.nodes.pop(params[0], None)
            self._rows = []
        elif sql.startswith("SELECT 1"):
            self._rows = [{'ok': 1}]
        else:
            raise AssertionError(f"Unexpected SQL in test: {sql}")
        return self

    def fetchall(self):
        return list(self._rows)

    def fetchone(self):
        return self._rows[0] if self._rows else None

    def close(self):
        pass


class _FakeConn:
    def __init__(self, db):
        self._db = db
        self.held = set()
        self._cursor = _FakeCursor(db, self)
    def cursor(self): return self._cursor
    def commit(self): self._db.release_rows(self)
    def rollback(self): self._db.release_rows(self)
    def close(self): self._db.release_rows(self)


# Pipeline invoker that records calls instead of spawning processes

class RecordingInvoker:
    def __init__(self, fail_on=(), stderr="Traceback: simulated failure"):
        self.fail_on = set(fail_on)
        self.stderr = stderr
        self.calls = []
        self.cwds = []

    async def __call__(self, step, cwd, timeout=None):
        self.calls.append(step.name)
        self.cwds.append(Path(cwd))
        if step.name in self.fail_on:
            raise PipelineStepError(step.name, "exited with status 1", returncode=1, stderr=self.stderr)
        return StepOutput(step=step.name, returncode=0, stdout=f"{step.name} done")


class FakeUpload:
    """Minimal stand-in for an UploadFile part."""
    def __init__(self, filename, content: bytes = b"data"):
        self.filename = filename
        self._buf = io.BytesIO(content)

    async def read(self, size: int = -1) -> bytes:
        return self._buf.read(size)


# Fixtures & router helper

@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()

@pytest.fixture
def store(fake_db) -> DocumentStore:
    return DocumentStore(fake_db.connect)

@pytest.fixture
def processing_config(tmp_path) -> ProcessingConfig:
    return ProcessingConfig(
        processing_root=tmp_path / "python",
        python_executable=sys.executable,
        step_timeout_seconds=30,
        pip_packages=[],
    )

@pytest.fixture
def invoker() -> RecordingInvoker:
    return RecordingInvoker()

@pytest.fixture
def app(store, processing_config, invoker) -> FastAPI:
    from routes.process_routes import get_step_invoker
    app = FastAPI()
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_processing_config] = lambda: processing_config
    app.dependency_overrides[get_step_invoker] = lambda: invoker
    return app

@pytest.fixture
def client(app):
    return TestClient(app)

def mount_router(app: FastAPI, module_path: str, attr: str = "router"):
    """Include a router from 'routes.xxx' into a fresh app."""
    mod = __import__(module_path, fromlist=[attr])
    app.include_router(getattr(mod, attr))
    return app
