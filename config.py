from dataclasses import dataclass, field
from pathlib import Path
from typing import List
import logging
import os

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent

try:
    # Prefer loading .env from project root (if exists)
    from dotenv import load_dotenv  # type: ignore

    env_file = PROJECT_ROOT / '.env'
    if env_file.exists():
        load_dotenv(env_file)
        logger.info(f"Loaded environment from: {env_file}")
    else:
        load_dotenv()  # Fallback to current directory
except Exception as e:
    # Continue with process environment only
    logger.warning(f"Could not load .env file: {e}")


DEFAULT_PIP_PACKAGES = ["pdfplumber", "openai", "pandas", "python-dotenv", "openpyxl"]


def _require_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Missing environment variable: {name}")
    return value


@dataclass
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str


def load_db_config() -> DBConfig:
    host = _require_env("DB_HOST")
    port_raw = _require_env("DB_PORT")
    user = _require_env("DB_USER")
    password = _require_env("DB_PASSWORD")
    database = _require_env("DB_NAME")
    try:
        port = int(port_raw)
    except Exception as e:
        raise RuntimeError(f"Invalid DB_PORT: {port_raw}") from e
    return DBConfig(host=host, port=port, user=user, password=password, database=database)


@dataclass
class ProcessingConfig:
    """Where uploads land and how the behaviour scripts are run.

    Attributes:
        processing_root: Base directory holding one folder per home
            (each folder contains the home's scripts and a downloads/ subfolder)
        python_executable: Interpreter used to run the scripts
        step_timeout_seconds: Upper bound for a single pipeline step
        pip_packages: Packages installed before the scripts run (best effort)
    """
    processing_root: Path
    python_executable: str = "python3"
    step_timeout_seconds: float = 600.0
    pip_packages: List[str] = field(default_factory=lambda: list(DEFAULT_PIP_PACKAGES))


def load_processing_config() -> ProcessingConfig:
    root_raw = os.getenv("PROCESSING_ROOT") or str(PROJECT_ROOT / "python")
    python_executable = os.getenv("PIPELINE_PYTHON") or "python3"

    timeout_raw = os.getenv("PIPELINE_STEP_TIMEOUT") or "600"
    try:
        timeout = float(timeout_raw)
    except Exception as e:
        raise RuntimeError(f"Invalid PIPELINE_STEP_TIMEOUT: {timeout_raw}") from e
    if timeout <= 0:
        raise RuntimeError(f"Invalid PIPELINE_STEP_TIMEOUT: {timeout_raw}")

    packages_raw = os.getenv("PIPELINE_PIP_PACKAGES")
    if packages_raw:
        packages = [p.strip() for p in packages_raw.split(",") if p.strip()]
    else:
        packages = list(DEFAULT_PIP_PACKAGES)

    return ProcessingConfig(
        processing_root=Path(root_raw),
        python_executable=python_executable,
        step_timeout_seconds=timeout,
        pip_packages=packages,
    )
