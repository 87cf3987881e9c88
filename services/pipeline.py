"""
Behaviour processing pipeline.

The per-home scripts (getExcelInfo.py, getPdfInfo.py, getBe.py, update.py,
upload_to_dashboard.py) live in <processing_root>/<home>/ and are run one
after another with that folder as working directory. Each step is awaited to
completion before the next one starts.

Steps carry a policy:
- MANDATORY: a failure stops the pipeline and is raised to the caller
- BEST_EFFORT: a failure is logged as a warning and the pipeline continues

Nothing is rolled back when a step fails; re-submitting the batch re-runs
every step from the start.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple
import asyncio
import logging
import time

from config import ProcessingConfig
from utils.errors import PipelineStepError

logger = logging.getLogger(__name__)


class StepPolicy(str, Enum):
    MANDATORY = "mandatory"
    BEST_EFFORT = "best_effort"


@dataclass(frozen=True)
class PipelineStep:
    name: str
    command: Tuple[str, ...]
    description: str = ""
    policy: StepPolicy = StepPolicy.MANDATORY


@dataclass
class StepOutput:
    step: str
    returncode: int
    stdout: str = ""
    stderr: str = ""
    duration_seconds: float = 0.0


@dataclass
class StepRecord:
    """Outcome of one step inside a pipeline run."""
    step: str
    ok: bool
    output: Optional[StepOutput] = None
    error: Optional[str] = None


StepInvoker = Callable[[PipelineStep, Path, Optional[float]], Awaitable[StepOutput]]


# Script names expected in every home folder, in execution order
PIPELINE_SCRIPTS = (
    ("excel-extraction", "getExcelInfo.py", "Processing Excel data"),
    ("pdf-extraction", "getPdfInfo.py", "Processing PDF data"),
    ("behaviour-synthesis", "getBe.py", "Generating behaviour data"),
    ("dashboard-update", "update.py", "Updating dashboard"),
    ("dashboard-upload", "upload_to_dashboard.py", "Uploading to dashboard"),
)


def build_default_steps(config: ProcessingConfig) -> List[PipelineStep]:
    python = config.python_executable
    steps = [
        PipelineStep(
            name="install-dependencies",
            command=(python, "-m", "pip", "install", "--user", "--break-system-packages", *config.pip_packages),
            description="Installing required packages",
            policy=StepPolicy.BEST_EFFORT,
        )
    ]
    for name, script, description in PIPELINE_SCRIPTS:
        steps.append(PipelineStep(name=name, command=(python, script), description=description))
    return steps


async def run_subprocess_step(step: PipelineStep, cwd: Path, timeout: Optional[float] = None) -> StepOutput:
    """Run one step as a child process in `cwd` and capture its output.

    Raises:
        PipelineStepError: process could not start, timed out, or exited non-zero
    """
    started = time.monotonic()
    try:
        proc = await asyncio.create_subprocess_exec(
            *step.command,
            cwd=str(cwd),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise PipelineStepError(step.name, f"could not start {step.command[0]!r}: {e}") from e

    # Streams are drained while waiting so a killed step still yields what it printed
    readers = asyncio.gather(proc.stdout.read(), proc.stderr.read())
    try:
        await asyncio.wait_for(proc.wait(), timeout=timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        stdout_raw, stderr_raw = await readers
        raise PipelineStepError(
            step.name,
            f"timed out after {timeout:g}s",
            stderr=_text(stderr_raw),
            stdout=_text(stdout_raw),
        )
    stdout_raw, stderr_raw = await readers

    output = StepOutput(
        step=step.name,
        returncode=proc.returncode,
        stdout=_text(stdout_raw),
        stderr=_text(stderr_raw),
        duration_seconds=round(time.monotonic() - started, 3),
    )
    if output.returncode != 0:
        raise PipelineStepError(
            step.name,
            f"exited with status {output.returncode}",
            returncode=output.returncode,
            stderr=output.stderr,
            stdout=output.stdout,
        )
    return output


def _text(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace")


def _log_output(step: str, stdout: str, stderr: str) -> None:
    if stdout.strip():
        logger.info(f"[{step}] output:\n{stdout.rstrip()}")
    if stderr.strip():
        logger.warning(f"[{step}] warnings:\n{stderr.rstrip()}")


async def run_pipeline(
    steps: Sequence[PipelineStep],
    cwd: Path,
    invoker: StepInvoker = run_subprocess_step,
    timeout: Optional[float] = None,
) -> List[StepRecord]:
    """Summary: Run steps in order, stopping at the first mandatory failure.
    Returns: one StepRecord per executed step. Raises: PipelineStepError"""
    records: List[StepRecord] = []
    for index, step in enumerate(steps, 1):
        logger.info(f"Step {index}/{len(steps)} {step.name}: {step.description or ' '.join(step.command)}")
        try:
            output = await invoker(step, cwd, timeout)
        except PipelineStepError as e:
            _log_output(step.name, e.stdout, e.stderr)
            if step.policy is StepPolicy.BEST_EFFORT:
                logger.warning(f"Step {step.name} failed, continuing: {e}")
                records.append(StepRecord(step=step.name, ok=False, error=str(e)))
                continue
            logger.error(f"Step {step.name} failed: {e}")
            raise
        _log_output(output.step, output.stdout, output.stderr)
        logger.info(f"Step {step.name} completed in {output.duration_seconds}s")
        records.append(StepRecord(step=step.name, ok=True, output=output))
    return records
