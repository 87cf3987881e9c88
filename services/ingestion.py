"""
Behaviour ingestion: one request from the admin upload form.

Flow:
    validate home -> classify (files? metrics?)
    neither       -> success, nothing touched
    metrics only  -> merge metrics, success
    files         -> merge metrics (if any) -> save uploads -> run pipeline

Any failure fails the whole request. Metrics written before a later failure
stay written.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence
import logging
import re

from models.document_store import DocumentStore
from services.metrics_writer import METRIC_CATEGORIES, MetricCategoryInput, save_metrics
from services.pipeline import PipelineStep, StepInvoker, StepRecord, run_pipeline, run_subprocess_step
from services.upload_materializer import home_directories, materialize_uploads
from utils.errors import ValidationError
from utils.shared import parse_int

logger = logging.getLogger(__name__)

MSG_NO_CHANGES = "No changes made - existing values preserved"
MSG_METRICS_ONLY = "Metrics saved successfully"
MSG_FILES = "Files processed successfully"


@dataclass
class IngestionRequest:
    home: str
    pdf_count: int = 0
    excel_count: int = 0
    pdf_files: List[Any] = field(default_factory=list)
    excel_files: List[Any] = field(default_factory=list)
    metrics: Dict[str, MetricCategoryInput] = field(default_factory=dict)

    @property
    def has_files(self) -> bool:
        # Both kinds are required; a batch missing either kind counts as no files
        return self.pdf_count > 0 and self.excel_count > 0

    @property
    def has_metrics(self) -> bool:
        return any(entry.is_supplied for entry in self.metrics.values())


@dataclass
class IngestionOutcome:
    message: str
    metrics_saved: bool
    file_counts: Optional[Dict[str, int]] = None
    steps: List[StepRecord] = field(default_factory=list)

    def to_response(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            'success': True,
            'message': self.message,
            'metricsSaved': self.metrics_saved,
        }
        if self.file_counts is not None:
            body['fileCounts'] = self.file_counts
        return body


def _is_file_part(value: Any) -> bool:
    return value is not None and not isinstance(value, str) and hasattr(value, "read")


def _text(form: Mapping[str, Any], key: str) -> Optional[str]:
    value = form.get(key)
    return value if isinstance(value, str) else None


def _indexed_parts(form: Mapping[str, Any], prefix: str, count: int) -> List[Any]:
    """Parts named <prefix>_0 .. <prefix>_<count-1>, in index order.

    Only keys present in the form are visited, whatever count the client declared.
    """
    pattern = re.compile(rf'{prefix}_(0|[1-9]\d*)')
    indexed = []
    for key in form.keys():
        match = pattern.fullmatch(key) if isinstance(key, str) else None
        if match and int(match.group(1)) < count:
            indexed.append((int(match.group(1)), form.get(key)))
    return [value for _, value in sorted(indexed, key=lambda item: item[0])]


def parse_ingestion_form(form: Mapping[str, Any]) -> IngestionRequest:
    """Summary: Build an IngestionRequest from multipart form fields.
    Fields: home, pdfCount, excelCount, pdf_i, excel_i, <category>{Percentage,Change,Residents}"""
    home = (_text(form, 'home') or '').strip()
    pdf_count = parse_int(form.get('pdfCount'))
    excel_count = parse_int(form.get('excelCount'))

    pdf_files = _indexed_parts(form, 'pdf', pdf_count)
    excel_files = _indexed_parts(form, 'excel', excel_count)

    metrics = {
        category: MetricCategoryInput(
            percentage=_text(form, f'{category}Percentage'),
            change=_text(form, f'{category}Change'),
            residents=_text(form, f'{category}Residents'),
        )
        for category in METRIC_CATEGORIES
    }

    return IngestionRequest(
        home=home,
        pdf_count=pdf_count,
        excel_count=excel_count,
        pdf_files=[f for f in pdf_files if _is_file_part(f)],
        excel_files=[f for f in excel_files if _is_file_part(f)],
        metrics=metrics,
    )


async def ingest_behaviour_files(
    request: IngestionRequest,
    store: DocumentStore,
    processing_root: Path,
    steps: Sequence[PipelineStep],
    invoker: StepInvoker = run_subprocess_step,
    step_timeout: Optional[float] = None,
) -> IngestionOutcome:
    """Summary: Run one ingestion request end to end.
    Returns: IngestionOutcome. Raises: ValidationError, StoreError, UploadIOError, PipelineStepError"""
    if not request.home:
        raise ValidationError("Home is required")

    has_files = request.has_files
    has_metrics = request.has_metrics
    logger.info(
        f"Ingestion request: home={request.home} pdfCount={request.pdf_count} "
        f"excelCount={request.excel_count} hasFiles={has_files} hasMetrics={has_metrics}"
    )

    if not has_files and not has_metrics:
        return IngestionOutcome(message=MSG_NO_CHANGES, metrics_saved=False)

    # Fail on an unusable home code before anything is written
    home_dir = None
    if has_files:
        home_dir, _ = home_directories(processing_root, request.home)

    if has_metrics:
        save_metrics(store, request.home, request.metrics)

    if not has_files:
        return IngestionOutcome(message=MSG_METRICS_ONLY, metrics_saved=True)

    await materialize_uploads(processing_root, request.home, request.pdf_files, request.excel_files)
    records = await run_pipeline(steps, home_dir, invoker=invoker, timeout=step_timeout)

    logger.info(f"File processing completed for {request.home}")
    message = MSG_FILES + (" and metrics saved" if has_metrics else "")
    return IngestionOutcome(
        message=message,
        metrics_saved=has_metrics,
        file_counts={'pdfs': len(request.pdf_files), 'excels': len(request.excel_files)},
        steps=records,
    )
