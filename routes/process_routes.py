"""
Behaviour file processing endpoint.

- Saves overview metrics (per-category merge)
- Stores uploaded PDF/Excel files under the home's downloads folder
- Runs the home's processing scripts in order
"""

from fastapi import APIRouter, Depends, Request
import logging

from config import ProcessingConfig
from models.document_store import DocumentStore
from services.ingestion import ingest_behaviour_files, parse_ingestion_form
from services.pipeline import build_default_steps, run_subprocess_step
from utils.errors import BackendError, ValidationError
from utils.shared import backend_error_response, error_response, get_processing_config, get_store

router = APIRouter(prefix="/api/admin", tags=["processing"])
logger = logging.getLogger(__name__)


def get_step_invoker():
    """Runs pipeline steps as child processes; replaced in tests."""
    return run_subprocess_step


@router.post('/process-behaviours')
async def process_behaviours(
    request: Request,
    store: DocumentStore = Depends(get_store),
    settings: ProcessingConfig = Depends(get_processing_config),
    invoker=Depends(get_step_invoker),
):
    """Summary: Save metrics and/or process uploaded behaviour files.
    Form: home, pdfCount, excelCount, pdf_i, excel_i, {antipsychotics,worsened,improved}{Percentage,Change,Residents}
    Returns: {success, message, metricsSaved, fileCounts?}; 400/500 {error, details, kind[, step]}"""
    logger.info("Starting behaviour files processing")
    form = await request.form()
    try:
        ingestion = parse_ingestion_form(form)
        outcome = await ingest_behaviour_files(
            ingestion,
            store=store,
            processing_root=settings.processing_root,
            steps=build_default_steps(settings),
            invoker=invoker,
            step_timeout=settings.step_timeout_seconds,
        )
    except ValidationError as e:
        logger.error(f"Invalid behaviour upload: {e}")
        return error_response(str(e), 400, kind=e.kind)
    except BackendError as e:
        logger.error(f"Error processing files: {e}")
        return backend_error_response('Failed to process files', e)
    finally:
        await form.close()
    return outcome.to_response()
