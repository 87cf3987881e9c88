"""
Writes uploaded behaviour files into a home's processing folder.

Layout: <processing_root>/<home>/downloads/<original filename>

Files with the same name are overwritten. Nothing is staged or locked, so two
concurrent uploads for one home can interleave their writes.
"""

from pathlib import Path, PurePath
from typing import Iterable, Tuple
import logging

from utils.errors import UploadIOError, ValidationError

logger = logging.getLogger(__name__)

DOWNLOADS_DIRNAME = "downloads"
CHUNK_SIZE = 1024 * 1024


def home_directories(processing_root: Path, home: str) -> Tuple[Path, Path]:
    """Return (home_dir, downloads_dir) for a home code.

    The home code becomes a single directory name, so separators and dot
    segments are rejected.
    """
    if not home or home in {".", ".."} or "/" in home or "\\" in home or "\x00" in home:
        raise ValidationError(f"Invalid home code for processing directory: {home!r}")
    home_dir = Path(processing_root) / home
    return home_dir, home_dir / DOWNLOADS_DIRNAME


def upload_filename(upload) -> str:
    """Original file name of an upload part, without any directory components."""
    raw = (getattr(upload, "filename", None) or "").replace("\\", "/")
    name = PurePath(raw).name
    if not name or name in {".", ".."}:
        raise ValidationError("Uploaded file part has no file name")
    return name


async def write_upload(upload, target: Path) -> int:
    """Stream one upload to `target` in 1 MB chunks. Returns bytes written."""
    written = 0
    try:
        with target.open("wb") as f:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                f.write(chunk)
                written += len(chunk)
    except OSError as e:
        raise UploadIOError(f"Failed to write {target}: {e}") from e
    return written


async def materialize_uploads(processing_root: Path, home: str, pdf_files: Iterable, excel_files: Iterable) -> Path:
    """Summary: Create the downloads folder and save every PDF and Excel part.
    Returns: downloads directory. Raises: ValidationError, UploadIOError"""
    pdf_files = list(pdf_files)
    excel_files = list(excel_files)
    _, downloads_dir = home_directories(processing_root, home)

    # Resolve all names up front so a bad part fails before anything is written
    pdf_names = [upload_filename(f) for f in pdf_files]
    excel_names = [upload_filename(f) for f in excel_files]

    logger.info(f"Creating directories for home: {home}")
    try:
        downloads_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise UploadIOError(f"Failed to create {downloads_dir}: {e}") from e

    logger.info(f"Saving {len(pdf_files)} PDF files and {len(excel_files)} Excel files to {downloads_dir}")
    for upload, name in zip(pdf_files, pdf_names):
        size = await write_upload(upload, downloads_dir / name)
        logger.info(f"Saved PDF: {name} ({size} bytes)")
    for upload, name in zip(excel_files, excel_names):
        size = await write_upload(upload, downloads_dir / name)
        logger.info(f"Saved Excel: {name} ({size} bytes)")

    return downloads_dir
