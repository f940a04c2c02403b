"""
Temporary file handling for uploads.
"""

import logging
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path

from xmpcube.api.config import TEMP_PREFIX


logger = logging.getLogger(__name__)


@dataclass
class ProcessedFiles:
    image_path: Path
    xmp_path: Path
    cube_path: Path
    tmp_dir: Path


def save_uploaded_image(filename: str, data: bytes) -> ProcessedFiles:
    """Write the upload into a fresh temp dir; sidecar paths share its stem."""
    tmp_dir = Path(tempfile.mkdtemp(prefix=TEMP_PREFIX))
    # Only the final component, so a crafted name cannot escape tmp_dir
    name = Path(filename).name or "image"
    image_path = tmp_dir / name
    image_path.write_bytes(data)

    stem = Path(name).stem
    return ProcessedFiles(
        image_path=image_path,
        xmp_path=tmp_dir / f"{stem}.xmp",
        cube_path=tmp_dir / f"{stem}.cube",
        tmp_dir=tmp_dir,
    )


def save_text_file(path: Path, content: str) -> None:
    path.write_text(content, encoding="utf-8")


def cleanup_temp_files(tmp_dir: Path) -> None:
    try:
        shutil.rmtree(tmp_dir)
    except OSError as e:
        logger.error("Error cleaning up temporary directory %s: %s", tmp_dir, e)
