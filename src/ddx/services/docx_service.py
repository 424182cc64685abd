"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

services/docx_service.py
Unpacks a .docx container into a private temporary directory and lists its embedded media.
"""
import os
import shutil
import logging
import tempfile
import zipfile
from dataclasses import dataclass, field
from typing import Dict, List

from ddx.core.errors import ExtractionError

logger = logging.getLogger(__name__)

MEDIA_PREFIX = "word/media/"


@dataclass
class ExtractResult:
    """
    An unpacked document. Owns `temp_dir` until cleanup() is called;
    usable as a context manager.
    """
    temp_dir: str
    media_dir: str = ""
    images: Dict[str, str] = field(default_factory=dict)

    def get_image_list(self) -> List[str]:
        """Sorted list of image filenames."""
        return sorted(self.images)

    def cleanup(self) -> None:
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def __enter__(self) -> "ExtractResult":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    def __repr__(self):
        return f"<ExtractResult temp_dir={self.temp_dir}, images={len(self.images)}>"


class DocxService:
    """Extraction of .docx archives."""

    @staticmethod
    def extract(docx_path: str) -> ExtractResult:
        """
        Extracts the whole archive and maps every `word/media/*` file name to its extracted path.
        Raises ExtractionError; the temp dir is removed on every failure path.
        """
        temp_dir = os.path.realpath(tempfile.mkdtemp(prefix="ddx-"))
        result = ExtractResult(temp_dir=temp_dir)
        try:
            with zipfile.ZipFile(docx_path) as archive:
                for member in archive.infolist():
                    DocxService._extract_member(archive, member, temp_dir, result)
        except (zipfile.BadZipFile, OSError) as e:
            result.cleanup()
            raise ExtractionError(f"failed to open docx file {docx_path}: {e}") from e
        except ExtractionError:
            result.cleanup()
            raise

        logger.debug(f"Extracted {docx_path}: {len(result.images)} image(s) in {temp_dir}")
        return result

    @staticmethod
    def _extract_member(archive: zipfile.ZipFile, member: zipfile.ZipInfo, temp_dir: str,
                        result: ExtractResult) -> None:
        dest_path = os.path.realpath(os.path.join(temp_dir, member.filename))
        if not dest_path.startswith(temp_dir + os.sep):
            raise ExtractionError(f"refusing to extract {member.filename} outside {temp_dir}")

        if member.is_dir():
            os.makedirs(dest_path, exist_ok=True)
            return

        os.makedirs(os.path.dirname(dest_path), exist_ok=True)
        with archive.open(member) as src, open(dest_path, "wb") as dst:
            shutil.copyfileobj(src, dst)

        if member.filename.startswith(MEDIA_PREFIX):
            file_name = os.path.basename(member.filename)
            result.images[file_name] = dest_path
            if not result.media_dir:
                result.media_dir = os.path.dirname(dest_path)
