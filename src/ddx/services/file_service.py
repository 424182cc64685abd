"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

services/file_service.py
File operations for the output layout: copying originals of changed images.
"""
import os
import shutil
from pathlib import Path
from typing import List, Tuple

from ddx.core.models import ReconciliationResult


class FileService:
    """
    Filesystem helpers used after reconciliation.
    """

    @staticmethod
    def copy_file(src: str, dst: str) -> None:
        """Copies a file, creating the destination directory if needed."""
        path = Path(src)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        try:
            os.makedirs(os.path.dirname(dst) or ".", exist_ok=True)
            shutil.copyfile(src, dst)
        except OSError as e:
            raise RuntimeError(f"Failed to copy {path.name}: {e}") from e

    @staticmethod
    def originals_to_copy(
            result: ReconciliationResult,
            orig1_dir: str,
            orig2_dir: str
    ) -> List[Tuple[str, str]]:
        """(source, destination) for every changed or one-sided image."""
        copies = []
        for pair in result.different:
            copies.append((pair.image1.path, os.path.join(orig1_dir, pair.image1.name)))
            copies.append((pair.image2.path, os.path.join(orig2_dir, pair.image2.name)))
        for img in result.only_in_first:
            copies.append((img.path, os.path.join(orig1_dir, img.name)))
        for img in result.only_in_second:
            copies.append((img.path, os.path.join(orig2_dir, img.name)))
        return copies

    @classmethod
    def copy_original_images(cls, result: ReconciliationResult, orig1_dir: str, orig2_dir: str) -> int:
        """Copies originals of changed and one-sided images; returns how many were copied."""
        copies = cls.originals_to_copy(result, orig1_dir, orig2_dir)
        for src, dst in copies:
            cls.copy_file(src, dst)
        return len(copies)

