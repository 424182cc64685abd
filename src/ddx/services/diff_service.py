"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

services/diff_service.py
Unified diffs of the normalized markdown files and the external tool checks.
"""
import sys
import shutil
import difflib
import logging
import subprocess
from typing import List, Optional, Tuple

from ddx.core.errors import MissingToolError
from ddx.core.models import CompareEngine

logger = logging.getLogger(__name__)


class DiffService:
    """Textual diff generation and display."""

    @staticmethod
    def _read_lines(path: str) -> List[str]:
        with open(path, "r", encoding="utf-8") as f:
            return f.readlines()

    @staticmethod
    def unified_diff(file1: str, file2: str, labels: Optional[Tuple[str, str]] = None) -> str:
        """`diff -u` equivalent of two text files; "" when they are equal."""
        fromfile, tofile = labels or (file1, file2)
        lines = difflib.unified_diff(
            DiffService._read_lines(file1),
            DiffService._read_lines(file2),
            fromfile=fromfile,
            tofile=tofile,
        )
        chunks = []
        for line in lines:
            chunks.append(line if line.endswith("\n") else line + "\n")
        return "".join(chunks)

    @staticmethod
    def generate_diff_file(file1: str, file2: str, output_path: str,
                           labels: Optional[Tuple[str, str]] = None) -> None:
        """Writes the unified diff of two files wrapped in a ```diff fence."""
        body = DiffService.unified_diff(file1, file2, labels)
        with open(output_path, "w", encoding="utf-8") as f:
            f.write("```diff\n")
            f.write(body)
            f.write("```\n")
        logger.debug(f"Wrote {output_path} ({len(body)} chars of diff)")

    @staticmethod
    def show_diff(file1: str, file2: str) -> None:
        """Shows the diff through delta when installed, otherwise prints the plain unified diff."""
        if shutil.which("delta") is None:
            sys.stdout.write(DiffService.unified_diff(file1, file2))
            sys.stdout.flush()
            return

        try:
            proc = subprocess.run(["delta", file1, file2])
        except OSError as e:
            raise RuntimeError(f"delta failed: {e}") from e
        # delta exits 1 when the files differ
        if proc.returncode > 1:
            raise RuntimeError(f"delta failed (exit code {proc.returncode})")

    @staticmethod
    def required_tools(engine: CompareEngine) -> List[str]:
        tools = ["markitdown"]
        if engine == CompareEngine.MAGICK:
            tools.append("magick")
        return tools

    @staticmethod
    def check_dependencies(engine: CompareEngine = CompareEngine.AUTO) -> None:
        """Raises MissingToolError listing every required executable that is not on PATH."""
        missing = [tool for tool in DiffService.required_tools(engine) if shutil.which(tool) is None]
        if missing:
            raise MissingToolError(missing)
