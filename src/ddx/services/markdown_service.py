"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

services/markdown_service.py
Document body -> markdown via markitdown, plus the path rewriting that keeps the
textual diff stable when only image locations differ.
"""
import os
import re
import logging
import subprocess
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ddx.core.errors import ConversionError
from ddx.core.grouper import ImageGrouperImpl
from ddx.core.models import ReconciliationResult

logger = logging.getLogger(__name__)

# MIME sub-types of embedded data URIs -> extensions found in word/media/
MIME_TO_EXTS = {
    "png": [".png"],
    "jpeg": [".jpg", ".jpeg"],
    "gif": [".gif"],
    "bmp": [".bmp"],
    "tiff": [".tiff", ".tif"],
    "webp": [".webp"],
    "x-emf": [".emf"],
    "x-wmf": [".wmf"],
    "svg+xml": [".svg"],
    "vnd.ms-photo": [".wdp"],
}

# Pre-compiled regex patterns
_DATA_IMAGE_PATTERN = re.compile(r'!\[([^\]]*)\]\((data:image/[^)]*)\)')
_MIME_PATTERN = re.compile(r'data:image/([^;]+);')


@dataclass
class ProcessResult:
    """
    `content` keeps the extraction temp paths (needed by normalize_for_diff);
    the file at `output_path` has readable relative paths instead.
    """
    content: str
    output_path: str
    image_paths: List[str] = field(default_factory=list)


class MarkdownService:
    """Markdown conversion and normalization."""

    def __init__(self, executable: str = "markitdown", timeout: Optional[float] = 600):
        self.executable = executable
        self.timeout = timeout

    def convert_to_markdown(self, docx_path: str) -> str:
        """Runs markitdown and returns its stdout."""
        cmd = [self.executable, docx_path]
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            proc = subprocess.run(cmd, capture_output=True, text=True, encoding="utf-8",
                                  errors="replace", timeout=self.timeout)
        except FileNotFoundError as e:
            raise ConversionError(f"markitdown not found: {self.executable}") from e
        except subprocess.TimeoutExpired as e:
            raise ConversionError(f"markitdown timed out after {self.timeout}s") from e

        if proc.returncode != 0:
            raise ConversionError(f"markitdown failed (exit code {proc.returncode})\nstderr: {proc.stderr}")
        return proc.stdout

    def process(self, docx_path: str, images: Dict[str, str], temp_dir: str) -> ProcessResult:
        """
        Converts a document, swaps base64 images for extracted file paths and saves
        `<docx dir>/<docx base>.md` next to the document.
        """
        content = self.convert_to_markdown(docx_path)
        processed = self.replace_base64_images(content, images)

        abs_docx_path = os.path.abspath(docx_path)
        base_name = os.path.splitext(os.path.basename(abs_docx_path))[0]
        output_path = os.path.join(os.path.dirname(abs_docx_path), base_name + ".md")

        file_content = processed.replace(temp_dir, self.virtual_dir(docx_path))
        try:
            with open(output_path, "w", encoding="utf-8") as f:
                f.write(file_content)
        except OSError as e:
            raise ConversionError(f"failed to write markdown file {output_path}: {e}") from e

        logger.debug(f"Wrote {output_path}")
        return ProcessResult(
            content=processed,
            output_path=output_path,
            image_paths=list(images.values()),
        )

    @staticmethod
    def group_images_by_ext(images: Dict[str, str]) -> Dict[str, List[str]]:
        """Extension -> extracted paths, ordered by image filename."""
        groups = ImageGrouperImpl().group_by_extension(images)
        return {ext: [ref.path for ref in refs] for ext, refs in groups.items()}

    @staticmethod
    def resolve_ext(mime_subtype: str, groups: Dict[str, List[str]]) -> str:
        """First extension of the MIME sub-type that exists among the extracted images, "" if none."""
        for ext in MIME_TO_EXTS.get(mime_subtype, []):
            if ext in groups:
                return ext
        return ""

    @staticmethod
    def replace_base64_images(content: str, images: Dict[str, str]) -> str:
        """
        Replaces `![alt](data:image/...)` references with extracted file paths.
        For each MIME type, the N-th occurrence maps to the N-th image (by name) of that type.
        References that cannot be resolved are left as they are.
        """
        groups = MarkdownService.group_images_by_ext(images)
        counters: Dict[str, int] = {}

        def _substitute(match: re.Match) -> str:
            alt_text, data_uri = match.group(1), match.group(2)
            mime = _MIME_PATTERN.match(data_uri)
            ext = MarkdownService.resolve_ext(mime.group(1), groups) if mime else ""
            if ext:
                idx = counters.get(ext, 0)
                if idx < len(groups[ext]):
                    counters[ext] = idx + 1
                    return f"![{alt_text}]({groups[ext][idx]})"
            return match.group(0)

        return _DATA_IMAGE_PATTERN.sub(_substitute, content)

    @staticmethod
    def build_path_mapping(
            result: ReconciliationResult,
            doc1_base: str,
            doc2_base: str
    ) -> Tuple[Dict[str, str], Dict[str, str]]:
        """
        Path normalization tables for both documents.
        Matched pairs collapse to the first image's name; different and one-sided
        images are prefixed with their document's base name; skipped images keep
        their plain name.
        """
        map1: Dict[str, str] = {}
        map2: Dict[str, str] = {}

        for pair in result.matched:
            map1[pair.image1.path] = pair.image1.name
            map2[pair.image2.path] = pair.image1.name

        for pair in result.different:
            map1[pair.image1.path] = f"{doc1_base}/{pair.image1.name}"
            map2[pair.image2.path] = f"{doc2_base}/{pair.image2.name}"

        for img in result.only_in_first:
            map1[img.path] = f"{doc1_base}/{img.name}"
        for img in result.only_in_second:
            map2[img.path] = f"{doc2_base}/{img.name}"

        for img in result.skipped:
            map1[img.path] = img.name
            map2[img.path] = img.name

        return map1, map2

    @staticmethod
    def normalize_for_diff(content: str, path_mapping: Dict[str, str]) -> str:
        """Replaces temp image paths with canonical names (longest path first)."""
        for old_path in sorted(path_mapping, key=len, reverse=True):
            content = content.replace(old_path, path_mapping[old_path])
        return content

    @staticmethod
    def virtual_dir(docx_path: str) -> str:
        """
        CWD-relative location derived from the document path.
        Example: docs/filename.docx (cwd=$HOME/proj) -> ./docs/filename
        """
        fallback = "./" + os.path.splitext(docx_path)[0]
        try:
            rel_path = os.path.relpath(os.path.abspath(docx_path), os.getcwd())
        except (OSError, ValueError):
            return fallback
        directory = os.path.splitext(rel_path)[0]
        if not directory.startswith("."):
            directory = "./" + directory
        return directory
