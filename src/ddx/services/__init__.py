"""Document extraction, markdown normalization, textual diff and file services."""

from .docx_service import DocxService, ExtractResult
from .markdown_service import MarkdownService, ProcessResult
from .diff_service import DiffService
from .file_service import FileService

__all__ = ["DocxService", "ExtractResult", "MarkdownService", "ProcessResult", "DiffService", "FileService"]
