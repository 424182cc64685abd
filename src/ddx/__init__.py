"""
ddx: diff two revisions of a .docx document.

Core features:
- Markdown rendering of both documents (via markitdown) diffed as unified text
- Content-based reconciliation of embedded images, robust to renamed media files
- Two pixel engines: ImageMagick (`magick compare -metric PSNR`) or in-process Pillow
- xxHash64 byte-identity shortcut before any pixel comparison
- CLI interface: `ddx old.docx new.docx`
"""

# Get version
try:
    from importlib.metadata import version as _version
    __version__ = _version("diff-docx")
except Exception:
    try:
        import tomllib  # Python 3.11+
    except ImportError:
        import tomli as tomllib  # Python < 3.11: pip install tomli

    with open("pyproject.toml", "rb") as f:
        __version__ = tomllib.load(f)["project"]["version"]

# Public API, only what users should import directly
from ddx.commands import DiffCommand, DiffOutcome
from ddx.core import (
    DiffParams, CompareEngine, ImageRef, MatchedPair, DifferentPair, ReconciliationResult,
    FormatCapabilityTable, ReconcilerImpl, build_comparator)
from ddx.services import DocxService, MarkdownService, DiffService, FileService

__all__ = [
    "DiffCommand",
    "DiffOutcome",
    "DiffParams",
    "CompareEngine",
    "ImageRef",
    "MatchedPair",
    "DifferentPair",
    "ReconciliationResult",
    "FormatCapabilityTable",
    "ReconcilerImpl",
    "build_comparator",
    "DocxService",
    "MarkdownService",
    "DiffService",
    "FileService",
    "__version__",
]
