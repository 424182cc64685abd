"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/models.py
Data models for image reconciliation between two document revisions.
"""

from dataclasses import dataclass, field
from typing import List, Optional
import os
from enum import Enum


# =============================
# Enums
# =============================

class FormatCapability(Enum):
    """
    Comparability class of an image file extension.
    """
    ALWAYS = "always"
    IF_CAPABLE = "if-capable"
    NEVER = "never"

    @property
    def display_name(self) -> str:
        """Human-readable name for UI display."""
        mapping = {
            FormatCapability.ALWAYS: "Always comparable",
            FormatCapability.IF_CAPABLE: "Comparable with extra capability",
            FormatCapability.NEVER: "Never comparable",
        }
        return mapping.get(self, self.value)

    def __repr__(self) -> str:
        return self.value


class CompareEngine(Enum):
    """
    Pixel comparison backend.
    """
    AUTO = "auto"
    MAGICK = "magick"
    PILLOW = "pillow"

    @property
    def display_name(self) -> str:
        """Human-readable name for UI display."""
        mapping = {
            CompareEngine.AUTO: "Auto",
            CompareEngine.MAGICK: "ImageMagick",
            CompareEngine.PILLOW: "Pillow",
        }
        return mapping.get(self, self.value)

    def __repr__(self) -> str:
        return self.value


class Stage(str, Enum):
    EXTRACT_FIRST = "Extracting first document"
    EXTRACT_SECOND = "Extracting second document"
    CONVERT_FIRST = "Converting first document"
    CONVERT_SECOND = "Converting second document"
    MATCH = "Matching images"
    COPY = "Copying original images"
    DIFF = "Generating diff.md"

    @classmethod
    def get_all(cls):
        return [cls.EXTRACT_FIRST, cls.EXTRACT_SECOND, cls.CONVERT_FIRST, cls.CONVERT_SECOND,
                cls.MATCH, cls.COPY, cls.DIFF]


# =============================
# Config
# =============================

class CompareConfig:
    PSNR_THRESHOLD = 1.0  # Any channel below this is a real visual change
    UNDEFINED_SCORE = -1.0  # Oracle produced no usable metric

    RASTER_EXTENSIONS = frozenset({
        ".png", ".jpg", ".jpeg", ".bmp", ".gif", ".tiff", ".tif", ".webp",
    })
    VECTOR_EXTENSIONS = frozenset({".wmf", ".emf", ".svg"})

    TEMP_ARTIFACT_SUFFIX = "_cmp.png"
    RASTERIZED_EXTENSION = ".png"


# ======================
#  Core Data Models
# ======================

def split_extension(name: str) -> str:
    """Lowercase extension of a filename including the dot, "" when there is none."""
    _, ext = os.path.splitext(name)
    return ext.lower()


@dataclass(frozen=True)
class ImageRef:
    """
    A single image as found in one document.
    `name` is the base filename inside the container, `path` where it can be read from.
    """
    name: str
    path: str

    @property
    def extension(self) -> str:
        return split_extension(self.name)

    @property
    def stem(self) -> str:
        return os.path.splitext(self.name)[0]

    def __repr__(self):
        return f"<ImageRef name={self.name}>"


@dataclass(frozen=True)
class ComparisonOutcome:
    """
    Normalized result of one oracle invocation.
    `score` is the worst-channel similarity, CompareConfig.UNDEFINED_SCORE when unknown.
    """
    different: bool
    score: float = CompareConfig.UNDEFINED_SCORE
    artifact_path: Optional[str] = None

    @property
    def has_score(self) -> bool:
        return self.score >= 0


@dataclass(frozen=True)
class MatchedPair:
    """Two images judged content-identical."""
    image1: ImageRef
    image2: ImageRef


@dataclass(frozen=True)
class DifferentPair:
    """
    Two images paired by order inside their extension group.
    `diff_path` is the relocated visual diff, "" when none was produced.
    """
    image1: ImageRef
    image2: ImageRef
    score: float = CompareConfig.UNDEFINED_SCORE
    diff_path: str = ""

    @property
    def has_score(self) -> bool:
        return self.score >= 0


@dataclass
class ReconciliationResult:
    """
    Aggregate outcome of matching two image sets.
    Every input image lands in exactly one bucket.
    """
    matched: List[MatchedPair] = field(default_factory=list)
    different: List[DifferentPair] = field(default_factory=list)
    only_in_first: List[ImageRef] = field(default_factory=list)
    only_in_second: List[ImageRef] = field(default_factory=list)
    skipped: List[ImageRef] = field(default_factory=list)

    @property
    def total_differences(self) -> int:
        """How many changes a reader has to look at."""
        return len(self.different) + len(self.only_in_first) + len(self.only_in_second)

    def has_differences(self) -> bool:
        return self.total_differences > 0

    def __repr__(self):
        return (f"<ReconciliationResult matched={len(self.matched)}, different={len(self.different)}, "
                f"only1={len(self.only_in_first)}, only2={len(self.only_in_second)}, "
                f"skipped={len(self.skipped)}>")


"""
DTO for a document diff run with built-in validation.
Interface-agnostic, used by the CLI and by library callers.
"""

@dataclass
class DiffParams:
    """Parameters for a docx comparison with validation."""
    file1: str
    file2: str
    output_dir: str = "diff"
    engine: CompareEngine = CompareEngine.AUTO
    convert_png: bool = True
    verbose: bool = False

    def __post_init__(self):
        """Validate parameters immediately after creation."""
        for path in (self.file1, self.file2):
            if not path:
                raise ValueError("Input document path cannot be empty")
            if not path.lower().endswith(".docx"):
                raise ValueError(f"file {path} is not a .docx file")

        if not self.output_dir:
            raise ValueError("Output directory cannot be empty")

        if isinstance(self.engine, str):
            self.engine = CompareEngine(self.engine)

    @property
    def doc1_base(self) -> str:
        return document_base_name(self.file1)

    @property
    def doc2_base(self) -> str:
        return document_base_name(self.file2)


def document_base_name(path: str) -> str:
    """'docs/report.docx' -> 'report'"""
    return os.path.splitext(os.path.basename(path))[0]
