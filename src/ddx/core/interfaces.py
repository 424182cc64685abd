"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

interfaces.py

Defines core interfaces (Protocols) used throughout the reconciliation engine.
These protocols enforce structural typing using Python's `typing.Protocol` so the
engine can be driven by real image tools in production and by deterministic
stubs in tests.

Key Components:
---------------
- Comparator: Pixel-level similarity oracle for a pair of images.
- Rasterizer: Converts vector images to PNG before comparison.
- HashAlgorithm / ContentHasher: Byte-level digests for the identity shortcut.
- ImageGrouper: Buckets one side's images by extension.
- MatchStage: Interface for a phase of the per-group matching algorithm.
- Reconciler: Interface for the engine that matches two image sets.
"""

from typing import Protocol, List, Dict, Optional, Callable
from ddx.core.models import (
    ImageRef,
    ComparisonOutcome,
    ReconciliationResult,
)


# ===== Interfaces =====

class Comparator(Protocol):
    """
    Interface for the external pixel comparison oracle.

    Implementations must raise OracleInvocationError for failures that are
    more severe than "the images differ".
    """
    def compare(self, path1: str, path2: str, output_dir: str) -> ComparisonOutcome:
        """
        Compare two images.

        Args:
            path1: First image.
            path2: Second image.
            output_dir: Directory where a visual diff artifact may be written.

        Returns:
            ComparisonOutcome; artifact_path is set only when the images differ.
        """
        ...


class Rasterizer(Protocol):
    """Interface for converting an image to PNG."""
    def rasterize(self, source: str, destination: str) -> str:
        """Write a PNG rendition of `source` to `destination` and return it."""
        ...


class HashAlgorithm(Protocol):
    """
    Interface for generic hash algorithms.

    Allows plugging in different hashing functions like SHA-256, MD5, or xxHash
    without affecting the rest of the reconciliation logic.
    """

    @staticmethod
    def hash(data: bytes) -> bytes:
        """Computes the hash of the provided byte data."""
        ...


class ContentHasher(Protocol):
    """Interface for whole-file content digests."""
    def compute_full_hash(self, path: str) -> bytes: ...

    def same_content(self, path1: str, path2: str) -> bool: ...


class ImageGrouper(Protocol):
    """
    Interface for bucketing one side's images by extension.
    """
    def group_by_extension(self, images: Dict[str, str]) -> Dict[str, List[ImageRef]]:
        """Group filename -> path mapping into name-sorted ImageRef lists per lowercase extension."""
        ...


# =============================
# Stage Interfaces
# =============================

class MatchStage(Protocol):
    """
    Interface for one phase of per-extension-group matching.

    Every stage reads the group's state, consumes some still-unmatched images,
    and appends what it decided to the shared result.
    """
    def get_stage_name(self) -> str:
        """Return the name of this stage (used in logging)."""
        ...

    def process(self, state: "GroupState", result: ReconciliationResult) -> None:
        """
        Process the group state in place.

        Args:
            state: Per-group matching state (ordered lists + matched flags).
            result: Result object to append decisions to.
        """
        ...


class Reconciler(Protocol):
    """
    Interface for the image reconciliation engine.

    Matches two unordered image sets by content, extension group by extension group.
    """
    def match_image_sets(
        self,
        images1: Dict[str, str],
        images2: Dict[str, str],
        output_dir: str,
        progress_callback: Optional[Callable[[str, int, object], None]] = None
    ) -> ReconciliationResult:
        """
        Reconcile two filename -> path mappings.

        Args:
            images1: Images of the first document.
            images2: Images of the second document.
            output_dir: Directory receiving `<name1>-<name2>.<ext>` diff artifacts.
            progress_callback: Optional callback for progress updates (stage, current, total).

        Returns:
            ReconciliationResult with every image in exactly one bucket.

        Raises:
            ReconciliationError: the first fatal oracle failure; no partial result is returned.
        """
        ...
