"""
Core reconciliation engine: grouper, comparators, matching stages, and reconciler.

This package contains the engineering core of ddx:
- ImageGrouperImpl: extension buckets with name ordering
- FormatCapabilityTable: which formats the pixel oracle can handle
- MagickComparator / PillowComparator: pixel oracles normalized to ComparisonOutcome
- DigestShortcutComparator + ContentHasherImpl: xxHash64 byte-identity shortcut
- ExactMatchStage / OrderPairingStage / PresenceStage: the three matching phases
- ReconcilerImpl: runs the phases per extension group
- Models: ImageRef, MatchedPair, DifferentPair, ReconciliationResult

No document or markdown knowledge lives here.
"""

from .models import (
    ImageRef, ComparisonOutcome, MatchedPair, DifferentPair, ReconciliationResult,
    FormatCapability, CompareEngine, CompareConfig, DiffParams, Stage)
from .errors import (
    OracleInvocationError, ReconciliationError, ExtractionError, ConversionError, MissingToolError)
from .capabilities import FormatCapabilityTable, classify_extension, probe_vector_support, probe_magick
from .grouper import ImageGrouperImpl
from .hasher import ContentHasherImpl, XXHashAlgorithmImpl
from .comparators import (
    MagickComparator, PillowComparator, DigestShortcutComparator, MagickRasterizer,
    build_comparator, resolve_engine, parse_psnr_output)
from .naming import artifact_name, artifact_path, relocate_artifact
from .stages import GroupState, ExactMatchStage, OrderPairingStage, PresenceStage
from .reconciler import ReconcilerImpl

__all__ = [
    "ImageRef",
    "ComparisonOutcome",
    "MatchedPair",
    "DifferentPair",
    "ReconciliationResult",
    "FormatCapability",
    "CompareEngine",
    "CompareConfig",
    "DiffParams",
    "Stage",
    "OracleInvocationError",
    "ReconciliationError",
    "ExtractionError",
    "ConversionError",
    "MissingToolError",
    "FormatCapabilityTable",
    "classify_extension",
    "probe_vector_support",
    "probe_magick",
    "ImageGrouperImpl",
    "ContentHasherImpl",
    "XXHashAlgorithmImpl",
    "MagickComparator",
    "PillowComparator",
    "DigestShortcutComparator",
    "MagickRasterizer",
    "build_comparator",
    "resolve_engine",
    "parse_psnr_output",
    "artifact_name",
    "artifact_path",
    "relocate_artifact",
    "GroupState",
    "ExactMatchStage",
    "OrderPairingStage",
    "PresenceStage",
    "ReconcilerImpl",
]
