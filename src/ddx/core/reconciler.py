"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

reconciler.py
Implements content-based reconciliation of the images of two documents.

Images are bucketed by extension; each comparable bucket runs the pipeline
    exact match → order pairing → presence
and buckets whose format cannot be compared go straight to `skipped`.
Buckets are processed in ascending extension order, one at a time.
"""
import os
import time
import logging
import tempfile
from typing import List, Dict, Optional, Callable

from ddx.core.models import ImageRef, FormatCapability, CompareConfig, ReconciliationResult
from ddx.core.grouper import ImageGrouperImpl
from ddx.core.capabilities import FormatCapabilityTable
from ddx.core.interfaces import Comparator, ImageGrouper, MatchStage, Rasterizer, Reconciler
from ddx.core.errors import OracleInvocationError, ReconciliationError
from ddx.core.stages import GroupState, ExactMatchStage, OrderPairingStage, PresenceStage

logger = logging.getLogger(__name__)


# =============================
# Main Reconciler Class
# =============================
class ReconcilerImpl(Reconciler):
    """
    Matches two image sets by content using an injected comparator.
    Fails fast: the first fatal oracle error aborts the whole call and
    no partial result escapes.
    """
    def __init__(
        self,
        comparator: Comparator,
        capabilities: FormatCapabilityTable,
        grouper: Optional[ImageGrouper] = None,
        rasterizer: Optional[Rasterizer] = None
    ):
        self.comparator = comparator
        self.capabilities = capabilities
        self.grouper = grouper or ImageGrouperImpl()
        self.rasterizer = rasterizer

    def match_image_sets(
        self,
        images1: Dict[str, str],
        images2: Dict[str, str],
        output_dir: str,
        progress_callback: Optional[Callable[[str, int, object], None]] = None
    ) -> ReconciliationResult:
        """
        Main reconciliation pipeline.
        Args:
            images1: filename -> path of the first document's images
            images2: filename -> path of the second document's images
            output_dir: where `<name1>-<name2>.<ext>` diff images are written
            progress_callback (Optional[Callable[[str, int, int], None]]): Reports progress per extension group.
        Returns:
            ReconciliationResult
        """
        total_start_time = time.time()
        result = ReconciliationResult()

        groups1 = self.grouper.group_by_extension(images1)
        groups2 = self.grouper.group_by_extension(images2)
        extensions = ImageGrouperImpl.union_keys(groups1, groups2)
        logger.debug(f"Reconciling {len(images1)} vs {len(images2)} images in groups {extensions}")

        with tempfile.TemporaryDirectory(prefix="ddx-match-") as scratch_dir:
            for index, ext in enumerate(extensions, 1):
                list1 = groups1.get(ext, [])
                list2 = groups2.get(ext, [])

                if not self.capabilities.can_compare(ext):
                    logger.info(f"Skipping {len(list1) + len(list2)} image(s) with unsupported extension {ext!r}")
                    result.skipped.extend(list1)
                    result.skipped.extend(list2)
                else:
                    state = self._build_state(ext, list1, list2, scratch_dir, output_dir)
                    for stage in self._build_pipeline():
                        start_time = time.time()
                        stage.process(state, result)
                        logger.debug(f"{stage.get_stage_name()} on {ext!r} took {time.time() - start_time:.3f}s")

                if progress_callback:
                    progress_callback("Matching images", index, len(extensions))

        logger.debug(f"Reconciliation finished in {time.time() - total_start_time:.3f}s: {result!r}")
        return result

    def _build_pipeline(self) -> List[MatchStage]:
        """Builds the per-group stage sequence."""
        return [
            ExactMatchStage(self.comparator),
            OrderPairingStage(self.comparator),
            PresenceStage(),
        ]

    def _build_state(
        self,
        ext: str,
        list1: List[ImageRef],
        list2: List[ImageRef],
        scratch_dir: str,
        output_dir: str
    ) -> GroupState:
        """Prepares group state, rasterizing vector images when a rasterizer is configured."""
        state = GroupState(
            extension=ext,
            list1=list1,
            list2=list2,
            scratch_dir=scratch_dir,
            output_dir=output_dir,
        )
        if self.rasterizer is None or self.capabilities.capability(ext) != FormatCapability.IF_CAPABLE:
            return state

        state.artifact_suffix = CompareConfig.RASTERIZED_EXTENSION
        for side, refs in (("first", list1), ("second", list2)):
            side_dir = os.path.join(scratch_dir, "raster", side)
            os.makedirs(side_dir, exist_ok=True)
            for index, ref in enumerate(refs):
                destination = os.path.join(side_dir, f"{index:04d}-{ref.stem}{CompareConfig.RASTERIZED_EXTENSION}")
                try:
                    state.sources[ref] = self.rasterizer.rasterize(ref.path, destination)
                except OracleInvocationError as e:
                    raise ReconciliationError(ext, ref.name, None, e) from e
        logger.debug(f"Rasterized {len(state.sources)} image(s) in group {ext!r}")
        return state
