"""
Unified command orchestrator for a document diff run.
This is the single source of business logic shared by the CLI and library callers.
"""
import os
import logging
import tempfile
from contextlib import ExitStack
from dataclasses import dataclass
from typing import Callable, Optional

from ddx.core.models import DiffParams, ReconciliationResult, Stage
from ddx.core.capabilities import FormatCapabilityTable, probe_magick
from ddx.core.comparators import MagickRasterizer, build_comparator, resolve_engine
from ddx.core.interfaces import Comparator, Rasterizer
from ddx.core.reconciler import ReconcilerImpl
from ddx.services.diff_service import DiffService
from ddx.services.docx_service import DocxService
from ddx.services.file_service import FileService
from ddx.services.markdown_service import MarkdownService

logger = logging.getLogger(__name__)


@dataclass
class DiffOutcome:
    """Everything a front end needs to report a finished run."""
    result: ReconciliationResult
    diff_md_path: str
    diff_imgs_dir: str
    orig1_dir: str
    orig2_dir: str
    markdown1_path: str
    markdown2_path: str
    copied_originals: int = 0


class DiffCommand:
    """
    Orchestrates the whole diff workflow:
    1. Extract both documents
    2. Convert both documents to markdown
    3. Reconcile their images into <output>/imgs
    4. Copy originals of changed images
    5. Write <output>/diff.md from path-normalized markdown

    Usage:
        params = DiffParams("v1.docx", "v2.docx")
        outcome = DiffCommand().execute(params, progress_callback=printer)

    Collaborators can be injected; anything left as None is built from the
    environment at execute() time.
    """

    def __init__(
            self,
            comparator: Optional[Comparator] = None,
            capabilities: Optional[FormatCapabilityTable] = None,
            rasterizer: Optional[Rasterizer] = None,
            markdown_service: Optional[MarkdownService] = None
    ):
        self.comparator = comparator
        self.capabilities = capabilities
        self.rasterizer = rasterizer
        self.markdown_service = markdown_service or MarkdownService()

    def build_reconciler(self, params: DiffParams) -> ReconcilerImpl:
        engine = resolve_engine(params.engine)
        rasterizer = self.rasterizer
        if rasterizer is None and params.convert_png and probe_magick():
            rasterizer = MagickRasterizer()
        capabilities = self.capabilities or FormatCapabilityTable.from_environment(params.convert_png, engine)
        comparator = self.comparator or build_comparator(engine)
        logger.debug(f"Reconciler: engine={engine.display_name}, {capabilities!r}, rasterizer={rasterizer!r}")
        return ReconcilerImpl(comparator, capabilities, rasterizer=rasterizer)

    def execute(
            self,
            params: DiffParams,
            progress_callback: Optional[Callable[[str, int, Optional[int]], None]] = None,
            diff_viewer: Optional[Callable[[str, str], None]] = None
    ) -> DiffOutcome:
        """
        Run the workflow for two documents.

        Args:
            params: Validated diff parameters
            progress_callback: (stage: str, current: int, total: Optional[int]) -> None,
                called once per workflow step and once per extension group while matching
            diff_viewer: (normalized_md1, normalized_md2) -> None, called before the
                normalized files are removed (the CLI pages them through delta)

        Returns:
            DiffOutcome

        Raises:
            ExtractionError, ConversionError, ReconciliationError: a step failed
            RuntimeError: copying originals failed
        """
        steps = Stage.get_all()
        step_counter = iter(range(1, len(steps) + 1))

        def advance(stage: Stage) -> None:
            current = next(step_counter)
            logger.info(f"[{current}/{len(steps)}] {stage.value}")
            if progress_callback:
                progress_callback(stage.value, current, len(steps))

        doc1_base, doc2_base = params.doc1_base, params.doc2_base

        with ExitStack() as stack:
            advance(Stage.EXTRACT_FIRST)
            extract1 = stack.enter_context(DocxService.extract(params.file1))
            advance(Stage.EXTRACT_SECOND)
            extract2 = stack.enter_context(DocxService.extract(params.file2))

            diff_imgs_dir = os.path.join(params.output_dir, "imgs")
            orig1_dir = os.path.join(diff_imgs_dir, "original", doc1_base)
            orig2_dir = os.path.join(diff_imgs_dir, "original", doc2_base)
            for directory in (diff_imgs_dir, orig1_dir, orig2_dir):
                os.makedirs(directory, exist_ok=True)

            advance(Stage.CONVERT_FIRST)
            md1 = self.markdown_service.process(params.file1, extract1.images, extract1.temp_dir)
            advance(Stage.CONVERT_SECOND)
            md2 = self.markdown_service.process(params.file2, extract2.images, extract2.temp_dir)

            advance(Stage.MATCH)
            reconciler = self.build_reconciler(params)
            group_progress = None
            if progress_callback:
                def group_progress(stage: str, current: int, total: Optional[int]) -> None:
                    progress_callback(f"{stage} (extension group)", current, total)
            result = reconciler.match_image_sets(extract1.images, extract2.images, diff_imgs_dir,
                                                 progress_callback=group_progress)

            advance(Stage.COPY)
            copied = FileService.copy_original_images(result, orig1_dir, orig2_dir)
            logger.debug(f"Copied {copied} original image(s)")

            advance(Stage.DIFF)
            map1, map2 = MarkdownService.build_path_mapping(result, doc1_base, doc2_base)
            norm1 = MarkdownService.normalize_for_diff(md1.content, map1)
            norm2 = MarkdownService.normalize_for_diff(md2.content, map2)

            norm_dir = stack.enter_context(tempfile.TemporaryDirectory(prefix="ddx-normdiff-"))
            # separate subdirectories keep same-named documents apart
            norm_path1 = self._write_normalized(norm_dir, "first", doc1_base, norm1)
            norm_path2 = self._write_normalized(norm_dir, "second", doc2_base, norm2)

            diff_md_path = os.path.join(params.output_dir, "diff.md")
            DiffService.generate_diff_file(
                norm_path1, norm_path2, diff_md_path,
                labels=(f"{doc1_base}.md", f"{doc2_base}.md"),
            )

            if diff_viewer:
                diff_viewer(norm_path1, norm_path2)

        return DiffOutcome(
            result=result,
            diff_md_path=diff_md_path,
            diff_imgs_dir=diff_imgs_dir,
            orig1_dir=orig1_dir,
            orig2_dir=orig2_dir,
            markdown1_path=md1.output_path,
            markdown2_path=md2.output_path,
            copied_originals=copied,
        )

    @staticmethod
    def _write_normalized(norm_dir: str, side: str, base: str, content: str) -> str:
        side_dir = os.path.join(norm_dir, side)
        os.makedirs(side_dir, exist_ok=True)
        path = os.path.join(side_dir, f"{base}.md")
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
        return path
