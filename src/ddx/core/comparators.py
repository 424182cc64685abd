"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/comparators.py
Adapters around pixel comparison backends, all normalized to ComparisonOutcome.

COMPARATORS
-----------
MagickComparator          : `magick compare -verbose -metric PSNR`, report parsed from its text output
PillowComparator          : in-process per-band PSNR with Pillow, no external binary needed
DigestShortcutComparator  : byte-identical files short-circuit to "not different" before the oracle runs

SCORING
-------
Every channel reading is a PSNR-like similarity (higher = more similar). The worst
channel wins: the overall score is the minimum, and the pair is different as soon
as one channel falls below CompareConfig.PSNR_THRESHOLD. Infinite readings
(identical channels) carry no signal and are ignored. When no channel could be
read the score is CompareConfig.UNDEFINED_SCORE.

FAILURES
--------
ImageMagick exits 0 (similar), 1 (dissimilar) or 2 (error). Exit 1 is never an
error; exit >1 is fatal unless the report already proves the images differ.
A missing executable or an unreadable image raises OracleInvocationError.
"""

import os
import re
import math
import logging
import subprocess
from typing import List, Optional, Tuple

from PIL import Image, ImageChops, ImageStat

from ddx.core.interfaces import Comparator, ContentHasher, Rasterizer
from ddx.core.models import CompareConfig, CompareEngine, ComparisonOutcome
from ddx.core.errors import OracleInvocationError
from ddx.core.hasher import ContentHasherImpl
from ddx.core.capabilities import probe_magick

logger = logging.getLogger(__name__)

# Pre-compiled regex patterns
_CHANNEL_PATTERN = re.compile(r'(red|green|blue|all):\s*([\d.]+|inf)', re.IGNORECASE)


def parse_psnr_output(output: str, threshold: float = CompareConfig.PSNR_THRESHOLD) -> Tuple[bool, float]:
    """
    Interpret a `magick compare -verbose -metric PSNR` report.

    Returns:
        (different, score) where score is the minimum finite channel reading,
        or CompareConfig.UNDEFINED_SCORE when no reading was usable.
    """
    different = False
    score = CompareConfig.UNDEFINED_SCORE

    for _, value in _CHANNEL_PATTERN.findall(output):
        if value.lower() == "inf":
            continue
        try:
            reading = float(value)
        except ValueError:
            continue
        if score < 0 or reading < score:
            score = reading
        if reading < threshold:
            different = True

    if score < 0:
        # No channel data: a bare zero metric still means nothing is shared
        if " 0 " in output or " 0\n" in output:
            return True, 0.0
        return False, CompareConfig.UNDEFINED_SCORE

    return different, score


def temp_artifact_path(image_path: str, output_dir: str) -> str:
    """Where a comparator writes the diff for `image_path` before it gets its final name."""
    base = os.path.splitext(os.path.basename(image_path))[0]
    return os.path.join(output_dir, base + CompareConfig.TEMP_ARTIFACT_SUFFIX)


def _discard(path: Optional[str]) -> None:
    if not path:
        return
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.debug(f"Could not remove unused artifact {path}: {e}")


# =============================
# ImageMagick
# =============================
class MagickComparator(Comparator):
    """
    Runs ImageMagick's compare and keeps the generated diff only when the
    images really differ.
    """

    def __init__(self, executable: str = "magick", threshold: float = CompareConfig.PSNR_THRESHOLD,
                 timeout: Optional[float] = 300):
        self.executable = executable
        self.threshold = threshold
        self.timeout = timeout

    def build_command(self, path1: str, path2: str, diff_path: str) -> List[str]:
        return [self.executable, "compare", "-verbose", "-metric", "PSNR", path1, path2, diff_path]

    def compare(self, path1: str, path2: str, output_dir: str) -> ComparisonOutcome:
        diff_path = temp_artifact_path(path1, output_dir)
        cmd = self.build_command(path1, path2, diff_path)
        logger.debug(f"Running: {' '.join(cmd)}")

        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise OracleInvocationError(f"ImageMagick not found: {self.executable}") from e
        except subprocess.TimeoutExpired as e:
            raise OracleInvocationError(f"ImageMagick compare timed out after {self.timeout}s") from e
        except OSError as e:
            raise OracleInvocationError(f"ImageMagick compare could not start: {e}") from e

        output = (proc.stderr or "") + (proc.stdout or "")
        different, score = parse_psnr_output(output, self.threshold)

        if not different:
            _discard(diff_path)
            if proc.returncode > 1:
                raise OracleInvocationError(
                    f"ImageMagick compare failed (exit code {proc.returncode})", output
                )
            return ComparisonOutcome(different=False, score=score)

        if not os.path.exists(diff_path):
            diff_path = None
        return ComparisonOutcome(different=True, score=score, artifact_path=diff_path)

    def __repr__(self):
        return f"<MagickComparator executable={self.executable}>"


# =============================
# Pillow
# =============================
class PillowComparator(Comparator):
    """
    Computes per-band PSNR in-process.

    Readings are reported on ImageMagick's normalized scale (dB / 100) so the
    same threshold applies to both engines.
    """
    MAX_VALUE = 255.0
    AMPLIFY = 10  # Make faint differences visible in the artifact

    def __init__(self, threshold: float = CompareConfig.PSNR_THRESHOLD):
        self.threshold = threshold

    @classmethod
    def band_score(cls, rms: float) -> Optional[float]:
        """Normalized PSNR of one band from its RMS error; None when the band is identical."""
        if rms <= 0:
            return None
        return 20 * math.log10(cls.MAX_VALUE / rms) / 100

    @staticmethod
    def _normalize(img1: Image.Image, img2: Image.Image) -> Tuple[Image.Image, Image.Image]:
        """Bring both images to one mode and one canvas size."""
        has_alpha = any(
            img.mode in ("RGBA", "LA", "PA") or "transparency" in img.info
            for img in (img1, img2)
        )
        mode = "RGBA" if has_alpha else "RGB"
        first = img1.convert(mode)
        second = img2.convert(mode)

        if first.size != second.size:
            size = (max(first.width, second.width), max(first.height, second.height))
            canvases = []
            for img in (first, second):
                canvas = Image.new(mode, size)
                canvas.paste(img, (0, 0))
                canvases.append(canvas)
            first, second = canvases

        return first, second

    def compare(self, path1: str, path2: str, output_dir: str) -> ComparisonOutcome:
        try:
            with Image.open(path1) as img1, Image.open(path2) as img2:
                resized = img1.size != img2.size
                first, second = self._normalize(img1, img2)
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            raise OracleInvocationError(f"Pillow could not read {path1} / {path2}: {e}") from e

        diff = ImageChops.difference(first, second)
        if resized:
            # Differing dimensions are a change even where the padded pixels agree
            logger.debug(f"Size change {os.path.basename(path1)} vs {os.path.basename(path2)}")
            score = 0.0
        else:
            readings = [self.band_score(rms) for rms in ImageStat.Stat(diff).rms]
            scores = [r for r in readings if r is not None]
            logger.debug(f"Band scores {os.path.basename(path1)} vs {os.path.basename(path2)}: {scores}")

            if not scores:
                return ComparisonOutcome(different=False)

            score = min(scores)
            if score >= self.threshold:
                return ComparisonOutcome(different=False, score=score)

        diff_path = temp_artifact_path(path1, output_dir)
        try:
            diff.point(lambda x: min(255, x * self.AMPLIFY)).save(diff_path, format="PNG")
        except OSError as e:
            logger.warning(f"Could not write diff image {diff_path}: {e}")
            diff_path = None
        return ComparisonOutcome(different=True, score=score, artifact_path=diff_path)

    def __repr__(self):
        return "<PillowComparator>"


# =============================
# Shortcut
# =============================
class DigestShortcutComparator(Comparator):
    """
    Byte-identical files are content-identical: skip the expensive oracle for them.
    """

    def __init__(self, inner: Comparator, hasher: ContentHasher = None):
        self.inner = inner
        self.hasher = hasher or ContentHasherImpl()

    def compare(self, path1: str, path2: str, output_dir: str) -> ComparisonOutcome:
        if self.hasher.same_content(path1, path2):
            logger.debug(f"Byte-identical: {path1} == {path2}")
            return ComparisonOutcome(different=False)
        return self.inner.compare(path1, path2, output_dir)

    def __repr__(self):
        return f"<DigestShortcutComparator inner={self.inner!r}>"


# =============================
# Rasterizer
# =============================
class MagickRasterizer(Rasterizer):
    """Renders vector images (wmf/emf/svg) to PNG with ImageMagick."""

    def __init__(self, executable: str = "magick", timeout: Optional[float] = 300):
        self.executable = executable
        self.timeout = timeout

    def rasterize(self, source: str, destination: str) -> str:
        cmd = [self.executable, source, destination]
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            proc = subprocess.run(cmd, capture_output=True, text=True, errors="replace", timeout=self.timeout)
        except FileNotFoundError as e:
            raise OracleInvocationError(f"ImageMagick not found: {self.executable}") from e
        except subprocess.TimeoutExpired as e:
            raise OracleInvocationError(f"ImageMagick conversion timed out after {self.timeout}s") from e

        if proc.returncode != 0 or not os.path.exists(destination):
            raise OracleInvocationError(
                f"ImageMagick could not convert {os.path.basename(source)} to PNG",
                (proc.stderr or "") + (proc.stdout or ""),
            )
        return destination


def resolve_engine(engine: CompareEngine) -> CompareEngine:
    """AUTO -> ImageMagick when installed, otherwise Pillow."""
    if engine == CompareEngine.AUTO:
        return CompareEngine.MAGICK if probe_magick() else CompareEngine.PILLOW
    return engine


def build_comparator(engine: CompareEngine = CompareEngine.AUTO, shortcut: bool = True) -> Comparator:
    """Factory used by the command layer."""
    engine = resolve_engine(engine)
    comparator: Comparator
    if engine == CompareEngine.MAGICK:
        comparator = MagickComparator()
    else:
        comparator = PillowComparator()
    logger.debug(f"Using comparator: {comparator!r}")
    if shortcut:
        return DigestShortcutComparator(comparator)
    return comparator
