"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/capabilities.py
Static classification of image extensions and the one-time environment probes
deciding whether optional formats can be compared at all.
"""

import shutil
import logging
from functools import lru_cache

from ddx.core.models import CompareConfig, CompareEngine, FormatCapability

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def probe_vector_support() -> bool:
    """True when LibreOffice is installed (ImageMagick delegates wmf/emf/svg decoding to it)."""
    found = shutil.which("libreoffice") is not None
    logger.debug(f"LibreOffice available: {found}")
    return found


@lru_cache(maxsize=1)
def probe_magick() -> bool:
    """True when the ImageMagick 7 `magick` executable is on PATH."""
    found = shutil.which("magick") is not None
    logger.debug(f"ImageMagick available: {found}")
    return found


def classify_extension(ext: str) -> FormatCapability:
    """Map a file extension (with or without dot, any case) to its capability class."""
    ext = ext.lower()
    if ext and not ext.startswith("."):
        ext = f".{ext}"
    if ext in CompareConfig.RASTER_EXTENSIONS:
        return FormatCapability.ALWAYS
    if ext in CompareConfig.VECTOR_EXTENSIONS:
        return FormatCapability.IF_CAPABLE
    return FormatCapability.NEVER


class FormatCapabilityTable:
    """
    Decides per extension whether images may be handed to the comparator.
    The runtime capability is injected so tests never depend on the host.
    """

    def __init__(self, vector_capable: bool):
        self.vector_capable = bool(vector_capable)

    @classmethod
    def from_environment(cls, convert_png: bool = True,
                         engine: CompareEngine = CompareEngine.MAGICK) -> "FormatCapabilityTable":
        """
        Vectors are comparable when ImageMagick can rasterize them to PNG first,
        or when the ImageMagick oracle can read them directly through LibreOffice.
        `engine` must already be resolved (not AUTO).
        """
        capable = (convert_png and probe_magick()) or (
            engine == CompareEngine.MAGICK and probe_vector_support()
        )
        return cls(vector_capable=capable)

    def capability(self, ext: str) -> FormatCapability:
        return classify_extension(ext)

    def can_compare(self, ext: str) -> bool:
        capability = classify_extension(ext)
        if capability == FormatCapability.ALWAYS:
            return True
        if capability == FormatCapability.IF_CAPABLE:
            return self.vector_capable
        return False

    def __repr__(self):
        return f"<FormatCapabilityTable vector_capable={self.vector_capable}>"
