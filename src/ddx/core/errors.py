"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/errors.py
Exceptions raised across ddx. All derive from RuntimeError so callers can
keep a single `except RuntimeError` around a diff run.
"""
from typing import Iterable, Optional

__all__ = [
    "OracleInvocationError",
    "ReconciliationError",
    "ExtractionError",
    "ConversionError",
    "MissingToolError",
]


class OracleInvocationError(RuntimeError):
    """The pixel comparison could not run or failed harder than "images differ"."""

    def __init__(self, message: str, output: str = ""):
        self.output = output
        if output:
            message = f"{message}\nOutput: {output.strip()}"
        super().__init__(message)


class ReconciliationError(RuntimeError):
    """A comparison inside one extension group failed; the whole run is invalid."""

    def __init__(self, extension: str, image1: str, image2: Optional[str], cause: Exception):
        self.extension = extension
        self.image1 = image1
        self.image2 = image2
        group = extension or "<no extension>"
        if image2 is None:
            message = f"failed to prepare {image1} ({group}): {cause}"
        else:
            message = f"failed to compare {image1} vs {image2} ({group}): {cause}"
        super().__init__(message)


class ExtractionError(RuntimeError):
    """The document container could not be unpacked."""


class ConversionError(RuntimeError):
    """Document body could not be converted to markdown."""


class MissingToolError(RuntimeError):
    """Required external executables are not on PATH."""

    def __init__(self, tools: Iterable[str]):
        self.tools = list(tools)
        super().__init__(
            f"missing required tools: {', '.join(self.tools)}\n"
            f"Please install them before using ddx"
        )
