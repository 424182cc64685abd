"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/naming.py
Deterministic names for generated diff images and their relocation into the output layout.
"""

import os
import logging
from typing import Optional

logger = logging.getLogger(__name__)


def artifact_name(name1: str, name2: str, suffix: str = "") -> str:
    """
    '<name1-without-ext>-<name2-without-ext>.<ext>' using the first image's extension.
    `suffix` follows the extension when the artifact was rendered in another format.
    Examples:
        ("image1.png", "image3.png") -> "image1-image3.png"
        ("chart.emf", "chart.emf", ".png") -> "chart-chart.emf.png"
    """
    stem1, ext1 = os.path.splitext(name1)
    stem2, _ = os.path.splitext(name2)
    return f"{stem1}-{stem2}{ext1}{suffix}"


def artifact_path(name1: str, name2: str, output_dir: str, suffix: str = "") -> str:
    """Path of the artifact for a pair inside `output_dir`."""
    return os.path.join(output_dir, artifact_name(name1, name2, suffix))


def relocate_artifact(temp_path: Optional[str], final_path: str) -> str:
    """
    Move a comparator artifact to its final name.
    Never raises: on failure the best path still pointing at the artifact is returned,
    or "" when there is none.
    """
    if not temp_path:
        return ""
    if temp_path == final_path:
        return final_path
    try:
        os.replace(temp_path, final_path)
        return final_path
    except OSError as e:
        logger.warning(f"Could not rename diff image {temp_path} -> {final_path}: {e}")
        return temp_path if os.path.exists(temp_path) else ""
