"""
Shared fixtures for ddx tests.
Creates isolated temporary directories, Pillow-generated images, synthetic
.docx archives and a scripted comparator standing in for the pixel oracle.
"""
import io
import os
import zipfile
import tempfile
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import pytest
from PIL import Image

from ddx.core.models import ComparisonOutcome
from ddx.core.errors import OracleInvocationError
from ddx.core.comparators import temp_artifact_path


@pytest.fixture
def temp_dir():
    """Creates isolated temporary directory, auto-cleanup after test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def output_dir(temp_dir) -> Path:
    out = temp_dir / "out"
    out.mkdir()
    return out


class LabelComparator:
    """
    Scripted oracle: two files differ when their labels differ. A file's label is
    `labels[path]` when given, otherwise its bytes. Records every call, writes a small
    artifact for each differing pair, and raises for basenames in `failing`.
    """

    def __init__(self, labels: Optional[Dict[str, str]] = None, failing: Iterable[str] = (), score: float = 0.42):
        self.labels = labels or {}
        self.failing = set(failing)
        self.score = score
        self.calls: List[Tuple[str, str, str]] = []

    def label(self, path: str):
        if path in self.labels:
            return self.labels[path]
        with open(path, "rb") as f:
            return f.read()

    def compare(self, path1: str, path2: str, output_dir: str) -> ComparisonOutcome:
        self.calls.append((os.path.basename(path1), os.path.basename(path2), output_dir))
        for path in (path1, path2):
            if os.path.basename(path) in self.failing:
                raise OracleInvocationError(f"cannot read {os.path.basename(path)}")

        if self.label(path1) == self.label(path2):
            return ComparisonOutcome(different=False)

        artifact = temp_artifact_path(path1, output_dir)
        with open(artifact, "wb") as f:
            f.write(b"diff")
        return ComparisonOutcome(different=True, score=self.score, artifact_path=artifact)

    @property
    def pairs(self) -> List[Tuple[str, str]]:
        return [(a, b) for a, b, _ in self.calls]


@pytest.fixture
def make_images(temp_dir):
    """
    Writes files into a side directory and returns {name: path}, the shape
    DocxService.extract produces. `files` is a list of names (unique content
    per file) or a {name: content} mapping.
    """
    def _make(side: str, files) -> Dict[str, str]:
        side_dir = temp_dir / side
        side_dir.mkdir(exist_ok=True)
        images = {}
        if not isinstance(files, dict):
            files = {name: f"{side}:{name}" for name in files}
        for name, content in files.items():
            path = side_dir / name
            path.write_bytes(content.encode() if isinstance(content, str) else content)
            images[name] = str(path)
        return images
    return _make


def png_bytes(color=(255, 0, 0), size=(16, 16), mode="RGB", fmt="PNG") -> bytes:
    buffer = io.BytesIO()
    Image.new(mode, size, color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def make_png(temp_dir):
    """Saves a solid-color image and returns its path."""
    def _make(name: str, color=(255, 0, 0), size=(16, 16), mode="RGB") -> str:
        path = temp_dir / name
        Image.new(mode, size, color).save(path)
        return str(path)
    return _make


DOCUMENT_XML = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<w:document xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main">'
    '<w:body><w:p><w:r><w:t>Hello</w:t></w:r></w:p></w:body></w:document>'
)


def build_docx(path: Path, media: Optional[Dict[str, bytes]] = None, extra: Optional[Dict[str, bytes]] = None) -> str:
    """Minimal .docx container: document part plus word/media/* entries."""
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr("[Content_Types].xml", "<Types/>")
        archive.writestr("word/document.xml", DOCUMENT_XML)
        for name, data in (media or {}).items():
            archive.writestr(f"word/media/{name}", data)
        for name, data in (extra or {}).items():
            archive.writestr(name, data)
    return str(path)


@pytest.fixture
def make_docx(temp_dir):
    def _make(name: str, media: Optional[Dict[str, bytes]] = None,
              extra: Optional[Dict[str, bytes]] = None) -> str:
        return build_docx(temp_dir / name, media, extra)
    return _make
