"""
Integration tests for the diff workflow orchestrator.
Real .docx archives and real extraction; markitdown is scripted and the pixel
oracle is the byte-label stub.
"""
import os
import subprocess
from unittest.mock import patch

import pytest

from conftest import LabelComparator, png_bytes
from ddx.commands import DiffCommand
from ddx.core.capabilities import FormatCapabilityTable
from ddx.core.errors import ConversionError, ReconciliationError
from ddx.core.models import DiffParams, Stage
from ddx.services import markdown_service
from ddx.services.docx_service import DocxService

RED = png_bytes((255, 0, 0))
BLUE = png_bytes((0, 0, 255))
GREEN = png_bytes((0, 255, 0))

MARKDOWN = {
    "v1.docx": "# Report\n![a](data:image/png;base64,AAA)\ntext\n![b](data:image/png;base64,BBB)\n",
    "v2.docx": ("# Report\n![a](data:image/png;base64,AAA)\ntext\n![b](data:image/png;base64,BBB)\n"
                "![c](data:image/gif;base64,CCC)\n"),
}


def fake_markitdown(cmd, **kwargs):
    return subprocess.CompletedProcess(cmd, 0, stdout=MARKDOWN[os.path.basename(cmd[1])], stderr="")


@pytest.fixture
def documents(temp_dir, make_docx, monkeypatch):
    temp_dir = temp_dir.resolve()
    monkeypatch.chdir(temp_dir)
    make_docx("v1.docx", media={"image1.png": RED, "image2.png": BLUE})
    make_docx("v2.docx", media={"image1.png": RED, "image2.png": GREEN, "image3.gif": b"GIF89a"})
    return temp_dir


@pytest.fixture(autouse=True)
def no_rasterizer():
    with patch("ddx.commands.probe_magick", return_value=False):
        yield


def command(comparator=None):
    return DiffCommand(comparator=comparator or LabelComparator(),
                       capabilities=FormatCapabilityTable(vector_capable=False))


class TestDiffCommand:
    def test_full_workflow(self, documents):
        params = DiffParams("v1.docx", "v2.docx", output_dir="out")

        with patch.object(markdown_service.subprocess, "run", side_effect=fake_markitdown):
            outcome = command().execute(params)

        result = outcome.result
        assert [(p.image1.name, p.image2.name) for p in result.matched] == [("image1.png", "image1.png")]
        assert [(p.image1.name, p.image2.name) for p in result.different] == [("image2.png", "image2.png")]
        assert [r.name for r in result.only_in_second] == ["image3.gif"]

        out = documents / "out"
        assert (out / "imgs" / "image2-image2.png").exists()
        assert sorted(os.listdir(out / "imgs" / "original" / "v1")) == ["image2.png"]
        assert sorted(os.listdir(out / "imgs" / "original" / "v2")) == ["image2.png", "image3.gif"]
        assert (out / "imgs" / "original" / "v2" / "image2.png").read_bytes() == GREEN
        assert outcome.copied_originals == 3

        diff = (out / "diff.md").read_text(encoding="utf-8")
        assert diff.startswith("```diff\n--- v1.md\n+++ v2.md\n")
        assert " ![a](image1.png)\n" in diff
        assert "-![b](v1/image2.png)\n" in diff
        assert "+![b](v2/image2.png)\n" in diff
        assert "+![c](v2/image3.gif)\n" in diff

    def test_markdown_saved_next_to_documents(self, documents):
        with patch.object(markdown_service.subprocess, "run", side_effect=fake_markitdown):
            outcome = command().execute(DiffParams("v1.docx", "v2.docx", output_dir="out"))

        assert outcome.markdown1_path == str(documents / "v1.md")
        saved = (documents / "v1.md").read_text(encoding="utf-8")
        assert "![a](./v1/word/media/image1.png)" in saved

    def test_progress_once_per_step(self, documents):
        calls = []
        with patch.object(markdown_service.subprocess, "run", side_effect=fake_markitdown):
            command().execute(DiffParams("v1.docx", "v2.docx", output_dir="out"),
                              progress_callback=lambda *args: calls.append(args))

        steps = [c for c in calls if c[0] in {stage.value for stage in Stage}]
        assert [c[0] for c in steps] == [stage.value for stage in Stage.get_all()]
        assert [c[1] for c in steps] == list(range(1, 8))
        assert all(c[2] == 7 for c in steps)

    def test_progress_per_extension_group(self, documents):
        calls = []
        with patch.object(markdown_service.subprocess, "run", side_effect=fake_markitdown):
            command().execute(DiffParams("v1.docx", "v2.docx", output_dir="out"),
                              progress_callback=lambda *args: calls.append(args))

        groups = [c for c in calls if c[0] == "Matching images (extension group)"]
        assert groups == [("Matching images (extension group)", 1, 2), ("Matching images (extension group)", 2, 2)]
        match_step = calls.index((Stage.MATCH.value, 5, 7))
        assert calls[match_step + 1:match_step + 3] == groups

    def test_diff_viewer_sees_normalized_files(self, documents):
        seen = {}

        def viewer(norm1, norm2):
            seen["paths"] = (norm1, norm2)
            seen["exists"] = os.path.exists(norm1) and os.path.exists(norm2)
            with open(norm2, encoding="utf-8") as f:
                seen["content"] = f.read()

        with patch.object(markdown_service.subprocess, "run", side_effect=fake_markitdown):
            command().execute(DiffParams("v1.docx", "v2.docx", output_dir="out"), diff_viewer=viewer)

        assert seen["exists"]
        assert "![a](image1.png)" in seen["content"]
        assert not any(os.path.exists(path) for path in seen["paths"])

    def test_same_document_name_in_two_directories(self, documents, make_docx):
        """Normalized copies of same-named documents must not overwrite each other."""
        (documents / "old").mkdir()
        (documents / "new").mkdir()
        make_docx("old/report.docx", media={"image1.png": RED})
        make_docx("new/report.docx", media={"image1.png": BLUE})
        MARKDOWN["report.docx"] = "![x](data:image/png;base64,AAA)\n"
        contents = []

        def viewer(norm1, norm2):
            for path in (norm1, norm2):
                with open(path, encoding="utf-8") as f:
                    contents.append(f.read())

        try:
            with patch.object(markdown_service.subprocess, "run", side_effect=fake_markitdown):
                outcome = command().execute(DiffParams("old/report.docx", "new/report.docx", output_dir="out"),
                                            diff_viewer=viewer)
        finally:
            del MARKDOWN["report.docx"]

        assert len(outcome.result.different) == 1
        assert contents == ["![x](report/image1.png)\n", "![x](report/image1.png)\n"]
        assert os.listdir(documents / "out" / "imgs" / "original") == ["report"]

    def test_extraction_cleaned_up_on_failure(self, documents):
        temp_dirs = []
        original_extract = DocxService.extract

        def spy(path):
            extracted = original_extract(path)
            temp_dirs.append(extracted.temp_dir)
            return extracted

        failing = subprocess.CompletedProcess([], 1, stdout="", stderr="corrupt")
        with patch.object(DocxService, "extract", side_effect=spy), \
                patch.object(markdown_service.subprocess, "run", return_value=failing):
            with pytest.raises(ConversionError):
                command().execute(DiffParams("v1.docx", "v2.docx", output_dir="out"))

        assert len(temp_dirs) == 2
        assert not any(os.path.exists(d) for d in temp_dirs)

    def test_oracle_failure_propagates(self, documents):
        with patch.object(markdown_service.subprocess, "run", side_effect=fake_markitdown):
            with pytest.raises(ReconciliationError):
                command(LabelComparator(failing={"image2.png"})).execute(
                    DiffParams("v1.docx", "v2.docx", output_dir="out"))

        assert not (documents / "out" / "diff.md").exists()
