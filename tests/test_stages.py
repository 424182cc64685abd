"""
Unit tests for the per-group matching stages.
Every stage runs against GroupState built by hand and a scripted comparator.
"""
import os
from unittest.mock import MagicMock

import pytest

from conftest import LabelComparator
from ddx.core.errors import OracleInvocationError, ReconciliationError
from ddx.core.grouper import ImageGrouperImpl
from ddx.core.models import ComparisonOutcome, ImageRef, ReconciliationResult
from ddx.core.stages import ExactMatchStage, GroupState, OrderPairingStage, PresenceStage


def build_state(images1, images2, scratch_dir, output_dir, ext=".png"):
    grouper = ImageGrouperImpl()
    list1 = grouper.group_by_extension(images1).get(ext, [])
    list2 = grouper.group_by_extension(images2).get(ext, [])
    return GroupState(ext, list1, list2, str(scratch_dir), str(output_dir))


@pytest.fixture
def scratch_dir(temp_dir):
    path = temp_dir / "scratch"
    path.mkdir()
    return path


class TestGroupState:
    def test_fresh_state_has_nothing_consumed(self):
        refs = [ImageRef("a.png", "/a.png"), ImageRef("b.png", "/b.png")]
        state = GroupState(".png", refs, refs[:1], "/s", "/o")
        assert state.unconsumed_first() == [0, 1]
        assert state.unconsumed_second() == [0]
        assert not state.is_complete()

    def test_source_defaults_to_image_path(self):
        ref = ImageRef("a.emf", "/media/a.emf")
        state = GroupState(".emf", [ref], [], "/s", "/o")
        assert state.source(ref) == "/media/a.emf"
        state.sources[ref] = "/raster/a.png"
        assert state.source(ref) == "/raster/a.png"


class TestExactMatchStage:
    """Phase 1: greedy first-fit over ascending names."""

    def test_pairs_identical_images(self, make_images, scratch_dir, output_dir):
        images1 = make_images("one", {"a.png": "A", "b.png": "B"})
        images2 = make_images("two", {"x.png": "B", "y.png": "A"})
        state = build_state(images1, images2, scratch_dir, output_dir)
        result = ReconciliationResult()

        ExactMatchStage(LabelComparator()).process(state, result)

        assert [(p.image1.name, p.image2.name) for p in result.matched] == [("a.png", "y.png"), ("b.png", "x.png")]
        assert state.is_complete()

    def test_first_fit_not_optimal(self, make_images, scratch_dir, output_dir):
        """Two identical candidates: the first by name wins, the other stays unconsumed."""
        images1 = make_images("one", {"a.png": "A"})
        images2 = make_images("two", {"m.png": "A", "n.png": "A"})
        state = build_state(images1, images2, scratch_dir, output_dir)
        result = ReconciliationResult()

        comparator = LabelComparator()
        ExactMatchStage(comparator).process(state, result)

        assert result.matched[0].image2.name == "m.png"
        assert comparator.pairs == [("a.png", "m.png")]
        assert state.unconsumed_second() == [1]

    def test_consumed_candidates_not_compared_again(self, make_images, scratch_dir, output_dir):
        images1 = make_images("one", {"a.png": "A", "b.png": "A"})
        images2 = make_images("two", {"a.png": "A", "c.png": "C"})
        state = build_state(images1, images2, scratch_dir, output_dir)

        comparator = LabelComparator()
        ExactMatchStage(comparator).process(state, ReconciliationResult())

        assert comparator.pairs == [("a.png", "a.png"), ("b.png", "c.png")]

    def test_compares_into_scratch_dir(self, make_images, scratch_dir, output_dir):
        """Phase 1 artifacts never reach the output directory."""
        images1 = make_images("one", ["a.png"])
        images2 = make_images("two", ["a.png"])
        state = build_state(images1, images2, scratch_dir, output_dir)

        comparator = LabelComparator()
        ExactMatchStage(comparator).process(state, ReconciliationResult())

        assert comparator.calls[0][2] == str(scratch_dir)
        assert os.listdir(output_dir) == []

    def test_oracle_failure_wrapped_with_context(self, make_images, scratch_dir, output_dir):
        images1 = make_images("one", ["a.png"])
        images2 = make_images("two", ["bad.png"])
        state = build_state(images1, images2, scratch_dir, output_dir)

        with pytest.raises(ReconciliationError) as exc_info:
            ExactMatchStage(LabelComparator(failing={"bad.png"})).process(state, ReconciliationResult())

        error = exc_info.value
        assert (error.extension, error.image1, error.image2) == (".png", "a.png", "bad.png")
        assert isinstance(error.__cause__, OracleInvocationError)
        assert "failed to compare a.png vs bad.png (.png)" in str(error)


class TestOrderPairingStage:
    """Phase 2: positional pairing of leftovers."""

    def test_pairs_by_position_and_renames_artifacts(self, make_images, scratch_dir, output_dir):
        images1 = make_images("one", ["image1.png", "image2.png"])
        images2 = make_images("two", ["image5.png", "image7.png", "image9.png"])
        state = build_state(images1, images2, scratch_dir, output_dir)
        result = ReconciliationResult()

        OrderPairingStage(LabelComparator(score=0.3)).process(state, result)

        assert [(p.image1.name, p.image2.name) for p in result.different] == [
            ("image1.png", "image5.png"), ("image2.png", "image7.png")]
        assert result.different[0].score == 0.3
        assert result.different[0].diff_path == os.path.join(str(output_dir), "image1-image5.png")
        assert sorted(os.listdir(output_dir)) == ["image1-image5.png", "image2-image7.png"]
        assert state.unconsumed_second() == [2]

    def test_skips_images_consumed_by_phase_one(self, make_images, scratch_dir, output_dir):
        images1 = make_images("one", ["a.png", "b.png"])
        images2 = make_images("two", ["c.png", "d.png"])
        state = build_state(images1, images2, scratch_dir, output_dir)
        state.consumed1[0] = True
        state.consumed2[1] = True
        result = ReconciliationResult()

        OrderPairingStage(LabelComparator()).process(state, result)

        assert [(p.image1.name, p.image2.name) for p in result.different] == [("b.png", "c.png")]

    def test_identical_pair_still_recorded_as_different(self, scratch_dir, output_dir):
        """Only phase 1 produces matches."""
        ref1 = ImageRef("a.png", "/one/a.png")
        ref2 = ImageRef("b.png", "/two/b.png")
        state = GroupState(".png", [ref1], [ref2], str(scratch_dir), str(output_dir))
        comparator = MagicMock()
        comparator.compare.return_value = ComparisonOutcome(different=False)
        result = ReconciliationResult()

        OrderPairingStage(comparator).process(state, result)

        assert len(result.different) == 1
        assert not result.different[0].has_score
        assert result.different[0].diff_path == ""
        assert result.matched == []

    def test_missing_artifact_gives_empty_path(self, scratch_dir, output_dir):
        ref1 = ImageRef("a.png", "/one/a.png")
        ref2 = ImageRef("a.png", "/two/a.png")
        state = GroupState(".png", [ref1], [ref2], str(scratch_dir), str(output_dir))
        comparator = MagicMock()
        comparator.compare.return_value = ComparisonOutcome(different=True, score=0.0)
        result = ReconciliationResult()

        OrderPairingStage(comparator).process(state, result)

        assert result.different[0].diff_path == ""
        assert result.different[0].score == 0.0

    def test_artifact_suffix(self, make_images, scratch_dir, output_dir):
        images1 = make_images("one", ["chart.emf"])
        images2 = make_images("two", ["chart.emf"])
        state = build_state(images1, images2, scratch_dir, output_dir, ext=".emf")
        state.artifact_suffix = ".png"
        result = ReconciliationResult()

        OrderPairingStage(LabelComparator()).process(state, result)

        assert result.different[0].diff_path == os.path.join(str(output_dir), "chart-chart.emf.png")


class TestPresenceStage:
    def test_leftovers_in_name_order(self, scratch_dir, output_dir):
        list1 = [ImageRef(n, f"/one/{n}") for n in ("a.png", "c.png", "e.png")]
        list2 = [ImageRef(n, f"/two/{n}") for n in ("b.png", "d.png")]
        state = GroupState(".png", list1, list2, str(scratch_dir), str(output_dir))
        state.consumed1[1] = True
        result = ReconciliationResult()

        PresenceStage().process(state, result)

        assert [r.name for r in result.only_in_first] == ["a.png", "e.png"]
        assert [r.name for r in result.only_in_second] == ["b.png", "d.png"]
        assert state.is_complete()
