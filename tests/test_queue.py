"""Tests for the queue algebra."""

import random

import pytest

from songbox.core import queue as queue_ops

from .conftest import make_track


@pytest.fixture
def queue():
    return [make_track(c) for c in "abcde"]


def _ids(tracks):
    return [t.id for t in tracks]


class TestShuffleAndRotate:
    """Test anchored shuffles and rotations."""

    @pytest.mark.parametrize("seed", range(10))
    def test_shuffled_is_permutation_with_anchor_first(self, queue, seed):
        """Test that shuffling keeps every track and puts the anchor first."""
        result = queue_ops.shuffled(queue, "c", random.Random(seed))
        assert sorted(_ids(result)) == _ids(queue)
        assert result[0].id == "c"

    def test_shuffled_without_anchor(self, queue):
        """Test that a missing anchor still yields a permutation."""
        result = queue_ops.shuffled(queue, None, random.Random(0))
        assert sorted(_ids(result)) == _ids(queue)

    def test_shuffled_does_not_mutate_input(self, queue):
        """Test that the base queue is left untouched."""
        queue_ops.shuffled(queue, "a", random.Random(0))
        assert _ids(queue) == list("abcde")

    def test_rotated(self, queue):
        """Test rotation to the anchor with earlier tracks moved to the end."""
        assert _ids(queue_ops.rotated(queue, "c")) == list("cdeab")
        assert _ids(queue_ops.rotated(queue, "a")) == list("abcde")

    def test_rotated_missing_anchor(self, queue):
        """Test that an unknown anchor leaves the order unchanged."""
        assert _ids(queue_ops.rotated(queue, "zz")) == list("abcde")


class TestNextIndex:
    """Test next-track selection."""

    def test_sequential(self, queue, rng):
        """Test plain sequential advance."""
        assert queue_ops.next_index(queue, "b", shuffle=False, repeat_all=False, rng=rng) == 2

    def test_end_of_queue_without_repeat(self, queue, rng):
        """Test that the last track has no successor without repeat or shuffle."""
        assert queue_ops.next_index(queue, "e", shuffle=False, repeat_all=False, rng=rng) is None

    def test_end_of_queue_with_repeat_all(self, queue, rng):
        """Test that repeat-all wraps to the first track."""
        assert queue_ops.next_index(queue, "e", shuffle=False, repeat_all=True, rng=rng) == 0

    def test_unknown_current_starts_after_first(self, queue, rng):
        """Test that an unknown current track behaves like position 0."""
        assert queue_ops.next_index(queue, "zz", shuffle=False, repeat_all=False, rng=rng) == 1

    def test_single_track_queue(self, rng):
        """Test that a one-track queue ends unless repeating."""
        single = [make_track("only")]
        assert queue_ops.next_index(single, "only", shuffle=False, repeat_all=False, rng=rng) is None
        assert queue_ops.next_index(single, "only", shuffle=False, repeat_all=True, rng=rng) == 0
        assert queue_ops.next_index(single, "only", shuffle=True, repeat_all=False, rng=rng) == 0

    @pytest.mark.parametrize("seed", range(20))
    def test_shuffle_never_repeats_current(self, queue, seed):
        """Test that a random pick never lands on the current track."""
        index = queue_ops.next_index(
            queue, "c", shuffle=True, repeat_all=False, rng=random.Random(seed)
        )
        assert index is not None
        assert queue[index].id != "c"

    def test_shuffle_with_repeat_all_walks_the_queue(self, queue, rng):
        """Test that shuffle plus repeat-all steps through the shuffled order."""
        assert queue_ops.next_index(queue, "e", shuffle=True, repeat_all=True, rng=rng) == 0

    def test_empty_queue(self, rng):
        """Test that an empty queue has no next track."""
        assert queue_ops.next_index([], "a", shuffle=False, repeat_all=False, rng=rng) is None


class TestPreviousIndex:
    """Test previous-track selection."""

    def test_wraps_to_last(self, queue, rng):
        """Test that previous from the first track wraps to the last."""
        assert queue_ops.previous_index(queue, "a", shuffle=False, rng=rng) == 4

    def test_sequential(self, queue, rng):
        """Test plain step back."""
        assert queue_ops.previous_index(queue, "c", shuffle=False, rng=rng) == 1

    @pytest.mark.parametrize("seed", range(20))
    def test_shuffle_never_repeats_current(self, queue, seed):
        """Test that a random pick never lands on the current track."""
        index = queue_ops.previous_index(queue, "a", shuffle=True, rng=random.Random(seed))
        assert queue[index].id != "a"
