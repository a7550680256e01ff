"""
Queue algebra for the playback engine: anchored shuffles, rotations and
next/previous index selection.

All functions are pure; randomness comes from the `random.Random` passed in.
"""

import random
from collections.abc import Sequence

from songbox.models.track import Track


def index_of(queue: Sequence[Track], track_id: str | None) -> int:
    """Position of the track in the queue, or 0 when it cannot be found."""
    for i, track in enumerate(queue):
        if track.id == track_id:
            return i
    return 0


def shuffled(queue: Sequence[Track], anchor_id: str | None, rng: random.Random) -> list[Track]:
    """A random permutation of the queue with the anchor track moved to the front."""
    result = list(queue)
    rng.shuffle(result)
    for i, track in enumerate(result):
        if track.id == anchor_id:
            result.insert(0, result.pop(i))
            break
    return result


def rotated(queue: Sequence[Track], anchor_id: str | None) -> list[Track]:
    """
    The queue rotated so the anchor track comes first.

    Tracks before the anchor move to the end, keeping their relative order. If
    the anchor is not in the queue, the queue is returned unchanged.
    """
    for i, track in enumerate(queue):
        if track.id == anchor_id:
            return list(queue[i:]) + list(queue[:i])
    return list(queue)


def _random_index(length: int, current: int, step: int, rng: random.Random) -> int:
    candidate = rng.randrange(length)
    if length > 1 and candidate == current:
        candidate = (current + step) % length
    return candidate


def next_index(
    queue: Sequence[Track],
    current_id: str | None,
    *,
    shuffle: bool,
    repeat_all: bool,
    rng: random.Random,
) -> int | None:
    """
    Picks the queue position to play after the current track.

    Returns None when the queue is exhausted: not shuffling, not repeating, and
    the current track is the last one.
    """
    if not queue:
        return None

    current = index_of(queue, current_id)
    length = len(queue)
    if shuffle and not repeat_all:
        return _random_index(length, current, 1, rng)

    candidate = (current + 1) % length
    if not shuffle and not repeat_all and current == length - 1 and candidate == 0:
        return None
    return candidate


def previous_index(
    queue: Sequence[Track],
    current_id: str | None,
    *,
    shuffle: bool,
    rng: random.Random,
) -> int | None:
    """Picks the queue position to play before the current track. Always wraps."""
    if not queue:
        return None

    current = index_of(queue, current_id)
    length = len(queue)
    if shuffle:
        return _random_index(length, current, -1, rng)
    return (current - 1) % length
