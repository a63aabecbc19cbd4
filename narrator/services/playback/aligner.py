"""Map provider word timestamps onto rendered word elements."""

from __future__ import annotations

from collections.abc import Sequence

from narrator.shared.models import RenderedWordElement, WordTimestamp

UNMATCHED = -1


def align_timeline(
    timestamps: Sequence[WordTimestamp],
    elements: Sequence[RenderedWordElement],
) -> list[int]:
    """
    Return, for every timestamp, the position of its element or ``UNMATCHED``.

    A single forward pass: the element cursor never moves back, so repeated
    words bind to the first unconsumed occurrence. When the two sequences
    disagree on word order, the words after the disagreement may stay
    unmatched.
    """
    mapping = [UNMATCHED] * len(timestamps)
    cursor = 0

    for index, entry in enumerate(timestamps):
        if not entry.normalized:
            continue
        for candidate_index in range(cursor, len(elements)):
            candidate = elements[candidate_index]
            if not candidate.normalized:
                continue
            if candidate.normalized == entry.normalized:
                mapping[index] = candidate.position
                cursor = candidate_index + 1
                break

    return mapping


def unmatched_indices(mapping: Sequence[int]) -> list[int]:
    return [index for index, position in enumerate(mapping) if position == UNMATCHED]
