"""Decode provider timing payloads into canonical word timestamps.

Providers return timings either per word or per character. This module is the
only place that knows about those shapes; everything downstream consumes
``list[WordTimestamp]``.
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from narrator.services.narration.normalizer import normalize_word
from narrator.shared.enums import AlignmentShape
from narrator.shared.models import ProviderCharacterEntry, ProviderWordEntry, WordTimestamp
from narrator.shared.utils import setup_logging

logger = setup_logging("tts-timestamps")


def detect_shape(alignment: dict[str, Any] | None) -> AlignmentShape:
    if not alignment:
        return AlignmentShape.EMPTY
    if alignment.get("words"):
        return AlignmentShape.WORDS
    if alignment.get("characters"):
        return AlignmentShape.CHARACTERS
    return AlignmentShape.EMPTY


def build_word_timestamps(alignment: dict[str, Any] | None) -> list[WordTimestamp]:
    """Convert a provider alignment payload into sorted word timestamps."""
    shape = detect_shape(alignment)
    if shape == AlignmentShape.WORDS:
        timestamps = _from_words(alignment["words"])
    elif shape == AlignmentShape.CHARACTERS:
        timestamps = _from_characters(_character_entries(alignment))
    else:
        return []
    return _sorted_timestamps(timestamps)


def _from_words(entries: list[Any]) -> list[WordTimestamp]:
    timestamps = []
    for raw in entries:
        try:
            entry = ProviderWordEntry.model_validate(raw)
        except ValidationError:
            logger.debug("Skipping malformed word entry: %r", raw)
            continue
        if not entry.word or entry.start is None or entry.end is None:
            continue
        timestamps.append(
            WordTimestamp(
                word=entry.word,
                start=entry.start,
                end=entry.end,
                normalized=normalize_word(entry.word),
            )
        )
    return timestamps


def _character_entries(alignment: dict[str, Any]) -> list[ProviderCharacterEntry]:
    characters = alignment["characters"]
    starts = alignment.get("character_start_times_seconds")
    ends = alignment.get("character_end_times_seconds")

    # Native ElevenLabs payloads carry parallel arrays instead of entry objects.
    if characters and isinstance(characters[0], str):
        starts = starts or []
        ends = ends or []
        return [
            ProviderCharacterEntry(
                character=character,
                start=starts[index] if index < len(starts) else None,
                end=ends[index] if index < len(ends) else None,
            )
            for index, character in enumerate(characters)
        ]

    entries = []
    for raw in characters:
        try:
            entries.append(ProviderCharacterEntry.model_validate(raw))
        except ValidationError:
            logger.debug("Skipping malformed character entry: %r", raw)
    return entries


def _from_characters(entries: list[ProviderCharacterEntry]) -> list[WordTimestamp]:
    timestamps: list[WordTimestamp] = []
    buffer = ""
    word_start: float | None = None
    word_end: float | None = None

    def flush() -> None:
        if buffer and word_start is not None:
            normalized = normalize_word(buffer)
            if normalized:
                timestamps.append(
                    WordTimestamp(
                        word=buffer,
                        start=word_start,
                        end=word_end if word_end is not None else word_start,
                        normalized=normalized,
                    )
                )

    for entry in entries:
        character = entry.character or ""
        if not character.strip():
            flush()
            buffer, word_start, word_end = "", None, None
            continue

        buffer += character
        if word_start is None and entry.start is not None:
            word_start = entry.start
        if entry.end is not None:
            word_end = entry.end
        elif entry.start is not None:
            word_end = entry.start

    flush()
    return timestamps


def _sorted_timestamps(timestamps: list[WordTimestamp]) -> list[WordTimestamp]:
    ordered = sorted(timestamps, key=lambda entry: entry.start)
    return [
        entry if entry.end >= entry.start else entry.model_copy(update={"end": entry.start})
        for entry in ordered
    ]
