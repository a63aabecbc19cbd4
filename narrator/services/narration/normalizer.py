"""Text canonicalization shared by cache-key hashing and timeline alignment."""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Iterable

_KEPT_PUNCTUATION = frozenset("-'’")
_SLUG_SEGMENT_RE = re.compile(r"^[-A-Za-z0-9]+$")

_FRONT_MATTER_DELIMITER = "---"
_MDX_STATEMENT_RE = re.compile(r"^(?:import|export)\s.*$", re.MULTILINE)
_FENCE_RE = re.compile(r"^\s*(?:```|~~~).*$", re.MULTILINE)
_HTML_COMMENT_RE = re.compile(r"<!--.*?-->", re.DOTALL)
_JSX_EXPRESSION_RE = re.compile(r"\{/\*.*?\*/\}", re.DOTALL)
_TAG_RE = re.compile(r"</?[A-Za-z][^>]*>")
_IMAGE_RE = re.compile(r"!\[[^\]]*\]\([^)]*\)")
_REFERENCE_IMAGE_RE = re.compile(r"!\[[^\]]*\]\[[^\]]*\]")
_LINK_RE = re.compile(r"\[([^\]]*)\]\([^)]*\)")
_REFERENCE_LINK_RE = re.compile(r"\[([^\]]*)\]\[[^\]]*\]")
_LINK_DEFINITION_RE = re.compile(r"^\s*\[[^\]]+\]:\s+\S.*$", re.MULTILINE)
_FOOTNOTE_RE = re.compile(r"\[\^[^\]]+\]:?")
_HEADING_RE = re.compile(r"^\s{0,3}#{1,6}\s*", re.MULTILINE)
_SETEXT_RE = re.compile(r"^\s*(?:={2,}|-{2,})\s*$", re.MULTILINE)
_RULE_RE = re.compile(r"^\s*(?:[-*_]\s*){3,}$", re.MULTILINE)
_BLOCKQUOTE_RE = re.compile(r"^\s*>+\s?", re.MULTILINE)
_LIST_MARKER_RE = re.compile(r"^(\s*)(?:[-*+]|\d+[.)])\s+", re.MULTILINE)
_TABLE_DIVIDER_RE = re.compile(r"^\s*\|?(?:\s*:?-+:?\s*\|)+\s*:?-*:?\s*$", re.MULTILINE)
_EMPHASIS_RE = re.compile(r"(\*{1,3}|_{1,3})(?=\S)(.+?)(?<=\S)\1")
_STRIKE_RE = re.compile(r"~~(.+?)~~")
_INLINE_CODE_RE = re.compile(r"`([^`]*)`")
_TRAILING_SPACE_RE = re.compile(r"[ \t]+$", re.MULTILINE)
_BLANK_LINES_RE = re.compile(r"\n{3,}")


def normalize_word(value: str | None) -> str:
    """Return the canonical token for ``value``.

    The text is NFKC-normalized, trimmed and lowercased, then every character
    other than letters, digits, hyphens and apostrophes is removed. Applying
    the function to its own output returns the same string.
    """

    if not value:
        return ""

    token = value
    while True:
        # Dropping a separator can leave a composable pair (e.g. conjoining jamo),
        # so repeat until NFKC and the filter no longer change the token.
        lowered = unicodedata.normalize("NFKC", unicodedata.normalize("NFKC", token).strip().lower())
        filtered = "".join(
            character
            for character in lowered
            if character in _KEPT_PUNCTUATION or unicodedata.category(character)[0] in ("L", "N")
        )
        if filtered == token:
            return filtered
        token = filtered


def is_meaningful_word(value: str | None) -> bool:
    return len(normalize_word(value)) > 0


def strip_front_matter(value: str) -> str:
    """Drop a leading ``---`` delimited front matter block, if closed."""

    if not value.startswith(_FRONT_MATTER_DELIMITER):
        return value
    closing_index = value.find("\n---", len(_FRONT_MATTER_DELIMITER))
    if closing_index == -1:
        return value
    return value[closing_index + 4 :]


def remove_markdown(value: str) -> str:
    """Strip markdown, MDX and HTML markup, keeping the readable text."""

    text = value.replace("\r\n", "\n")
    text = _HTML_COMMENT_RE.sub("", text)
    text = _JSX_EXPRESSION_RE.sub("", text)
    text = _MDX_STATEMENT_RE.sub("", text)
    text = _FENCE_RE.sub("", text)
    text = _TAG_RE.sub("", text)
    text = _REFERENCE_IMAGE_RE.sub("", text)
    text = _IMAGE_RE.sub("", text)
    text = _LINK_DEFINITION_RE.sub("", text)
    text = _FOOTNOTE_RE.sub("", text)
    text = _LINK_RE.sub(r"\1", text)
    text = _REFERENCE_LINK_RE.sub(r"\1", text)
    text = _TABLE_DIVIDER_RE.sub("", text)
    text = text.replace("|", " ")
    text = _RULE_RE.sub("", text)
    text = _SETEXT_RE.sub("", text)
    text = _HEADING_RE.sub("", text)
    text = _BLOCKQUOTE_RE.sub("", text)
    text = _LIST_MARKER_RE.sub(r"\1", text)
    text = _STRIKE_RE.sub(r"\1", text)
    # Nested emphasis (***bold italic***) needs more than one pass.
    for _ in range(3):
        text = _EMPHASIS_RE.sub(r"\2", text)
    text = _INLINE_CODE_RE.sub(r"\1", text)
    text = _TRAILING_SPACE_RE.sub("", text)
    return _BLANK_LINES_RE.sub("\n\n", text)


def extract_plain_text(document: str) -> str:
    """Flatten a markdown/MDX document body into the text that is hashed and narrated."""

    return remove_markdown(strip_front_matter(document)).strip()


def _normalize_segment(value: object) -> list[str]:
    if not isinstance(value, str):
        return []
    cleaned = value.strip()
    if not cleaned or not _SLUG_SEGMENT_RE.match(cleaned):
        return []
    return [cleaned]


def to_slug_segments(value: object) -> list[str]:
    """Parse a slug given as ``"a/b"`` or ``["a", "b"]``, dropping unsafe segments."""

    if isinstance(value, str):
        candidates: Iterable[object] = value.split("/")
    elif isinstance(value, (list, tuple)):
        candidates = value
    else:
        return []
    return [segment for candidate in candidates for segment in _normalize_segment(candidate)]


def document_key(segments: Iterable[str]) -> str:
    return "__".join(segments)
