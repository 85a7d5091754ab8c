"""Lossless conversion between raw doc comments and their content.

A raw doc comment is the text between ``/**`` and ``*/`` including the
`` * `` decoration of every continued line. Its content is the payload with
that decoration stripped. ``extract_content`` also produces a
:class:`PositionMap` so editors can translate content ranges back to file
coordinates.
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

DOC_OPENER = "/**"
DOC_CLOSER = "*/"
LINE_MARKER = "*"


@dataclass(frozen=True)
class RawComment:
    """A doc comment including its opener, closer and line decoration."""

    text: str

    def __str__(self) -> str:
        return self.text


@dataclass
class PositionMap:
    """Monotonic mapping between content offsets and raw comment offsets.

    ``content_to_raw[i]`` is the raw offset of content character ``i``; the
    extra trailing entry maps the end of the content to the closer.
    """

    content_to_raw: List[int] = field(default_factory=list)

    def to_raw(self, content_offset: int) -> int:
        if not self.content_to_raw:
            return 0
        if content_offset < 0:
            raise IndexError(f"Negative content offset: {content_offset}")
        if content_offset >= len(self.content_to_raw):
            return self.content_to_raw[-1]
        return self.content_to_raw[content_offset]

    def to_content(self, raw_offset: int) -> int:
        """Return the content offset at or just before ``raw_offset``."""

        index = bisect_right(self.content_to_raw, raw_offset) - 1
        return max(index, 0)

    def range_to_raw(self, start: int, end: int) -> Tuple[int, int]:
        """Translate a half-open content range into a half-open raw range."""

        if end <= start:
            raw_start = self.to_raw(start)
            return raw_start, raw_start
        return self.to_raw(start), self.to_raw(end - 1) + 1


def parse_raw(text: str) -> Optional[RawComment]:
    """Return the doc comment at the start of ``text`` or ``None``.

    The opener has to be the very first thing in ``text``; the match runs to
    the last closer so that nested comments stay inside.
    """

    if not text or not text.startswith(DOC_OPENER):
        return None
    closer = text.rfind(DOC_CLOSER)
    if closer < len(DOC_OPENER):
        return None
    if text[closer + len(DOC_CLOSER):].strip():
        return None
    return RawComment(text[: closer + len(DOC_CLOSER)])


def extract_content(raw: RawComment) -> Tuple[str, PositionMap]:
    text = raw.text
    body_start = len(DOC_OPENER)
    body_end = len(text) - len(DOC_CLOSER)

    segments: List[Tuple[int, int]] = []
    line_start = body_start
    while True:
        newline = text.find("\n", line_start, body_end)
        if newline == -1:
            segments.append((line_start, body_end))
            break
        segments.append((line_start, newline))
        line_start = newline + 1

    last_index = len(segments) - 1
    lines: List[str] = []
    mapping: List[int] = []
    for index, (start, end) in enumerate(segments):
        if index > 0:
            # the newline separating this line from the previous one
            mapping.append(start - 1)
        begin, stop = _strip_decoration(text, start, end, first=index == 0, last=index == last_index)
        lines.append(text[begin:stop])
        mapping.extend(range(begin, stop))

    mapping.append(body_end)
    return "\n".join(lines), PositionMap(mapping)


def _strip_decoration(text: str, start: int, end: int, *, first: bool, last: bool) -> Tuple[int, int]:
    begin, stop = start, end
    if not first:
        while begin < stop and text[begin] in " \t":
            begin += 1
        if begin == stop:
            return begin, begin
        if text[begin] == LINE_MARKER:
            begin += 1
    if begin < stop and text[begin] == " ":
        begin += 1
    if last and stop > begin and text[stop - 1] == " ":
        stop -= 1
    return begin, stop


def synthesize_raw(content: str, indent: int = 0) -> RawComment:
    """Wrap ``content`` into a canonically formatted doc comment.

    Single-line content becomes the compact ``/** text */`` form and empty
    content becomes ``/** */``. Every other line is prefixed with ``indent``
    spaces and the `` * `` marker.
    """

    lines = content.split("\n")
    padding = " " * indent
    last_index = len(lines) - 1
    parts: List[str] = []
    for index, line in enumerate(lines):
        if index == 0:
            parts.append(f"{DOC_OPENER} {line}" if line else DOC_OPENER)
        elif index == last_index and line == "":
            parts.append(f"\n{padding}")
        else:
            parts.append(f"\n{padding} {LINE_MARKER} {line}" if line else f"\n{padding} {LINE_MARKER}")
    parts.append(f" {DOC_CLOSER}")
    return RawComment("".join(parts))


def text_to_content(text: str) -> Optional[str]:
    """Shortcut for ``extract_content(parse_raw(text))`` returning only content."""

    raw = parse_raw(text)
    if raw is None:
        return None
    content, _ = extract_content(raw)
    return content


def content_to_text(content: str, indent: int = 0) -> str:
    return synthesize_raw(content, indent).text


__all__ = [
    "RawComment",
    "PositionMap",
    "parse_raw",
    "extract_content",
    "synthesize_raw",
    "text_to_content",
    "content_to_text",
]
