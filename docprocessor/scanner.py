"""Block and tag scanning over doc content.

Block tags start a content line (``@tag ...``) and run until the next block
tag line. Inline tags are wrapped in braces (``{@tag ...}``) and end at the
matching closing brace. Fenced code (a line starting with three backticks),
single-backtick code spans and escaped characters (``\\``) never open or
close a tag.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Set

TAG_MARKER = "@"
ESCAPE_CHAR = "\\"
CODE_FENCE = "```"
INLINE_OPEN = "{"
INLINE_CLOSE = "}"


@dataclass(frozen=True)
class TagOccurrence:
    """One block or inline tag found in a piece of content.

    ``start``/``end`` delimit the full match (braces included for inline
    tags), ``content_start``/``content_end`` the tag's content which starts
    at the marker. ``depth`` is the number of inline tags enclosing this one.
    """

    name: str
    start: int
    end: int
    content_start: int
    content_end: int
    inline: bool
    depth: int = 0

    def text(self, content: str) -> str:
        return content[self.start:self.end]

    def content_text(self, content: str) -> str:
        return content[self.content_start:self.content_end]


@dataclass(frozen=True)
class Block:
    text: str
    start: int
    end: int
    tag: Optional[str] = None


def _is_tag_name_start(char: str) -> bool:
    return char.isalpha() or char == "_"


def _read_tag_name(text: str, index: int) -> str:
    end = index
    while end < len(text) and not text[end].isspace() and text[end] not in "{}":
        end += 1
    return text[index:end]


def find_block_tag_name(line: str) -> Optional[str]:
    """Return the tag name when ``line`` starts with a block tag."""

    stripped = line.lstrip(" \t")
    if len(stripped) < 2 or stripped[0] != TAG_MARKER or not _is_tag_name_start(stripped[1]):
        return None
    return _read_tag_name(stripped, 1)


def get_tag_name_or_null(text: str) -> Optional[str]:
    """Return the tag name of ``@tag ...`` or ``{@tag ...}`` text."""

    if text.startswith(INLINE_OPEN + TAG_MARKER):
        candidate = text[2:]
    else:
        stripped = text.lstrip()
        if not stripped.startswith(TAG_MARKER):
            return None
        candidate = stripped[1:]
    if not candidate or not _is_tag_name_start(candidate[0]):
        return None
    return _read_tag_name(candidate, 0)


def _is_fence_line(content: str, line_start: int) -> bool:
    index = line_start
    while index < len(content) and content[index] in " \t":
        index += 1
    return content.startswith(CODE_FENCE, index)


def _line_end(content: str, index: int) -> int:
    newline = content.find("\n", index)
    return len(content) if newline == -1 else newline


def _starts_inline_tag(content: str, index: int) -> bool:
    return (
        content.startswith(INLINE_OPEN + TAG_MARKER, index)
        and index + 2 < len(content)
        and _is_tag_name_start(content[index + 2])
    )


class _InlineScan:
    """Single left-to-right scan shared by the inline and block scanners."""

    def __init__(self, content: str) -> None:
        self.content = content
        self.tags: List[TagOccurrence] = []
        self.unclosed: List[int] = []
        # indices of line starts eligible as block tag lines
        self.block_line_starts: List[int] = []

    def run(self) -> "_InlineScan":
        content = self.content
        length = len(content)
        # each frame is [tag start, nested plain brace depth]
        stack: List[List[int]] = []
        in_fence = False
        in_code_span = False
        index = 0
        at_line_start = True
        while index < length:
            if at_line_start:
                at_line_start = False
                in_code_span = False
                if _is_fence_line(content, index):
                    in_fence = not in_fence
                    index = _line_end(content, index)
                    continue
                if in_fence:
                    index = _line_end(content, index)
                    continue
                if not stack and find_block_tag_name(content[index:_line_end(content, index)]):
                    self.block_line_starts.append(index)

            char = content[index]
            if char == "\n":
                at_line_start = True
                index += 1
                continue
            if char == ESCAPE_CHAR:
                escaped_newline = index + 1 < length and content[index + 1] == "\n"
                index += 1 if escaped_newline else 2
                continue
            if char == "`":
                in_code_span = not in_code_span
                index += 1
                continue
            if in_code_span:
                index += 1
                continue
            if char == INLINE_OPEN:
                if _starts_inline_tag(content, index):
                    stack.append([index, 0])
                elif stack:
                    stack[-1][1] += 1
            elif char == INLINE_CLOSE and stack:
                if stack[-1][1] > 0:
                    stack[-1][1] -= 1
                else:
                    start, _ = stack.pop()
                    end = index + 1
                    self.tags.append(
                        TagOccurrence(
                            name=_read_tag_name(content, start + 2),
                            start=start,
                            end=end,
                            content_start=start + 1,
                            content_end=end - 1,
                            inline=True,
                            depth=len(stack),
                        )
                    )
            index += 1
        self.unclosed = [start for start, _ in stack]
        return self


def find_inline_tags(content: str) -> List[TagOccurrence]:
    """Return inline tags, deepest first and left to right within a depth."""

    tags = _InlineScan(content).run().tags
    return sorted(tags, key=lambda tag: (-tag.depth, tag.start))


def find_unclosed_inline_tags(content: str) -> List[int]:
    """Return the offsets of ``{@`` openers that never get closed."""

    return _InlineScan(content).run().unclosed


def split_blocks_with_ranges(content: str) -> List[Block]:
    """Split content into blocks; each block tag line starts a new block.

    Block ranges are half-open and include the separating newline, except
    for the last block.
    """

    starts = _InlineScan(content).run().block_line_starts
    if not starts or starts[0] != 0:
        starts = [0] + starts
    blocks: List[Block] = []
    for position, start in enumerate(starts):
        if position + 1 < len(starts):
            next_start = starts[position + 1]
            text = content[start:next_start - 1]
            end = next_start
        else:
            text = content[start:]
            end = len(content)
        first_line = text.split("\n", 1)[0]
        blocks.append(Block(text=text, start=start, end=end, tag=find_block_tag_name(first_line)))
    return blocks


def split_blocks(content: str) -> List[str]:
    return [block.text for block in split_blocks_with_ranges(content)]


def find_block_tags(content: str) -> List[TagOccurrence]:
    tags: List[TagOccurrence] = []
    for block in split_blocks_with_ranges(content):
        if block.tag is None:
            continue
        marker = block.start + (len(block.text) - len(block.text.lstrip(" \t")))
        tags.append(
            TagOccurrence(
                name=block.tag,
                start=block.start,
                end=block.start + len(block.text),
                content_start=marker,
                content_end=block.start + len(block.text),
                inline=False,
            )
        )
    return tags


def find_all_tag_names(content: str) -> Set[str]:
    scan = _InlineScan(content).run()
    names = {tag.name for tag in scan.tags}
    for start in scan.block_line_starts:
        name = find_block_tag_name(content[start:_line_end(content, start)])
        if name:
            names.add(name)
    return names


def join_blocks(blocks: Iterable[str]) -> str:
    return "\n".join(blocks)


__all__ = [
    "TAG_MARKER",
    "ESCAPE_CHAR",
    "TagOccurrence",
    "Block",
    "find_block_tag_name",
    "get_tag_name_or_null",
    "find_inline_tags",
    "find_unclosed_inline_tags",
    "split_blocks",
    "split_blocks_with_ranges",
    "find_block_tags",
    "find_all_tag_names",
    "join_blocks",
]
