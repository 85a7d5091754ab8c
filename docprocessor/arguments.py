"""Splitting tag content into arguments."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List

from .scanner import ESCAPE_CHAR, TAG_MARKER

_OPENERS = {"[": "]", "(": ")", "{": "}", "<": ">"}
_CLOSERS = {closer: opener for opener, closer in _OPENERS.items()}
_BACKTICK = "`"
_QUOTE = '"'

_PARAMETER_LIST = re.compile(r"\(.*\)")


@dataclass(frozen=True)
class Argument:
    """One split argument and its half-open range in the tag content."""

    text: str
    start: int
    end: int

    def __str__(self) -> str:
        return self.text


def _strip_tag_prefix(tag_content: str, tag_name: str) -> int:
    """Return the offset where the arguments of ``tag_content`` begin."""

    index = 0
    end = len(tag_content)
    if tag_content.startswith("{") and tag_content.endswith("}") and end >= 2:
        index, end = 1, end - 1
    while index < end and tag_content[index].isspace():
        index += 1
    marker = TAG_MARKER + tag_name
    if tag_content.startswith(marker, index):
        index += len(marker)
    while index < end and tag_content[index].isspace():
        index += 1
    return index


def _pop_until(stack: List[str], opener: str) -> None:
    for position in range(len(stack) - 1, -1, -1):
        if stack[position] == opener:
            del stack[position:]
            return


def split_arguments_with_ranges(tag_content: str, tag_name: str, count: int) -> List[Argument]:
    """Split ``tag_content`` into exactly ``count`` arguments.

    The first ``count - 1`` arguments are whitespace delimited tokens which
    extend across balanced brackets, quotes and backtick spans. The last one
    is the rest of the content. Escapes are kept in the output, see
    :func:`remove_escape_characters`.
    """

    if count < 1:
        raise ValueError("count must be at least 1")

    start = _strip_tag_prefix(tag_content, tag_name)
    end = len(tag_content)
    if tag_content.startswith("{") and tag_content.endswith("}") and end >= 2:
        end -= 1

    arguments: List[Argument] = []
    stack: List[str] = []
    current: List[str] = []
    current_start = start
    escape_next = False

    def done() -> bool:
        return len(arguments) >= count - 1

    for index in range(start, end):
        char = tag_content[index]
        if escape_next:
            escape_next = False
        elif char == ESCAPE_CHAR:
            escape_next = True
        elif done():
            pass
        elif char.isspace() and not stack:
            token = "".join(current)
            if token.strip():
                arguments.append(Argument(token, current_start, index))
            current = []
            current_start = index + 1
        elif char == _BACKTICK:
            if _BACKTICK in stack:
                _pop_until(stack, _BACKTICK)
            else:
                stack.append(_BACKTICK)
        elif _BACKTICK not in stack:
            if char in _OPENERS:
                stack.append(char)
            elif char in _CLOSERS:
                _pop_until(stack, _CLOSERS[char])
            elif char == _QUOTE:
                if stack and stack[-1] == _QUOTE:
                    stack.pop()
                else:
                    stack.append(_QUOTE)

        if done() or not (not current and char.isspace()):
            if not current:
                current_start = index
            current.append(char)

    arguments.append(Argument("".join(current), current_start if current else end, end))

    trimmed: List[Argument] = []
    last = len(arguments) - 1
    for position, argument in enumerate(arguments):
        text, arg_start = argument.text, argument.start
        if position == last:
            if text[:1] in (" ", "\t"):
                text, arg_start = text[1:], arg_start + 1
        else:
            if text.startswith("\n"):
                text, arg_start = text[1:], arg_start + 1
            stripped = text.lstrip(" \t")
            arg_start += len(text) - len(stripped)
            text = stripped
        trimmed.append(Argument(text, arg_start, arg_start + len(text)))

    while len(trimmed) < count:
        trimmed.append(Argument("", end, end))
    return trimmed


def split_arguments(tag_content: str, tag_name: str, count: int) -> List[str]:
    return [argument.text for argument in split_arguments_with_ranges(tag_content, tag_name, count)]


def remove_escape_characters(text: str) -> str:
    """Drop every unescaped escape character; a doubled one becomes single."""

    result: List[str] = []
    escape_next = False
    for char in text:
        if escape_next:
            result.append(char)
            escape_next = False
        elif char == ESCAPE_CHAR:
            escape_next = True
        else:
            result.append(char)
    return "".join(result)


def decode_callable_target(target: str) -> str:
    """Normalize a link-like target such as ``[Foo.bar]`` or ``{@link Foo#bar(int)}``."""

    text = target.strip()
    if text.startswith("["):
        text = text[1:]
    if text.endswith("]"):
        text = text[:-1]
    if "][" in text:
        text = text.split("][", 1)[1]
    text = text.replace("<code>", "").replace("</code>", "")
    if text.startswith("{"):
        text = text[1:]
    if text.endswith("}"):
        text = text[:-1]
    text = text.strip()
    if text.startswith("@link"):
        text = text[len("@link"):]
    text = text.strip().replace("#", ".")
    text = _PARAMETER_LIST.sub("", text)
    return text.strip()


__all__ = [
    "Argument",
    "split_arguments",
    "split_arguments_with_ranges",
    "remove_escape_characters",
    "decode_callable_target",
]
