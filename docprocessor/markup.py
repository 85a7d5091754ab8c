"""Text helpers shared by the processors: links, escaping and indentation."""

from __future__ import annotations

import html
import re
from typing import Callable, List, Optional

from .scanner import ESCAPE_CHAR

JAVA_LINK_PATTERN = re.compile(r"\{@link .*?\}", re.DOTALL)


def escape_javadoc(text: str) -> str:
    """Escape text so it can be pasted into a Javadoc comment verbatim."""

    escaped = html.escape(text, quote=False).replace('"', "&quot;")
    return escaped.replace("@", "&#64;").replace("*/", "&#42;&#47;")


def append_extra_content(text: str, extra: str) -> str:
    """Append what followed a tag's target back after the replacement."""

    if not extra:
        return text
    separator = "" if extra[0].isspace() else " "
    return f"{text}{separator}{extra}"


def trim_indent(text: str) -> str:
    """Drop a blank first/last line and the common indentation of the rest."""

    lines = text.split("\n")
    if lines and not lines[0].strip():
        lines = lines[1:]
    if lines and not lines[-1].strip():
        lines = lines[:-1]
    indents = [len(line) - len(line.lstrip()) for line in lines if line.strip()]
    margin = min(indents) if indents else 0
    return "\n".join(line[margin:] if line.strip() else "" for line in lines)


def _find_closing_bracket(text: str, index: int) -> Optional[int]:
    depth = 0
    position = index
    while position < len(text):
        char = text[position]
        if char == ESCAPE_CHAR:
            position += 2
            continue
        if char == "\n":
            return None
        if char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
            if depth == 0:
                return position
        position += 1
    return None


def _is_processable_reference(reference: str) -> bool:
    if len(reference) >= 2 and reference.startswith("`") and reference.endswith("`"):
        return True
    return bool(reference) and not any(char.isspace() for char in reference)


def replace_links(text: str, process: Callable[[str], str]) -> str:
    """Rewrite ``[ref]`` and ``[alias][ref]`` links through ``process``.

    ``[ref]`` becomes ``[ref][new]`` when ``process`` changes the reference
    and ``[alias][ref]`` becomes ``[alias][new]``. Escaped brackets, code
    spans, fenced code and markdown ``[text](url)`` links are left alone.
    """

    result: List[str] = []
    index = 0
    in_fence = False
    in_code_span = False
    at_line_start = True
    while index < len(text):
        if at_line_start:
            at_line_start = False
            in_code_span = False
            if text[index:].lstrip(" \t").startswith("```"):
                in_fence = not in_fence
        char = text[index]
        if char == "\n":
            at_line_start = True
            result.append(char)
            index += 1
            continue
        if in_fence:
            result.append(char)
            index += 1
            continue
        if char == ESCAPE_CHAR:
            result.append(text[index:index + 2])
            index += 2
            continue
        if char == "`":
            in_code_span = not in_code_span
        if char != "[" or in_code_span:
            result.append(char)
            index += 1
            continue

        first_end = _find_closing_bracket(text, index)
        if first_end is None:
            result.append(char)
            index += 1
            continue
        first = text[index + 1:first_end]
        after = first_end + 1
        if text.startswith("(", after):
            result.append(text[index:after])
            index = after
            continue
        if text.startswith("[", after):
            second_end = _find_closing_bracket(text, after)
            if second_end is not None:
                reference = text[after + 1:second_end]
                replacement = reference
                if _is_processable_reference(reference):
                    replacement = process(reference)
                result.append(f"[{first}][{replacement}]")
                index = second_end + 1
                continue
        if _is_processable_reference(first):
            replacement = process(first)
            if replacement != first:
                result.append(f"[{first}][{replacement}]")
                index = after
                continue
        result.append(text[index:after])
        index = after
    return "".join(result)


__all__ = [
    "JAVA_LINK_PATTERN",
    "escape_javadoc",
    "append_extra_content",
    "trim_indent",
    "replace_links",
]
