"""``@set`` / ``@get``: variables scoped to one doc, with ``$key`` shorthands.

``{@set key value}`` stores ``value`` under ``key`` for the doc it is
written in and disappears from the output. ``{@get key default}`` is
replaced by the stored value, or by ``default`` (possibly empty) when no
value was set. Every ``@set`` of a doc is handled before its ``@get``
tags, so the position of a ``@set`` in the doc does not matter.

Before the first pass the shorthands are rewritten to ``@get`` tags:

- ``$key`` and ``${key}`` become ``{@get key}``
- ``$key=default`` and ``${key=default}`` become ``{@get key default}``

Outside braces a key or default is a run of letters, digits and
underscores, a ``[reference]`` or a backtick quoted span. Inside ``${...}``
the default runs to the closing brace. ``\\$`` is left alone.

Combined with ``@include`` this lets a shared doc read values set by each
declaration that includes it.
"""

from __future__ import annotations

import re
from typing import Any, List, Mapping, Optional

from ..arguments import split_arguments
from ..declarations import Declaration
from ..scanner import ESCAPE_CHAR, TagOccurrence, get_tag_name_or_null
from .base import ProcessingContext, TagProcessor
from .include_arg import ArgumentTable, argument_keys, declared_value, remaining_tags, warn_about_java_link

SET_TAG = "set"
GET_TAG = "get"

_WORD = re.compile(r"\w+")


def _bracket_end(text: str, index: int) -> Optional[int]:
    depth = 0
    position = index
    while position < len(text):
        char = text[position]
        if char == ESCAPE_CHAR:
            position += 2
            continue
        if char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
            if depth == 0:
                return position + 1
        position += 1
    return None


def _key_end(text: str, index: int) -> int:
    """Return where a shorthand key starting at ``index`` ends; ``index`` when there is none."""

    if index >= len(text):
        return index
    char = text[index]
    if char == "`":
        close = text.find("`", index + 1)
        return index if close == -1 else close + 1
    if char == "[":
        end = _bracket_end(text, index)
        if end is None:
            return index
        # aliased references: [alias][target]
        if text.startswith("[", end):
            end = _bracket_end(text, end) or end
        return end
    match = _WORD.match(text, index)
    return match.end() if match else index


def replace_dollar_notation(content: str) -> str:
    """Rewrite ``$key``, ``$key=default``, ``${key}`` and ``${key=default}`` to ``{@get ...}`` tags."""

    result: List[str] = []
    index = 0
    length = len(content)
    while index < length:
        char = content[index]
        if char == ESCAPE_CHAR:
            result.append(content[index:index + 2])
            index += 2
            continue
        if char != "$":
            result.append(char)
            index += 1
            continue

        braced = content.startswith("${", index)
        key_start = index + (2 if braced else 1)
        key_end = _key_end(content, key_start)
        if key_end == key_start:
            result.append(char)
            index += 1
            continue

        result.append(f"{{@{GET_TAG} {content[key_start:key_end]}")
        index = key_end
        if braced:
            # the default, if any, and the closing brace stay where they are
            if content.startswith("=", index):
                result.append(" ")
                index += 1
            continue
        if content.startswith("=", index):
            value_end = _key_end(content, index + 1)
            if value_end > index + 1:
                result.append(f" {content[index + 1:value_end]}")
                index = value_end
        result.append("}")
    return "".join(result)


class ArgProcessor(TagProcessor):
    """Sets values with ``@set`` and reads them with ``@get`` or the ``$`` shorthands."""

    processor_id = "arg"
    description = "Set values with @set and read them with @get, $key or ${key=default}."
    supported_tags = frozenset({SET_TAG, GET_TAG})

    def __init__(self, arguments: Optional[Mapping[str, Any]] = None) -> None:
        super().__init__(arguments)
        self._table = ArgumentTable()

    def begin_run(self, context: ProcessingContext) -> None:
        self._table = ArgumentTable()

    def prepare(self, declarations: List[Declaration], context: ProcessingContext) -> None:
        for declaration in declarations:
            declaration.update_content(replace_dollar_notation(declaration.content))

    def transform_inline(
        self,
        tag_text: str,
        occurrence: TagOccurrence,
        declaration: Declaration,
        context: ProcessingContext,
    ) -> str:
        if get_tag_name_or_null(tag_text) == SET_TAG:
            key, value = split_arguments(tag_text, SET_TAG, 2)
            keys = argument_keys(key, declaration, context)
            self._table.declare(declaration.identity, keys, declared_value(value))
            return ""
        if SET_TAG in declaration.tags:
            return tag_text

        key, default = split_arguments(tag_text, GET_TAG, 2)
        warn_about_java_link(key, declaration, context, SET_TAG)
        keys = argument_keys(key, declaration, context)
        value = self._table.lookup(declaration.identity, keys)
        if value is None:
            self._table.mark_missing(declaration.identity, keys)
            return default
        self._table.found(declaration.identity, keys)
        return value

    def end_run(self, context: ProcessingContext) -> None:
        if not self.bool_argument("log-not-found", True):
            return
        for identity, keys in self._table.missing.items():
            if not keys:
                continue
            declaration = context.corpus.by_identity(identity)
            where = declaration.describe() if declaration is not None else identity
            noun = "argument" if len(keys) == 1 else "arguments"
            listing = ",\n".join(f'  "@{GET_TAG} {key}"' for key in sorted(keys))
            context.warn(f"Could not find @{SET_TAG} {noun} in doc ({where}):\n{listing}")

    def on_stalled(self, pending: List[Declaration], context: ProcessingContext) -> None:
        self.on_limit_reached(pending, context)

    def on_limit_reached(self, pending: List[Declaration], context: ProcessingContext) -> None:
        for declaration in pending:
            left = remaining_tags(declaration.content, SET_TAG) + remaining_tags(declaration.content, GET_TAG)
            if not left:
                continue
            listing = ",\n".join(f'  "{tag}"' for tag in left)
            context.warn(
                f"@{SET_TAG} / @{GET_TAG} did not settle within the limit of {context.process_limit} passes "
                f"in doc ({declaration.describe()}):\n{listing}"
            )


__all__ = ["ArgProcessor", "replace_dollar_notation"]
