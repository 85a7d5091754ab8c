"""``@arg`` / ``@includeArg``: named arguments scoped to one declaration."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Set

from ..arguments import decode_callable_target, remove_escape_characters, split_arguments
from ..declarations import Declaration, DocFlavor
from ..errors import ConfigError
from ..markup import JAVA_LINK_PATTERN, append_extra_content
from ..scanner import TagOccurrence, find_block_tags, find_inline_tags, get_tag_name_or_null
from .base import ProcessingContext, TagProcessor

DECLARE_TAG = "arg"
USE_TAG = "includeArg"

UNRESOLVED_POLICIES = ("leave", "empty")


@dataclass
class ArgumentTable:
    """Per-run argument storage keyed by declaration identity."""

    values: Dict[str, Dict[str, str]] = field(default_factory=dict)
    missing: Dict[str, Set[str]] = field(default_factory=dict)

    def declare(self, identity: str, keys: List[str], value: str) -> None:
        table = self.values.setdefault(identity, {})
        for key in keys:
            table[key] = value
        self.missing.get(identity, set()).difference_update(keys)

    def lookup(self, identity: str, keys: List[str]) -> Optional[str]:
        table = self.values.get(identity, {})
        for key in keys:
            if key in table:
                return table[key]
        return None

    def mark_missing(self, identity: str, keys: List[str]) -> None:
        self.missing.setdefault(identity, set()).update(keys)

    def found(self, identity: str, keys: List[str]) -> None:
        self.missing.get(identity, set()).difference_update(keys)


def declared_value(value: str) -> str:
    """Normalize the value of a declaration: leading whitespace, one trailing newline and escapes go."""

    if value.endswith("\n"):
        value = value[:-1]
    return remove_escape_characters(value.lstrip())


def argument_keys(key: str, declaration: Declaration, context: ProcessingContext) -> List[str]:
    """Keys a value is stored and looked up under.

    A ``[reference]`` key that resolves is replaced by the fully-qualified
    paths of the referenced declaration.
    """

    if not (key.startswith("[") and "]" in key):
        return [key]
    resolution = context.resolve_unfiltered(decode_callable_target(key), declaration)
    if resolution.declaration is None:
        return [key]
    return [f"[{path}]" for path in resolution.declaration.paths]


def warn_about_java_link(key: str, declaration: Declaration, context: ProcessingContext, declare_tag: str) -> None:
    if declaration.flavor is DocFlavor.JAVADOC and JAVA_LINK_PATTERN.search(key):
        context.warn(
            "Java {@link statements} are not replaced by their fully qualified path. "
            "Make sure to use fully qualified paths in {@link statements} when "
            f"using {{@link statements}} as a key in @{declare_tag}."
        )


def remaining_tags(content: str, name: str) -> List[str]:
    """Texts of the ``name`` tags still in ``content``; block tags are cut to their first line."""

    tags = [tag.text(content) for tag in find_inline_tags(content) if tag.name == name]
    tags += [tag.text(content).split("\n", 1)[0] for tag in find_block_tags(content) if tag.name == name]
    return tags


class IncludeArgProcessor(TagProcessor):
    """Stores ``@arg key value`` and substitutes it for ``@includeArg key``.

    A use is left alone while declarations are still present in the same
    doc. Uses that remain once nothing changes anymore, or once the pass
    ceiling is reached, are reported as warnings since the value may be
    declared by a later processor run.
    """

    processor_id = "include-arg"
    description = "Declare arguments with @arg and use them with @includeArg."
    supported_tags = frozenset({DECLARE_TAG, USE_TAG})

    def __init__(self, arguments: Optional[Mapping[str, Any]] = None) -> None:
        super().__init__(arguments)
        self._table = ArgumentTable()
        policy = str(self.arguments.get("unresolved", "leave"))
        if policy not in UNRESOLVED_POLICIES:
            raise ConfigError(
                f"Unknown unresolved policy '{policy}' for processor '{self.processor_id}'.",
                hint="Use 'leave' or 'empty'.",
            )
        self.unresolved_policy = policy

    def begin_run(self, context: ProcessingContext) -> None:
        self._table = ArgumentTable()

    def transform_inline(
        self,
        tag_text: str,
        occurrence: TagOccurrence,
        declaration: Declaration,
        context: ProcessingContext,
    ) -> str:
        tag_name = get_tag_name_or_null(tag_text)
        if tag_name == DECLARE_TAG:
            return self._declare(tag_text, declaration, context)
        if DECLARE_TAG in declaration.tags:
            return tag_text
        return self._use(tag_text, declaration, context)

    def _declare(self, tag_text: str, declaration: Declaration, context: ProcessingContext) -> str:
        key, value = split_arguments(tag_text, DECLARE_TAG, 2)
        keys = argument_keys(key, declaration, context)
        self._table.declare(declaration.identity, keys, declared_value(value))
        return ""

    def _use(self, tag_text: str, declaration: Declaration, context: ProcessingContext) -> str:
        key, extra_content = split_arguments(tag_text, USE_TAG, 2)
        warn_about_java_link(key, declaration, context, DECLARE_TAG)
        keys = argument_keys(key, declaration, context)
        value = self._table.lookup(declaration.identity, keys)
        if value is None:
            self._table.mark_missing(declaration.identity, keys)
            return tag_text
        self._table.found(declaration.identity, keys)
        return append_extra_content(value, extra_content)

    def on_stalled(self, pending: List[Declaration], context: ProcessingContext) -> None:
        if self.bool_argument("log-not-found", True):
            for declaration in pending:
                missing = sorted(self._table.missing.get(declaration.identity, set()))
                if not missing:
                    continue
                noun = "argument" if len(missing) == 1 else "arguments"
                listing = ",\n".join(f'  "@{USE_TAG} {key}"' for key in missing)
                context.warn(f"Could not find @{DECLARE_TAG} {noun} in doc ({declaration.describe()}):\n{listing}")
        self._apply_unresolved_policy(pending)

    def on_limit_reached(self, pending: List[Declaration], context: ProcessingContext) -> None:
        """Warn about the uses left at the pass ceiling instead of failing."""

        for declaration in pending:
            uses = remaining_tags(declaration.content, USE_TAG)
            if not uses:
                continue
            listing = ",\n".join(f'  "{use}"' for use in uses)
            context.warn(
                f"@{USE_TAG} did not settle within the limit of {context.process_limit} passes "
                f"in doc ({declaration.describe()}):\n{listing}"
            )
        self._apply_unresolved_policy(pending)

    def _apply_unresolved_policy(self, pending: List[Declaration]) -> None:
        if self.unresolved_policy == "empty":
            for declaration in pending:
                self._blank_unresolved(declaration)

    def _blank_unresolved(self, declaration: Declaration) -> None:
        content = declaration.content
        spans = [(tag.start, tag.end) for tag in find_inline_tags(content) if tag.name == USE_TAG]
        spans += [(tag.start, tag.end) for tag in find_block_tags(content) if tag.name == USE_TAG]
        outermost = [
            span
            for span in spans
            if not any(other != span and other[0] <= span[0] and span[1] <= other[1] for other in spans)
        ]
        # remove from the back so earlier offsets stay valid
        for start, end in sorted(outermost, reverse=True):
            content = content[:start] + content[end:]
        declaration.update_content(content)


__all__ = ["ArgumentTable", "IncludeArgProcessor", "argument_keys", "declared_value", "remaining_tags"]
