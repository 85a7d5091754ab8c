"""Base classes for doc processors."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

from ..declarations import CorpusIndex, Declaration, DeclarationFilter
from ..errors import CircularReferenceError, ConfigError
from ..resolver import Resolution, resolve
from ..scanner import TagOccurrence


@dataclass
class ProcessingContext:
    """What a processor sees of the current run.

    ``corpus`` is the whole corpus, ``query_filter`` the processor's own
    restriction used for lookups.
    """

    corpus: CorpusIndex
    process_limit: int
    query_filter: Optional[DeclarationFilter] = None
    warnings: List[str] = field(default_factory=list)
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("docprocessor.engine"))

    def query(self, target: str, requester: Declaration, predicate: Optional[DeclarationFilter] = None) -> Resolution:
        """Resolve ``target`` among the declarations the processor queries."""

        query_filter = self.query_filter
        if query_filter is None:
            combined = predicate
        elif predicate is None:
            combined = query_filter
        else:

            def combined(declaration: Declaration) -> bool:
                return query_filter(declaration) and predicate(declaration)

        return resolve(target, requester, self.corpus, combined)

    def resolve_unfiltered(self, target: str, requester: Declaration) -> Resolution:
        return resolve(target, requester, self.corpus)

    def warn(self, message: str) -> None:
        self.warnings.append(message)
        self.logger.warning(message)


class DocProcessor(ABC):
    """Base class of every processor that can run over a corpus."""

    processor_id: str = ""
    description: str = ""

    def __init__(self, arguments: Optional[Mapping[str, Any]] = None) -> None:
        self.arguments: Dict[str, Any] = dict(arguments or {})
        self.logger = logging.getLogger(type(self).__module__)

    def bool_argument(self, key: str, default: bool) -> bool:
        value = self.arguments.get(key, default)
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in {"true", "false"}:
            return value.lower() == "true"
        raise ConfigError(f"Argument '{key}' of processor '{self.processor_id}' must be true or false.")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.processor_id!r})"


class CorpusProcessor(DocProcessor):
    """A processor applied once to the whole corpus, outside the pass loop."""

    def filter_to_process(self, declaration: Declaration) -> bool:
        return True

    @abstractmethod
    def apply(self, declaration: Declaration, context: ProcessingContext) -> None:
        """Transform one declaration in place."""


class TagProcessor(DocProcessor):
    """A processor driven by tags, run by the engine until a fixed point.

    By default a processor fails with a circular reference error when tags are
    left once no pass makes progress or the pass ceiling is reached; lenient
    ones override :meth:`on_stalled` and :meth:`on_limit_reached` to only warn.
    """

    supported_tags: FrozenSet[str] = frozenset()

    def filter_to_process(self, declaration: Declaration) -> bool:
        return True

    def filter_to_query(self, declaration: Declaration) -> bool:
        return True

    def begin_run(self, context: ProcessingContext) -> None:
        """Reset per-run state before the first pass."""

    def order(self, declarations: List[Declaration], context: ProcessingContext) -> List[Declaration]:
        return declarations

    def prepare(self, declarations: List[Declaration], context: ProcessingContext) -> None:
        """Rewrite the declarations to process once, before the first pass."""

    def end_run(self, context: ProcessingContext) -> None:
        """Called once the processor settled without failing."""

    @abstractmethod
    def transform_inline(
        self,
        tag_text: str,
        occurrence: TagOccurrence,
        declaration: Declaration,
        context: ProcessingContext,
    ) -> str:
        """Return the replacement of an inline ``{@tag ...}`` occurrence."""

    def transform_block(
        self,
        tag_text: str,
        occurrence: TagOccurrence,
        declaration: Declaration,
        context: ProcessingContext,
    ) -> str:
        """Return the replacement of a whole ``@tag ...`` block."""

        return self.transform_inline(tag_text, occurrence, declaration, context)

    def on_stalled(self, pending: List[Declaration], context: ProcessingContext) -> None:
        """Called when a pass changed nothing while tags are left."""

        self.on_limit_reached(pending, context)

    def on_limit_reached(self, pending: List[Declaration], context: ProcessingContext) -> None:
        raise CircularReferenceError(
            self.circular_reference_message(pending),
            processor=self.processor_id,
            pending=[declaration.path for declaration in pending],
        )

    def circular_reference_message(self, pending: List[Declaration]) -> str:
        lines = [f"Circular references detected in @{'/@'.join(sorted(self.supported_tags))} statements:"]
        for declaration in pending:
            lines.append(f"{declaration.path}:")
            lines.append(declaration.content)
            lines.append("")
        return "\n".join(lines).rstrip("\n")


__all__ = [
    "ProcessingContext",
    "DocProcessor",
    "CorpusProcessor",
    "TagProcessor",
]
