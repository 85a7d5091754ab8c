"""Built-in doc processors and discovery of third-party ones.

Processors are looked up by id. Packages can contribute more through the
``docprocessor.processors`` entry-point group; each entry point loads a
:class:`DocProcessor` subclass.
"""

from __future__ import annotations

import importlib.metadata
from typing import Any, Dict, Iterable, List, Mapping, Optional, Type

from ..config import ProcessingConfig
from ..errors import ConfigError
from .arg import ArgProcessor
from .base import CorpusProcessor, DocProcessor, ProcessingContext, TagProcessor
from .comment import CommentProcessor
from .corpus import NoDocProcessor, RemoveEscapeCharsProcessor, TodoProcessor
from .include import IncludeProcessor
from .include_arg import IncludeArgProcessor
from .include_file import IncludeFileProcessor
from .sample import SampleProcessor

ENTRY_POINT_GROUP = "docprocessor.processors"

BUILTIN_PROCESSORS: List[Type[DocProcessor]] = [
    IncludeProcessor,
    IncludeArgProcessor,
    IncludeFileProcessor,
    ArgProcessor,
    SampleProcessor,
    CommentProcessor,
    NoDocProcessor,
    TodoProcessor,
    RemoveEscapeCharsProcessor,
]


class ProcessorRegistry:
    """Maps processor ids to processor classes."""

    def __init__(self, processors: Iterable[Type[DocProcessor]] = ()) -> None:
        self._processors: Dict[str, Type[DocProcessor]] = {}
        self._entry_points_loaded = False
        for processor in processors:
            self.register(processor)

    def register(self, processor: Type[DocProcessor]) -> None:
        if not processor.processor_id:
            raise ConfigError(f"Processor {processor.__name__} does not define a processor_id.")
        self._processors[processor.processor_id] = processor

    def load_entry_points(self) -> None:
        if self._entry_points_loaded:
            return
        self._entry_points_loaded = True
        for entry in importlib.metadata.entry_points(group=ENTRY_POINT_GROUP):
            try:
                processor = entry.load()
            except Exception as exc:  # pragma: no cover - depends on installed plugins
                raise ConfigError(f"Failed to load processor {entry.name}: {exc}") from exc
            if not (isinstance(processor, type) and issubclass(processor, DocProcessor)):
                raise ConfigError(f"Entry point {entry.name} does not point at a DocProcessor subclass.")
            self.register(processor)

    def get(self, processor_id: str) -> Type[DocProcessor]:
        if processor_id not in self._processors:
            self.load_entry_points()
        try:
            return self._processors[processor_id]
        except KeyError as exc:
            known = ", ".join(sorted(self._processors))
            raise ConfigError(
                f"Unknown processor '{processor_id}'.",
                hint=f"Known processors: {known}",
            ) from exc

    def create(self, processor_id: str, arguments: Optional[Mapping[str, Any]] = None) -> DocProcessor:
        return self.get(processor_id)(arguments)

    def ids(self) -> List[str]:
        return list(self._processors)


default_registry = ProcessorRegistry(BUILTIN_PROCESSORS)


def create_processors(config: ProcessingConfig, registry: Optional[ProcessorRegistry] = None) -> List[DocProcessor]:
    """Instantiate the configured processors in order."""

    registry = registry or default_registry
    return [registry.create(processor_id, config.arguments_for(processor_id)) for processor_id in config.processors]


__all__ = [
    "ENTRY_POINT_GROUP",
    "BUILTIN_PROCESSORS",
    "ProcessingContext",
    "DocProcessor",
    "TagProcessor",
    "CorpusProcessor",
    "ProcessorRegistry",
    "default_registry",
    "create_processors",
    "IncludeProcessor",
    "IncludeArgProcessor",
    "IncludeFileProcessor",
    "ArgProcessor",
    "SampleProcessor",
    "CommentProcessor",
    "NoDocProcessor",
    "TodoProcessor",
    "RemoveEscapeCharsProcessor",
]
