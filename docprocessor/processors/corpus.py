"""Processors applied once to every declaration instead of per tag."""

from __future__ import annotations

from ..arguments import remove_escape_characters
from ..declarations import Declaration
from .base import CorpusProcessor, ProcessingContext

TODO_PLACEHOLDER = "TODO"


class NoDocProcessor(CorpusProcessor):
    """Blanks every doc so write-back removes the comments."""

    processor_id = "no-doc"
    description = "Remove all docs."

    def apply(self, declaration: Declaration, context: ProcessingContext) -> None:
        declaration.content = ""
        declaration.tags = set()
        declaration.modified = True


class TodoProcessor(CorpusProcessor):
    """Gives blank and undocumented declarations a placeholder doc."""

    processor_id = "todo"
    description = "Put TODO on every declaration without docs."

    def apply(self, declaration: Declaration, context: ProcessingContext) -> None:
        if not declaration.content.strip() or not declaration.has_source_doc:
            declaration.content = TODO_PLACEHOLDER
            declaration.refresh_tags()
            declaration.modified = True


class RemoveEscapeCharsProcessor(CorpusProcessor):
    processor_id = "remove-escape-chars"
    description = "Remove escape characters from all docs."

    def filter_to_process(self, declaration: Declaration) -> bool:
        return bool(declaration.has_source_doc)

    def apply(self, declaration: Declaration, context: ProcessingContext) -> None:
        declaration.update_content(remove_escape_characters(declaration.content))


__all__ = ["NoDocProcessor", "TodoProcessor", "RemoveEscapeCharsProcessor", "TODO_PLACEHOLDER"]
