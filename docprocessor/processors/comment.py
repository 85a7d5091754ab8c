"""``@comment``: authoring notes that never reach the output."""

from __future__ import annotations

from ..declarations import Declaration
from ..scanner import TagOccurrence
from .base import ProcessingContext, TagProcessor


class CommentProcessor(TagProcessor):
    processor_id = "comment"
    description = "Remove the tag and everything in it."
    supported_tags = frozenset({"comment"})

    def transform_inline(
        self,
        tag_text: str,
        occurrence: TagOccurrence,
        declaration: Declaration,
        context: ProcessingContext,
    ) -> str:
        return ""


__all__ = ["CommentProcessor"]
