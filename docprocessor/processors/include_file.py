"""``@includeFile``: paste the text of a file next to the declaration's source."""

from __future__ import annotations

from pathlib import Path

from ..arguments import split_arguments
from ..declarations import Declaration, DocFlavor
from ..errors import DocResourceError
from ..markup import append_extra_content, escape_javadoc
from ..scanner import TagOccurrence
from .base import ProcessingContext, TagProcessor

TAG = "includeFile"


class IncludeFileProcessor(TagProcessor):
    processor_id = "include-file"
    description = "Copy the content of a file, relative to the source file, here."
    supported_tags = frozenset({TAG})

    def transform_inline(
        self,
        tag_text: str,
        occurrence: TagOccurrence,
        declaration: Declaration,
        context: ProcessingContext,
    ) -> str:
        file_argument, extra_content = split_arguments(tag_text, TAG, 2)
        file_path = file_argument.strip()
        if file_path.startswith("("):
            file_path = file_path[1:]
        if file_path.endswith(")"):
            file_path = file_path[:-1]
        file_path = file_path.strip()

        base_dir = declaration.file.parent if declaration.file is not None else Path.cwd()
        target = (base_dir / file_path).resolve()
        if not target.exists():
            raise DocResourceError(f"File {file_path} (-> {target}) does not exist.", path=str(target))
        if target.is_dir():
            raise DocResourceError(f"File {file_path} (-> {target}) is a directory.", path=str(target))
        try:
            content = target.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise DocResourceError(f"File {file_path} (-> {target}) could not be read: {exc}", path=str(target)) from exc

        if declaration.flavor is DocFlavor.JAVADOC:
            content = escape_javadoc(content)
        return append_extra_content(content, extra_content)


__all__ = ["IncludeFileProcessor"]
