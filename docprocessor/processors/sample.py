"""``@sample`` / ``@sampleNoComments``: embed the source code of a declaration."""

from __future__ import annotations

import re

from ..arguments import decode_callable_target, split_arguments
from ..declarations import Declaration, DocFlavor
from ..errors import UnresolvedReferenceError
from ..markup import append_extra_content, escape_javadoc, trim_indent
from ..scanner import TagOccurrence, get_tag_name_or_null
from .base import ProcessingContext, TagProcessor

SAMPLE_TAG = "sample"
SAMPLE_NO_COMMENTS_TAG = "sampleNoComments"

DOC_COMMENT_PATTERN = re.compile(r"( *)/\*\*([^*]|\*(?!/))*?\*/")
SAMPLE_START_PATTERN = re.compile(r" *// *SampleStart *\n")
SAMPLE_END_PATTERN = re.compile(r" *// *SampleEnd *\n")


def between_sample_comments(source: str) -> str:
    """Keep only the code between ``// SampleStart`` and ``// SampleEnd``."""

    starts = list(SAMPLE_START_PATTERN.finditer(source))
    ends = list(SAMPLE_END_PATTERN.finditer(source))
    if not starts or not ends:
        return source
    start = starts[0].end()
    end = ends[-1].start() - 1
    if end < start:
        return ""
    return trim_indent(source[start:end])


class SampleProcessor(TagProcessor):
    """Replaces the tag with the source of the target in a code block."""

    processor_id = "sample"
    description = "Copy the code of a declaration here."
    supported_tags = frozenset({SAMPLE_TAG, SAMPLE_NO_COMMENTS_TAG})

    def transform_inline(
        self,
        tag_text: str,
        occurrence: TagOccurrence,
        declaration: Declaration,
        context: ProcessingContext,
    ) -> str:
        tag_name = get_tag_name_or_null(tag_text) or SAMPLE_TAG
        no_comments = tag_name == SAMPLE_NO_COMMENTS_TAG
        target_argument, extra_content = split_arguments(tag_text, tag_name, 2)
        sample_path = decode_callable_target(target_argument)

        resolution = context.query(sample_path, declaration)
        if resolution.declaration is None:
            raise UnresolvedReferenceError(
                f"Reference not found: {sample_path}.\n{resolution.attempted_block()}",
                target=sample_path,
                requester=declaration.path,
                attempted=resolution.attempted,
            )

        target = resolution.declaration
        source = target.raw_source
        if no_comments:
            source = DOC_COMMENT_PATTERN.sub("", source)
        source = trim_indent(" " * target.indent + source)
        source = between_sample_comments(source)

        if declaration.flavor is DocFlavor.JAVADOC:
            block = f"<pre>\n{escape_javadoc(source)}\n</pre>"
        else:
            block = f"```{target.flavor.source_language}\n{source}\n```"
        return append_extra_content(block, extra_content)


__all__ = ["SampleProcessor", "between_sample_comments"]
