"""``@include``: copy the docs of another declaration in place of the tag."""

from __future__ import annotations

from typing import List

from ..arguments import decode_callable_target, split_arguments
from ..declarations import Declaration, DocFlavor
from ..dependencies import build_dependency_graph, dependency_order
from ..doc_content import content_to_text
from ..errors import UnresolvedReferenceError
from ..markup import JAVA_LINK_PATTERN, append_extra_content, escape_javadoc, replace_links
from ..resolver import ResolutionStatus, resolve, resolve_link_path
from ..scanner import TagOccurrence
from .base import ProcessingContext, TagProcessor

TAG = "include"


class IncludeProcessor(TagProcessor):
    """Replaces ``@include [target]`` with the docs of ``target``.

    Links inside the copied docs are rewritten to their fully-qualified
    path so they keep pointing at the same declarations. A target that
    still has ``@include`` tags of its own is copied once those are
    resolved.
    """

    processor_id = "include"
    description = "Copy the docs of another declaration here."
    supported_tags = frozenset({TAG})

    def filter_to_process(self, declaration: Declaration) -> bool:
        return bool(declaration.has_source_doc)

    def filter_to_query(self, declaration: Declaration) -> bool:
        return bool(declaration.has_source_doc) and declaration.linkable

    def order(self, declarations: List[Declaration], context: ProcessingContext) -> List[Declaration]:
        if not self.bool_argument("pre-sort", True):
            return declarations
        graph = build_dependency_graph(context.corpus, TAG, declarations, predicate=self.filter_to_query)
        return dependency_order(graph, declarations)

    def transform_inline(
        self,
        tag_text: str,
        occurrence: TagOccurrence,
        declaration: Declaration,
        context: ProcessingContext,
    ) -> str:
        arguments = split_arguments(tag_text, TAG, 2)
        target_path = decode_callable_target(arguments[0])
        extra_content = arguments[1]
        self.logger.debug("Running include processor for %s, @include %s", declaration.path, target_path)

        resolution = context.query(target_path, declaration, lambda candidate: candidate is not declaration)
        if resolution.declaration is None:
            raise self._unresolved(target_path, declaration, context)

        target = resolution.declaration
        if TAG in target.tags:
            # wait for the target's own includes to settle
            return tag_text

        content = target.content
        if content.startswith("\n"):
            content = content[1:]
        if content.endswith("\n"):
            content = content[:-1]

        if declaration.flavor is DocFlavor.KDOC:
            content = replace_links(content, lambda query: self._expand_link(query, target, declaration, context))
        else:
            if JAVA_LINK_PATTERN.search(content):
                context.warn(
                    "Java {@link statements} are not replaced by their fully qualified path. "
                    "Make sure to use fully qualified paths in {@link statements} when "
                    "@including docs with {@link statements}."
                )
            content = escape_javadoc(content)

        return append_extra_content(content, extra_content)

    def _expand_link(self, query: str, target: Declaration, requester: Declaration, context: ProcessingContext) -> str:
        quoted = query.startswith("`") and query.endswith("`")
        reference = query.strip("`") if quoted else query

        def points_to_same(path: str, found: Declaration) -> bool:
            return resolve(path, requester, context.corpus).declaration is found

        expanded = resolve_link_path(reference, target, context.corpus, points_to_same)
        if expanded is None or expanded == reference:
            return query
        return expanded

    def _unresolved(self, target_path: str, declaration: Declaration, context: ProcessingContext) -> UnresolvedReferenceError:
        unfiltered = context.resolve_unfiltered(target_path, declaration)
        if unfiltered.declaration is declaration:
            message = "Self-reference detected."
        elif unfiltered.status is not ResolutionStatus.UNKNOWN:
            message = (
                f'Reference found, but no documentation found for: "{target_path}".\n'
                f"Including documentation from outside the corpus is not supported.\n"
                f"{unfiltered.attempted_block()}"
            )
        else:
            message = f'Reference not found: "{target_path}".\n{unfiltered.attempted_block()}'
        return UnresolvedReferenceError(
            message,
            target=target_path,
            requester=declaration.path,
            attempted=unfiltered.attempted,
        )

    def circular_reference_message(self, pending: List[Declaration]) -> str:
        sections = []
        for declaration in pending:
            sections.append(f"{declaration.path}:\n{content_to_text(declaration.content, 4)}\n")
        return "Circular references detected in @include statements:\n" + "\n".join(sections)


__all__ = ["IncludeProcessor"]
