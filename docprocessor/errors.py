"""Unified error model for the doc processor."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence


@dataclass
class ErrorLocation:
    path: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None

    def describe(self) -> str:
        if self.path and self.line is not None and self.column is not None:
            return f"{self.path}:{self.line}:{self.column}"
        if self.path and self.line is not None:
            return f"{self.path}:{self.line}"
        if self.path:
            return self.path
        return "unknown location"


class DocProcessorError(Exception):
    """Base class for all errors surfaced while processing doc comments."""

    code: Optional[str] = None
    hint: Optional[str] = None

    def __init__(
        self,
        message: str,
        *,
        path: Optional[str] = None,
        line: Optional[int] = None,
        column: Optional[int] = None,
        code: Optional[str] = None,
        hint: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.location = ErrorLocation(path=path, line=line, column=column)
        self.path = path
        self.line = line
        self.column = column
        if code is not None:
            self.code = code
        if hint is not None:
            self.hint = hint

    def format(self) -> str:
        components = [self.message]
        meta_parts = []
        location_desc = self.location.describe()
        if location_desc != "unknown location":
            meta_parts.append(location_desc)
        if self.code:
            meta_parts.append(self.code)
        if meta_parts:
            components[-1] = f"{components[-1]} ({'; '.join(meta_parts)})"
        if self.hint:
            components.append(f"Hint: {self.hint}")
        return " ".join(part for part in components if part)


class MalformedDocError(DocProcessorError):
    """Raised when a doc comment or tag cannot be parsed."""

    code = "DOC_MALFORMED"


class UnresolvedReferenceError(DocProcessorError):
    """Raised when an include, sample or file target cannot be resolved."""

    code = "DOC_UNRESOLVED"

    def __init__(
        self,
        message: str,
        *,
        target: str,
        requester: Optional[str] = None,
        attempted: Sequence[str] = (),
        **kwargs,
    ) -> None:
        super().__init__(message, **kwargs)
        self.target = target
        self.requester = requester
        self.attempted: List[str] = list(attempted)


class CircularReferenceError(DocProcessorError):
    """Raised when a processor reaches its pass ceiling with tags left."""

    code = "DOC_CIRCULAR"

    def __init__(
        self,
        message: str,
        *,
        processor: str,
        pending: Sequence[str] = (),
        **kwargs,
    ) -> None:
        super().__init__(message, **kwargs)
        self.processor = processor
        self.pending: List[str] = list(pending)


class DocResourceError(DocProcessorError):
    """Raised when a file needed by a processor is missing or unreadable."""

    code = "DOC_RESOURCE"


class ProcessingCancelled(DocProcessorError):
    """Raised when a run is cancelled between passes."""

    code = "DOC_CANCELLED"


class ConfigError(DocProcessorError):
    """Raised for invalid processor configuration."""

    code = "DOC_CONFIG"


class TagProcessingError(DocProcessorError):
    """Wraps a failure raised while one tag of one doc was being processed.

    The message carries the processor, the requesting declaration, the tag
    text and the doc as it looked when the failure happened, with the
    failing tag highlighted.
    """

    code = "DOC_TAG_FAILED"

    def __init__(
        self,
        *,
        processor: str,
        declaration_path: str,
        location: str,
        tag: str,
        current_doc: str,
        cause: BaseException,
    ) -> None:
        self.processor = processor
        self.declaration_path = declaration_path
        self.tag = tag
        self.current_doc = current_doc
        self.cause = cause
        reason = getattr(cause, "message", None) or str(cause)
        highlighted = _highlight(current_doc, tag)
        message = (
            f"Doc processor {processor} failed processing doc:\n"
            f"({location})\n"
            f"\n"
            f"Exception: {reason}\n"
            f"Tag: {tag.strip()}\n"
            f"Current state of the doc with the failing tag marked:\n"
            f"--------------------------------------------------\n"
            f"{highlighted}\n"
            f"--------------------------------------------------"
        )
        super().__init__(message, path=location)
        self.__cause__ = cause

    def render_inline(self) -> str:
        """Render the failure as a doc content block for editor display."""

        reason = getattr(self.cause, "message", None) or str(self.cause)
        body = _highlight(self.current_doc, self.tag, "❗", "❗")
        return "\n".join(
            [
                f"## ⚠️ Error from {self.processor}",
                "",
                f"`{self.location.describe()}`",
                "",
                "```",
                reason,
                "```",
                "",
                "### Doc with the failing tag marked",
                "```",
                body,
                "```",
            ]
        )


def _highlight(doc: str, tag: str, opening: str = ">>>", closing: str = "<<<") -> str:
    if not tag or tag not in doc:
        return doc
    return doc.replace(tag, f"{opening}{tag}{closing}", 1)


__all__ = [
    "ErrorLocation",
    "DocProcessorError",
    "MalformedDocError",
    "UnresolvedReferenceError",
    "CircularReferenceError",
    "DocResourceError",
    "ProcessingCancelled",
    "ConfigError",
    "TagProcessingError",
]
