"""Tests for the error model."""

from docprocessor.errors import (
    CircularReferenceError,
    DocProcessorError,
    ErrorLocation,
    TagProcessingError,
    UnresolvedReferenceError,
)


class TestErrorLocation:
    def test_describe(self):
        assert ErrorLocation("Foo.kt", 3, 7).describe() == "Foo.kt:3:7"
        assert ErrorLocation("Foo.kt", 3).describe() == "Foo.kt:3"
        assert ErrorLocation().describe() == "unknown location"


class TestFormat:
    def test_message_only(self):
        assert DocProcessorError("Boom.").format() == "Boom."

    def test_subclass_code_and_location(self):
        error = UnresolvedReferenceError("Cannot resolve [X].", target="X", path="Foo.kt", line=2)
        assert error.format() == "Cannot resolve [X]. (Foo.kt:2; DOC_UNRESOLVED)"
        assert error.target == "X"

    def test_pending_declarations_are_kept(self):
        error = CircularReferenceError("Stuck.", processor="include", pending=["A", "B"])
        assert error.pending == ["A", "B"]
        assert error.code == "DOC_CIRCULAR"


class TestTagProcessingError:
    """Failures wrapped with the doc they happened in."""

    def make_error(self):
        cause = UnresolvedReferenceError("Cannot resolve [Missing].", target="Missing")
        return TagProcessingError(
            processor="include",
            declaration_path="com.example.A",
            location="A.kt:1",
            tag="@include [Missing]",
            current_doc="Intro\n@include [Missing]",
            cause=cause,
        )

    def test_message_marks_the_tag(self):
        error = self.make_error()
        assert "Doc processor include failed processing doc:" in error.message
        assert "Exception: Cannot resolve [Missing]." in error.message
        assert "Intro\n>>>@include [Missing]<<<" in error.message
        assert isinstance(error.__cause__, UnresolvedReferenceError)

    def test_render_inline(self):
        rendered = self.make_error().render_inline()
        assert rendered.startswith("## ⚠️ Error from include")
        assert "`A.kt:1`" in rendered
        assert "❗@include [Missing]❗" in rendered
