"""Tests for reference resolution."""

from docprocessor.declarations import CorpusIndex, DocFlavor
from docprocessor.resolver import ResolutionStatus, candidate_paths, resolve, resolve_link_path


class TestCandidatePaths:
    """Order in which candidate paths are tried."""

    def test_scopes_then_package_then_wildcards(self, make_declaration):
        requester = make_declaration(
            "com.example.Foo.bar",
            package="com.example",
            imports=["org.lib.Helper", "org.util.*"],
        )
        assert candidate_paths("Baz", requester) == [
            "com.example.Foo.bar.Baz",
            "com.example.Foo.Baz",
            "com.example.Baz",
            "com.Baz",
            "org.util.Baz",
            "Baz",
        ]

    def test_explicit_import(self, make_declaration):
        requester = make_declaration("com.example.Foo", package="com.example", imports=["org.lib.Helper"])
        assert "org.lib.Helper.run" in candidate_paths("Helper.run", requester)

    def test_aliased_import(self, make_declaration):
        requester = make_declaration("com.example.Foo", package="com.example", imports=["org.lib.Helper as H"])
        assert "org.lib.Helper" in candidate_paths("H", requester)

    def test_qualified_target_comes_first(self, make_declaration):
        requester = make_declaration("com.example.Foo", package="com.example")
        assert candidate_paths("com.example.Bar", requester)[0] == "com.example.Bar"

    def test_extension_receiver_and_supertypes(self, make_declaration):
        requester = make_declaration(
            "com.example.ext",
            package="com.example",
            extension_path="com.example.Receiver.ext",
            supertypes=["com.example.Base"],
        )
        candidates = candidate_paths("member", requester)
        assert "com.example.Receiver.member" in candidates
        assert "com.example.Base.member" in candidates

    def test_javadoc_file_facade(self, make_declaration):
        requester = make_declaration("com.example.Foo", package="com.example", flavor=DocFlavor.JAVADOC)
        assert "com.example.helper" in candidate_paths("UtilsKt.helper", requester)


class TestResolve:
    """Looking candidates up in the corpus."""

    def test_closest_scope_wins(self, make_declaration):
        nested = make_declaration("com.example.Foo.Baz", "nested")
        top_level = make_declaration("com.example.Baz", "top level")
        requester = make_declaration("com.example.Foo.bar", package="com.example")
        index = CorpusIndex([top_level, nested, requester])

        resolution = resolve("Baz", requester, index)
        assert resolution.found
        assert resolution.declaration is nested

    def test_predicate_filters_matches(self, make_declaration):
        undocumented = make_declaration("com.example.Baz", "")
        requester = make_declaration("com.example.Foo", package="com.example")
        index = CorpusIndex([undocumented, requester])

        resolution = resolve("Baz", requester, index, lambda declaration: bool(declaration.has_source_doc))
        assert resolution.declaration is None
        assert resolution.status is ResolutionStatus.UNDOCUMENTED

    def test_known_path_without_declaration(self, make_declaration):
        requester = make_declaration("com.example.Foo", package="com.example")
        index = CorpusIndex([requester], known_paths=["com.example.Baz"])
        resolution = resolve("Baz", requester, index)
        assert resolution.status is ResolutionStatus.UNDOCUMENTED
        assert resolution.path == "com.example.Baz"

    def test_unknown_target_lists_attempts(self, make_declaration):
        requester = make_declaration("Foo")
        resolution = resolve("Missing", requester, CorpusIndex([requester]))
        assert resolution.status is ResolutionStatus.UNKNOWN
        assert resolution.attempted_block() == "Attempted queries: [\n|  Foo.Missing\n|  Missing\n]"

    def test_link_path_is_fully_qualified(self, make_declaration):
        target = make_declaration("com.example.Target", "docs")
        requester = make_declaration("com.example.Other", package="com.example")
        index = CorpusIndex([target, requester])
        assert resolve_link_path("Target", requester, index) == "com.example.Target"
