"""Tests for doc edits, the JSON manifest adapter and corpus processing."""

import json
from pathlib import Path

import pytest

from docprocessor.adapter import (
    DocEdit,
    JsonManifestAdapter,
    apply_edits,
    compute_doc_edit,
    process_corpus,
    stable_identity,
)
from docprocessor.cache import DocCache
from docprocessor.config import ProcessingConfig
from docprocessor.doc_content import synthesize_raw
from docprocessor.errors import DocResourceError, MalformedDocError


def write_manifest(tmp_path: Path, source: str, entries) -> Path:
    (tmp_path / "Foo.kt").write_text(source, encoding="utf-8")
    manifest = tmp_path / "manifest.json"
    manifest.write_text(json.dumps({"declarations": entries}), encoding="utf-8")
    return manifest


@pytest.fixture
def kotlin_manifest(tmp_path, kotlin_source):
    foo_start = kotlin_source.index("/**")
    bar_start = kotlin_source.index("/** Doc of Bar")
    entries = [
        {
            "path": "com.example.Foo",
            "file": "Foo.kt",
            "package": "com.example",
            "doc_range": [foo_start, kotlin_source.index("*/", foo_start) + 2],
        },
        {
            "path": "com.example.Bar",
            "file": "Foo.kt",
            "package": "com.example",
            "doc_range": [bar_start, kotlin_source.index("*/", bar_start) + 2],
            "source_range": [kotlin_source.index("class Bar"), len(kotlin_source) - 1],
        },
    ]
    return write_manifest(tmp_path, kotlin_source, entries)


class TestComputeDocEdit:
    """Turning processed content into file edits."""

    def test_new_doc_is_inserted(self, make_declaration):
        source = "class A\n    fun f()\n"
        declaration = make_declaration("A.f", "", file=Path("A.kt"), doc_range=(12, 12), indent=4)
        declaration.update_content("Hello")

        edit = compute_doc_edit(declaration, source)
        assert edit == DocEdit(Path("A.kt"), 12, 12, "/** Hello */\n    ")
        assert apply_edits(source, [edit]) == "class A\n    /** Hello */\n    fun f()\n"

    def test_removed_doc_takes_line_with_it(self, make_declaration):
        source = "class A\n    /** Old */\n    fun f()\n"
        declaration = make_declaration("A.f", "Old", file=Path("A.kt"), doc_range=(12, 22), indent=4)
        declaration.update_content("")

        edit = compute_doc_edit(declaration, source)
        assert apply_edits(source, [edit]) == "class A\n    fun f()\n"

    def test_replaced_doc_uses_indent(self, make_declaration):
        declaration = make_declaration("A.f", "Old", file=Path("A.kt"), doc_range=(12, 22), indent=4)
        declaration.update_content("\nLine one\nLine two\n")

        edit = compute_doc_edit(declaration, "")
        assert edit.replacement == synthesize_raw("\nLine one\nLine two\n", 4).text
        assert edit.replacement == "/**\n     * Line one\n     * Line two\n     */"

    def test_nothing_to_write(self, make_declaration):
        declaration = make_declaration("A", "", file=Path("A.kt"), doc_range=(0, 0))
        assert compute_doc_edit(declaration, "class A") is None

    def test_crlf_content_is_normalized(self, make_declaration):
        declaration = make_declaration("A", "x", file=Path("A.kt"), doc_range=(0, 8))
        declaration.update_content("one\r\ntwo")
        assert "\r" not in compute_doc_edit(declaration, "").replacement

    def test_overlapping_edits_are_rejected(self):
        edits = [DocEdit(Path("A.kt"), 0, 10, "a"), DocEdit(Path("A.kt"), 5, 12, "b")]
        with pytest.raises(DocResourceError):
            apply_edits("x" * 20, edits)

    def test_edits_apply_back_to_front(self):
        edits = [DocEdit(Path("A.kt"), 0, 1, "first"), DocEdit(Path("A.kt"), 2, 3, "second")]
        assert apply_edits("a-b-c", edits) == "first-second-c"


class TestJsonManifestAdapter:
    """Reading declarations and writing files."""

    def test_collects_contents(self, kotlin_manifest):
        adapter = JsonManifestAdapter(kotlin_manifest)
        foo, bar = adapter.collect_declarations()
        assert foo.content == "\n@include [Bar]\n"
        assert bar.content == "Doc of Bar"
        assert bar.raw_source == "class Bar"
        assert foo.has_source_doc

    def test_source_roots_filter(self, kotlin_manifest, tmp_path):
        adapter = JsonManifestAdapter(kotlin_manifest)
        assert adapter.collect_declarations([tmp_path / "elsewhere"]) == []
        assert len(adapter.collect_declarations([tmp_path])) == 2

    def test_missing_path_is_malformed(self, tmp_path):
        manifest = write_manifest(tmp_path, "class A\n", [{"file": "Foo.kt"}])
        with pytest.raises(MalformedDocError):
            JsonManifestAdapter(manifest).collect_declarations()

    def test_range_without_comment_is_malformed(self, tmp_path):
        manifest = write_manifest(tmp_path, "class A\n", [{"path": "A", "file": "Foo.kt", "doc_range": [0, 5]}])
        with pytest.raises(MalformedDocError):
            JsonManifestAdapter(manifest).collect_declarations()

    def test_crlf_sources(self, tmp_path):
        source = "/** Doc */\r\nclass A\r\n"
        manifest = write_manifest(tmp_path, "", [{"path": "A", "file": "Foo.kt", "doc_range": [0, 10]}])
        (tmp_path / "Foo.kt").write_bytes(source.encode("utf-8"))
        (declaration,) = JsonManifestAdapter(manifest).collect_declarations()
        assert declaration.content == "Doc"


class TestProcessCorpus:
    """Collect, process and write back."""

    def test_file_is_rewritten(self, kotlin_manifest, tmp_path, kotlin_source):
        report = process_corpus(JsonManifestAdapter(kotlin_manifest))

        assert report.success()
        written = (tmp_path / "Foo.kt").read_text(encoding="utf-8")
        assert written == kotlin_source.replace("@include [Bar]", "Doc of Bar")

    def test_dry_run_writes_nothing(self, kotlin_manifest, tmp_path, kotlin_source):
        report = process_corpus(JsonManifestAdapter(kotlin_manifest), ProcessingConfig(dry_run=True))

        assert [declaration.path for declaration in report.modified()] == ["com.example.Foo"]
        assert (tmp_path / "Foo.kt").read_text(encoding="utf-8") == kotlin_source

    def test_output_directory(self, kotlin_manifest, tmp_path, kotlin_source):
        out = tmp_path / "out"
        process_corpus(JsonManifestAdapter(kotlin_manifest, output_dir=out))

        assert (tmp_path / "Foo.kt").read_text(encoding="utf-8") == kotlin_source
        assert "Doc of Bar\n */\nclass Foo" in (out / "Foo.kt").read_text(encoding="utf-8")

    def test_failed_run_writes_nothing(self, tmp_path):
        source = "/** @include [Missing] */\nclass A\n"
        manifest = write_manifest(tmp_path, source, [{"path": "A", "file": "Foo.kt", "doc_range": [0, 25]}])

        report = process_corpus(JsonManifestAdapter(manifest))
        assert not report.success()
        assert (tmp_path / "Foo.kt").read_text(encoding="utf-8") == source

    def test_cache_is_filled(self, kotlin_manifest):
        cache = DocCache()
        report = process_corpus(JsonManifestAdapter(kotlin_manifest), ProcessingConfig(dry_run=True), cache=cache)
        assert len(cache) == len(report.corpus)

    def test_cache_is_reused_across_runs(self, kotlin_manifest):
        cache = DocCache()
        config = ProcessingConfig(dry_run=True)
        first = process_corpus(JsonManifestAdapter(kotlin_manifest), config, cache=cache)
        second = process_corpus(JsonManifestAdapter(kotlin_manifest), config, cache=cache)

        assert len(cache) == 2
        assert cache.stats["hits"] == 2
        assert [declaration.content for declaration in second.corpus] == [
            declaration.content for declaration in first.corpus
        ]
        assert [declaration.path for declaration in second.modified()] == ["com.example.Foo"]

    def test_changed_include_is_processed_again(self, kotlin_manifest, tmp_path, kotlin_source):
        cache = DocCache()
        config = ProcessingConfig(dry_run=True)
        process_corpus(JsonManifestAdapter(kotlin_manifest), config, cache=cache)

        (tmp_path / "Foo.kt").write_text(kotlin_source.replace("Doc of Bar", "Doc of Baz"), encoding="utf-8")
        report = process_corpus(JsonManifestAdapter(kotlin_manifest), config, cache=cache)

        (foo,) = report.corpus.get("com.example.Foo")
        assert foo.content == "Doc of Baz"
        assert len(cache) == 2


class TestStableIdentity:
    """Declaration identities that survive between runs."""

    def test_same_manifest_same_identities(self, kotlin_manifest):
        first = JsonManifestAdapter(kotlin_manifest).collect_declarations()
        second = JsonManifestAdapter(kotlin_manifest).collect_declarations()
        assert [d.identity for d in first] == [d.identity for d in second]
        assert len({d.identity for d in first}) == 2

    def test_explicit_id_and_duplicates(self, tmp_path):
        entries = [{"path": "A", "id": "a-doc"}, {"path": "B"}, {"path": "B"}]
        manifest = write_manifest(tmp_path, "", entries)
        identities = [d.identity for d in JsonManifestAdapter(manifest).collect_declarations()]

        assert identities[0] == "a-doc"
        assert identities[2] == f"{identities[1]}#2"
        assert stable_identity({"path": "B"}) == identities[1]
