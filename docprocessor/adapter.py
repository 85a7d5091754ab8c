"""Boundary between the engine and the source files it rewrites.

An adapter collects declarations from wherever they live and writes the
processed doc comments back. :class:`JsonManifestAdapter` reads a JSON
manifest produced by an external extractor:

.. code-block:: json

    {
      "known_paths": ["kotlin.String"],
      "declarations": [
        {
          "path": "com.example.Foo.bar",
          "file": "src/Foo.kt",
          "doc_range": [120, 164],
          "indent": 4,
          "flavor": "kdoc",
          "package": "com.example",
          "imports": ["com.example.util.*"],
          "supertypes": ["com.example.Base"],
          "source_range": [164, 230]
        }
      ]
    }

``doc_range`` holds character offsets into the file after CRLF
normalization. An empty range marks the spot a new comment would be
inserted for an undocumented declaration.

An optional ``id`` names the declaration across runs. Without it the
identity is derived from ``file``, ``path``, ``doc_range`` and
``source_range``, so the same manifest yields the same identities and a
:class:`~docprocessor.cache.DocCache` can be shared between runs.
"""

from __future__ import annotations

import hashlib
import json
import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set

from .cache import DocCache
from .config import ErrorMode, ProcessingConfig
from .declarations import CorpusIndex, Declaration, DocFlavor, ImportPath
from .dependencies import build_dependency_graph
from .doc_content import extract_content, parse_raw, synthesize_raw
from .engine import CancellationToken, EngineState, ProcessingEngine, ProcessingReport
from .errors import DocResourceError, MalformedDocError
from .observability import log_processing_event

logger = logging.getLogger(__name__)


def normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n")


@dataclass(frozen=True)
class DocEdit:
    """Replace ``text[start:end]`` of ``file`` with ``replacement``."""

    file: Path
    start: int
    end: int
    replacement: str


def compute_doc_edit(declaration: Declaration, source: Optional[str] = None) -> Optional[DocEdit]:
    """Return the edit that puts the current content of ``declaration`` in its file.

    ``source`` is the normalized text of the declaration's file; it is read
    from disk when omitted.
    """

    if declaration.file is None or declaration.doc_range is None:
        return None
    start, end = declaration.doc_range
    has_doc = end > start
    content = normalize_newlines(declaration.content)

    if not content:
        if not has_doc:
            return None
        if source is None:
            source = normalize_newlines(declaration.file.read_text(encoding="utf-8"))
        # take the line break after the comment and the indentation of the next line with it
        stop = end
        while stop < len(source) and source[stop] in " \t":
            stop += 1
        if stop < len(source) and source[stop] == "\n":
            stop += 1
            while stop < len(source) and source[stop] in " \t":
                stop += 1
        return DocEdit(declaration.file, start, stop, "")

    synthesized = synthesize_raw(content, declaration.indent).text.lstrip()
    if not has_doc:
        return DocEdit(declaration.file, start, start, f"{synthesized}\n{' ' * declaration.indent}")
    return DocEdit(declaration.file, start, end, synthesized)


def apply_edits(text: str, edits: Sequence[DocEdit]) -> str:
    """Apply ``edits`` to ``text`` back to front."""

    ordered = sorted(set(edits), key=lambda edit: (edit.start, edit.end), reverse=True)
    previous_start: Optional[int] = None
    for edit in ordered:
        if previous_start is not None and edit.end > previous_start:
            raise DocResourceError(
                f"Overlapping doc edits in {edit.file} at offsets {edit.start}-{edit.end}.",
                path=str(edit.file),
            )
        text = text[: edit.start] + edit.replacement + text[edit.end:]
        previous_start = edit.start
    return text


class DocAdapter(ABC):
    """Source of declarations and sink for their processed docs."""

    @abstractmethod
    def collect_declarations(self, source_roots: Sequence[Path] = ()) -> List[Declaration]:
        """Return every declaration under ``source_roots``."""

    @abstractmethod
    def write_back(self, declarations: Iterable[Declaration]) -> List[Path]:
        """Persist the docs of modified declarations; returns the files written."""

    def known_paths(self) -> List[str]:
        """Paths that exist in the code base but carry no documentation."""

        return []


class JsonManifestAdapter(DocAdapter):
    """Reads declarations from a JSON manifest and rewrites their source files."""

    def __init__(self, manifest: Path, output_dir: Optional[Path] = None) -> None:
        self.manifest = Path(manifest)
        self.root = self.manifest.resolve().parent
        self.output_dir = output_dir
        self._data: Optional[Dict[str, Any]] = None
        self._sources: Dict[Path, str] = {}

    def _load(self) -> Dict[str, Any]:
        if self._data is None:
            try:
                text = self.manifest.read_text(encoding="utf-8")
            except OSError as exc:
                raise DocResourceError(f"Cannot read manifest {self.manifest}: {exc}", path=str(self.manifest)) from exc
            try:
                data = json.loads(text)
            except json.JSONDecodeError as exc:
                raise MalformedDocError(
                    f"Invalid JSON manifest: {exc}",
                    path=str(self.manifest),
                    line=exc.lineno,
                    column=exc.colno,
                ) from exc
            if not isinstance(data, dict) or not isinstance(data.get("declarations", []), list):
                raise MalformedDocError("Manifest must be an object with a 'declarations' list.", path=str(self.manifest))
            self._data = data
        return self._data

    def _source(self, file: Path) -> str:
        if file not in self._sources:
            try:
                self._sources[file] = normalize_newlines(file.read_text(encoding="utf-8"))
            except OSError as exc:
                raise DocResourceError(f"Cannot read source file {file}: {exc}", path=str(file)) from exc
        return self._sources[file]

    def known_paths(self) -> List[str]:
        return [str(path) for path in self._load().get("known_paths", [])]

    def collect_declarations(self, source_roots: Sequence[Path] = ()) -> List[Declaration]:
        roots = [Path(root).resolve() for root in source_roots]
        declarations = []
        seen: Set[str] = set()
        for entry in self._load()["declarations"]:
            declaration = self._declaration(entry)
            declaration.identity = _unique(stable_identity(entry), seen)
            if roots and declaration.file is not None and not any(_is_within(declaration.file, root) for root in roots):
                continue
            declarations.append(declaration)
        logger.info("Collected %d declarations from %s", len(declarations), self.manifest)
        return declarations

    def _declaration(self, entry: Mapping[str, Any]) -> Declaration:
        if "path" not in entry:
            raise MalformedDocError("Manifest declaration is missing 'path'.", path=str(self.manifest))
        file = (self.root / entry["file"]).resolve() if entry.get("file") else None
        doc_range = tuple(entry["doc_range"]) if entry.get("doc_range") is not None else None
        content = entry.get("content", "")
        raw_source = entry.get("source", "")

        if file is not None:
            source = self._source(file)
            if doc_range is not None and doc_range[1] > doc_range[0] and "content" not in entry:
                content = self._read_doc(file, source, doc_range)
            if entry.get("source_range") is not None:
                source_start, source_end = entry["source_range"]
                raw_source = source[source_start:source_end]

        return Declaration(
            path=entry["path"],
            content=content,
            flavor=DocFlavor(entry.get("flavor", DocFlavor.KDOC.value)),
            extension_path=entry.get("extension_path"),
            supertypes=list(entry.get("supertypes", [])),
            imports=[ImportPath.parse(item) for item in entry.get("imports", [])],
            package=entry.get("package", ""),
            file=file,
            doc_range=doc_range,
            indent=int(entry.get("indent", 0)),
            raw_source=raw_source,
            linkable=bool(entry.get("linkable", True)),
        )

    def _read_doc(self, file: Path, source: str, doc_range: tuple) -> str:
        start, end = doc_range
        raw = parse_raw(source[start:end])
        if raw is None:
            line = source.count("\n", 0, start) + 1
            raise MalformedDocError(f"No doc comment at offsets {start}-{end}.", path=str(file), line=line)
        content, _ = extract_content(raw)
        return content

    def write_back(self, declarations: Iterable[Declaration]) -> List[Path]:
        edits: Dict[Path, List[DocEdit]] = defaultdict(list)
        for declaration in declarations:
            if not declaration.modified or declaration.file is None:
                continue
            if declaration.content == declaration.original_content:
                continue
            edit = compute_doc_edit(declaration, self._source(declaration.file))
            if edit is not None:
                edits[declaration.file].append(edit)

        written = []
        for file, file_edits in sorted(edits.items()):
            text = apply_edits(self._source(file), file_edits)
            target = self._target(file)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(text, encoding="utf-8")
            self._sources.pop(file, None)
            written.append(target)
            logger.debug("Wrote %d doc edits to %s", len(file_edits), target)
        return written

    def _target(self, file: Path) -> Path:
        if self.output_dir is None:
            return file
        try:
            relative = file.relative_to(self.root)
        except ValueError:
            relative = Path(file.name)
        return Path(self.output_dir) / relative


def stable_identity(entry: Mapping[str, Any]) -> str:
    """Identity of a manifest entry that stays the same across runs."""

    if entry.get("id"):
        return str(entry["id"])
    key = json.dumps(
        [entry.get("file"), entry.get("path"), entry.get("doc_range"), entry.get("source_range")],
        sort_keys=True,
    )
    return hashlib.sha256(key.encode("utf-8")).hexdigest()[:32]


def _unique(identity: str, seen: Set[str]) -> str:
    candidate = identity
    suffix = 1
    while candidate in seen:
        suffix += 1
        candidate = f"{identity}#{suffix}"
    seen.add(candidate)
    return candidate


def _is_within(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True


def reuse_cached_docs(cache: DocCache, corpus: CorpusIndex) -> Set[str]:
    """Give unchanged declarations their cached output and return their identities.

    A declaration is reused when neither it nor anything it transitively
    includes changed since it was stored, and no declaration that has to be
    processed again includes it.
    """

    dependencies = {declaration.identity: cache.dependencies_of(declaration, corpus) for declaration in corpus}
    needed: Set[str] = set()
    for declaration in corpus:
        if cache.needs_rebuild(declaration, dependencies[declaration.identity]):
            needed.add(declaration.identity)
            needed.update(dependency.identity for dependency in dependencies[declaration.identity])

    reused: Set[str] = set()
    for declaration in corpus:
        output = cache.get(declaration.identity)
        if declaration.identity in needed or output is None:
            continue
        declaration.update_content(output)
        reused.add(declaration.identity)
    if reused:
        logger.info("Reusing cached docs for %d of %d declarations", len(reused), len(corpus))
    return reused


def process_corpus(
    adapter: DocAdapter,
    config: Optional[ProcessingConfig] = None,
    roots: Sequence[Path] = (),
    *,
    cancellation: Optional[CancellationToken] = None,
    cache: Optional[DocCache] = None,
) -> ProcessingReport:
    """Collect declarations, process them and write the results back.

    Nothing is written for dry runs, cancelled runs, or runs that failed
    while errors are raised instead of rendered into the docs.
    """

    config = config or ProcessingConfig()
    corpus = CorpusIndex(adapter.collect_declarations(roots), adapter.known_paths())
    reused: Set[str] = set()
    if cache is not None:
        cache.use_graph(build_dependency_graph(corpus))
        reused = reuse_cached_docs(cache, corpus)

    report = ProcessingEngine.from_config(config, cancellation).run(corpus, skip=reused)

    if cache is not None and report.success():
        for declaration in corpus:
            if declaration.identity not in reused:
                cache.store(declaration, cache.dependencies_of(declaration, corpus))

    skip_reason = None
    if config.dry_run:
        skip_reason = "dry run"
    elif report.state is EngineState.CANCELLED:
        skip_reason = "cancelled"
    elif report.errors and config.error_mode is ErrorMode.RAISE:
        skip_reason = "errors"

    if skip_reason is None:
        written = adapter.write_back(report.modified())
    else:
        written = []
        logger.info("Skipping write-back (%s)", skip_reason)

    log_processing_event(
        "corpus_processed",
        f"Processed {len(corpus)} declarations, wrote {len(written)} files",
        modified=len(report.modified()),
        written=[str(path) for path in written],
        state=report.state.value,
    )
    return report


__all__ = [
    "DocEdit",
    "DocAdapter",
    "JsonManifestAdapter",
    "apply_edits",
    "compute_doc_edit",
    "normalize_newlines",
    "process_corpus",
    "reuse_cached_docs",
    "stable_identity",
]
