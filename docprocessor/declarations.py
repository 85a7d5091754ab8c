"""Declarations and the path index they are grouped in."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Set, Tuple

from .errors import ErrorLocation
from .scanner import find_all_tag_names


class DocFlavor(str, Enum):
    """Surface syntax of the doc comments of a declaration."""

    KDOC = "kdoc"
    JAVADOC = "javadoc"

    @property
    def source_language(self) -> str:
        return "kotlin" if self is DocFlavor.KDOC else "java"


@dataclass(frozen=True)
class ImportPath:
    """An import of the file a declaration lives in."""

    name: str
    wildcard: bool = False
    alias: Optional[str] = None

    @property
    def imported_name(self) -> str:
        if self.alias:
            return self.alias
        return self.name.rsplit(".", 1)[-1]

    @property
    def package(self) -> str:
        if self.wildcard:
            return self.name[:-2] if self.name.endswith(".*") else self.name
        return self.name.rsplit(".", 1)[0] if "." in self.name else ""

    @classmethod
    def parse(cls, text: str) -> "ImportPath":
        """Parse ``a.b.C``, ``a.b.*`` or ``a.b.C as D``."""

        name, _, alias = text.strip().partition(" as ")
        name = name.strip()
        return cls(name=name, wildcard=name.endswith("*"), alias=alias.strip() or None)


@dataclass(eq=False)
class Declaration:
    """One documented entity and the current state of its doc content.

    The location fields belong to whoever collected the declaration; the
    engine only touches ``content``, ``modified`` and ``tags``.
    """

    path: str
    content: str = ""
    flavor: DocFlavor = DocFlavor.KDOC
    extension_path: Optional[str] = None
    supertypes: List[str] = field(default_factory=list)
    imports: List[ImportPath] = field(default_factory=list)
    package: str = ""
    file: Optional[Path] = None
    doc_range: Optional[Tuple[int, int]] = None
    indent: int = 0
    raw_source: str = ""
    linkable: bool = True
    has_source_doc: Optional[bool] = None
    identity: str = field(default_factory=lambda: uuid.uuid4().hex)
    modified: bool = False
    tags: Set[str] = field(default_factory=set)
    original_content: str = field(init=False, default="")

    def __post_init__(self) -> None:
        if self.has_source_doc is None:
            spans_doc = self.doc_range is None or self.doc_range[1] - self.doc_range[0] > 1
            self.has_source_doc = bool(self.content) and spans_doc
        self.original_content = self.content
        self.refresh_tags()

    @property
    def paths(self) -> List[str]:
        return [path for path in (self.path, self.extension_path) if path]

    @property
    def name(self) -> str:
        return self.path.rsplit(".", 1)[-1]

    def refresh_tags(self) -> None:
        self.tags = find_all_tag_names(self.content)

    def update_content(self, content: str) -> bool:
        """Replace the content; returns whether it changed."""

        if content == self.content:
            return False
        self.content = content
        self.modified = True
        self.refresh_tags()
        return True

    def location(self) -> ErrorLocation:
        if self.file is None or self.doc_range is None:
            return ErrorLocation(path=str(self.file) if self.file else self.path)
        line, column = self._line_and_column()
        return ErrorLocation(path=str(self.file), line=line, column=column)

    def _line_and_column(self) -> Tuple[Optional[int], Optional[int]]:
        try:
            text = self.file.read_text(encoding="utf-8")
        except OSError:
            return None, None
        offset = min(self.doc_range[0], len(text))
        before = text[:offset]
        line = before.count("\n") + 1
        column = offset - (before.rfind("\n") + 1)
        return line, column

    def describe(self) -> str:
        location = self.location().describe()
        if location == self.path:
            return self.path
        return f"{self.path} ({location})"


DeclarationFilter = Callable[[Declaration], bool]


class CorpusIndex:
    """Fully-qualified path to the declarations at that path.

    A path may be known without any declarations, which records that the
    path exists but carries no documentation.
    """

    def __init__(self, declarations: Iterable[Declaration] = (), known_paths: Iterable[str] = ()) -> None:
        self._declarations: List[Declaration] = []
        self._by_path: Dict[str, List[Declaration]] = {}
        self._by_identity: Dict[str, Declaration] = {}
        for path in known_paths:
            self._by_path.setdefault(path, [])
        for declaration in declarations:
            self.add(declaration)

    def add(self, declaration: Declaration) -> None:
        self._declarations.append(declaration)
        self._by_identity[declaration.identity] = declaration
        for path in declaration.paths:
            self._by_path.setdefault(path, []).append(declaration)

    def observe(self, path: str) -> None:
        self._by_path.setdefault(path, [])

    @property
    def declarations(self) -> List[Declaration]:
        return list(self._declarations)

    def get(self, path: str, predicate: Optional[DeclarationFilter] = None) -> List[Declaration]:
        found = self._by_path.get(path, [])
        if predicate is None:
            return list(found)
        return [declaration for declaration in found if predicate(declaration)]

    def by_identity(self, identity: str) -> Optional[Declaration]:
        return self._by_identity.get(identity)

    def paths(self) -> List[str]:
        return list(self._by_path)

    def modified(self) -> List[Declaration]:
        return [declaration for declaration in self._declarations if declaration.modified]

    def __contains__(self, path: object) -> bool:
        return path in self._by_path

    def __iter__(self) -> Iterator[Declaration]:
        return iter(self._declarations)

    def __len__(self) -> int:
        return len(self._declarations)


__all__ = [
    "DocFlavor",
    "ImportPath",
    "Declaration",
    "DeclarationFilter",
    "CorpusIndex",
]
