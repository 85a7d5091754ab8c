"""Shared fixtures for the doc processor tests."""

from pathlib import Path
from typing import List, Optional

import pytest

from docprocessor.config import ProcessingConfig
from docprocessor.declarations import CorpusIndex, Declaration, DocFlavor, ImportPath
from docprocessor.engine import ProcessingEngine, ProcessingReport


# Doc comments as they appear in source files
MULTI_LINE_DOC = '''/**
 *       Hello World!
 *
 * @see [X]
 */'''

KOTLIN_SOURCE = '''package com.example

/**
 * @include [Bar]
 */
class Foo

/** Doc of Bar */
class Bar
'''

SAMPLE_FUNCTION_SOURCE = '''fun greet() {
    // SampleStart
    println("Hello")
    // SampleEnd
}'''


def pytest_configure(config):
    """Register markers for pytest."""
    config.addinivalue_line("markers", "scenario: end-to-end behaviour of the processor")


@pytest.fixture
def multi_line_doc():
    return MULTI_LINE_DOC


@pytest.fixture
def kotlin_source():
    return KOTLIN_SOURCE


@pytest.fixture
def sample_function_source():
    return SAMPLE_FUNCTION_SOURCE


@pytest.fixture
def make_declaration():
    """Factory for declarations with sensible defaults."""

    def _make(
        path: str,
        content: str = "",
        *,
        package: str = "",
        imports: Optional[List[str]] = None,
        flavor: DocFlavor = DocFlavor.KDOC,
        **kwargs,
    ) -> Declaration:
        return Declaration(
            path=path,
            content=content,
            package=package,
            imports=[ImportPath.parse(item) for item in imports or []],
            flavor=flavor,
            **kwargs,
        )

    return _make


@pytest.fixture
def run_processors():
    """Run the given processor ids over declarations and return the report."""

    def _run(declarations, processors, known_paths=(), **config_options) -> ProcessingReport:
        config = ProcessingConfig(processors=list(processors), **config_options)
        corpus = CorpusIndex(declarations, known_paths)
        return ProcessingEngine.from_config(config).run(corpus)

    return _run


@pytest.fixture
def write_file(tmp_path):
    """Create a file below ``tmp_path`` and return its path."""

    def _write(name: str, content: str) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write
