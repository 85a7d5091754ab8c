"""
Doc comment processor.

Rewrites the documentation comments of a source corpus by expanding
processing tags such as ``@include``, ``@sample`` or ``@includeArg``. The
package is organised into several modules:

* ``doc_content`` – conversion between raw ``/** ... */`` comments and
  their decoration-free content.
* ``scanner`` and ``arguments`` – locating inline ``{@tag ...}`` and block
  ``@tag`` occurrences and splitting their arguments.
* ``resolver`` – finding the declaration a written reference points at.
* ``engine`` – the fixed-point loop that runs the configured processors.
* ``processors`` – the built-in processors and the entry-point registry.
* ``adapter`` – collecting declarations from a manifest and writing the
  rewritten comments back into source files.
"""

import re
from pathlib import Path
from importlib import metadata as _metadata

from .config import ProcessingConfig, load_processing_config
from .declarations import CorpusIndex, Declaration, DocFlavor, ImportPath
from .engine import CancellationToken, EngineState, ProcessingEngine, ProcessingReport
from .errors import DocProcessorError


def _local_version() -> str | None:
    pyproject = Path(__file__).resolve().parents[1] / "pyproject.toml"
    if not pyproject.exists():
        return None
    try:
        text = pyproject.read_text(encoding="utf-8")
    except OSError:  # pragma: no cover - IO errors should not break imports
        return None
    match = re.search(r"^version\s*=\s*\"([^\"]+)\"", text, flags=re.MULTILINE)
    if match:
        return match.group(1)
    return None


try:  # pragma: no cover - metadata lookup for installed distributions
    __version__ = _metadata.version("doc-processor")
except _metadata.PackageNotFoundError:  # pragma: no cover - source tree
    __version__ = _local_version() or "0.1.0"

__all__ = [
    "__version__",
    "CancellationToken",
    "CorpusIndex",
    "Declaration",
    "DocFlavor",
    "DocProcessorError",
    "EngineState",
    "ImportPath",
    "ProcessingConfig",
    "ProcessingEngine",
    "ProcessingReport",
    "load_processing_config",
]
