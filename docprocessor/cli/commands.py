"""
Command implementations for the docprocessor CLI.

``process`` runs the configured processors over the declarations listed in
a manifest and writes the rewritten comments back. ``render`` prints the
content of every doc comment of a file, which is the quickest way to check
how a comment round-trips.
"""

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Tuple

from ..adapter import JsonManifestAdapter, normalize_newlines, process_corpus
from ..config import ProcessingConfig, load_processing_config
from ..doc_content import DOC_CLOSER, DOC_OPENER, extract_content, parse_raw
from ..processors import default_registry
from .errors import CLIFileNotFoundError, CLIValidationError, handle_cli_exception

logger = logging.getLogger(__name__)


def _resolve_config(args: argparse.Namespace, manifest: Path) -> ProcessingConfig:
    explicit = Path(args.config).resolve() if getattr(args, "config", None) else None
    config = load_processing_config(manifest.resolve().parent, explicit)

    overrides = {}
    if args.dry_run:
        overrides["dry_run"] = True
    if args.fail_fast:
        overrides["fail_fast"] = True
    if args.processors:
        for processor_id in args.processors:
            default_registry.get(processor_id)
        overrides["processors"] = list(args.processors)
    if args.limit is not None:
        if args.limit < 1:
            raise CLIValidationError(
                f"Invalid pass limit: {args.limit}",
                hint="Use a number of passes of at least 1.",
            )
        overrides["process_limit"] = args.limit
    if args.out:
        overrides["output_dir"] = Path(args.out).resolve()
    return replace(config, **overrides)


def cmd_process(args: argparse.Namespace) -> None:
    """
    Handle the 'process' subcommand.

    Exits with status 1 when the run reports errors or was cancelled.
    """
    try:
        manifest = Path(args.manifest)
        if not manifest.exists():
            raise CLIFileNotFoundError(
                f"Manifest not found: {manifest}",
                hint="Pass the JSON manifest written by your extractor.",
            )
        config = _resolve_config(args, manifest)
        adapter = JsonManifestAdapter(manifest, output_dir=config.output_dir)
        report = process_corpus(adapter, config)
    except Exception as exc:
        handle_cli_exception(exc, verbose=getattr(args, "verbose", False))
        return

    for warning in report.warnings:
        print(f"warning: {warning}")
    modified = report.modified()
    verb = "Would update" if config.dry_run else "Updated"
    print(f"{verb} {len(modified)} of {len(report.corpus)} doc comments.")
    for declaration in modified:
        print(f"  {declaration.describe()}")

    if not report.success():
        for error in report.errors:
            print(error.format(), file=sys.stderr)
        raise SystemExit(1)


def find_doc_comments(text: str) -> List[Tuple[int, str]]:
    """Return ``(line, raw)`` for every doc comment in ``text``."""

    comments = []
    position = 0
    while True:
        start = text.find(DOC_OPENER, position)
        if start == -1:
            break
        end = text.find(DOC_CLOSER, start + len(DOC_OPENER))
        if end == -1:
            break
        end += len(DOC_CLOSER)
        comments.append((text.count("\n", 0, start) + 1, text[start:end]))
        position = end
    return comments


def cmd_render(args: argparse.Namespace) -> None:
    """Handle the 'render' subcommand."""
    try:
        path = Path(args.file)
        if not path.is_file():
            raise CLIFileNotFoundError(f"File not found: {path}")
        text = normalize_newlines(path.read_text(encoding="utf-8"))
    except Exception as exc:
        handle_cli_exception(exc, verbose=getattr(args, "verbose", False))
        return

    for line, raw_text in find_doc_comments(text):
        raw = parse_raw(raw_text)
        if raw is None:
            logger.warning("Skipping malformed doc comment at %s:%d", path, line)
            continue
        content, _ = extract_content(raw)
        print(f"--- {path}:{line}")
        print(content)
