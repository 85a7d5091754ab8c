"""Fixed-point processing engine.

The engine runs an ordered list of processors over a corpus. Tag
processors are repeated pass after pass until a pass changes nothing or the
pass ceiling is reached; corpus processors are applied once.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Set, Union

from .config import ErrorMode, ProcessingConfig
from .declarations import CorpusIndex, Declaration
from .errors import (
    CircularReferenceError,
    DocProcessorError,
    ProcessingCancelled,
    TagProcessingError,
)
from .observability import log_processing_event
from .processors import create_processors
from .processors.base import CorpusProcessor, DocProcessor, ProcessingContext, TagProcessor
from .scanner import (
    TagOccurrence,
    find_block_tag_name,
    find_inline_tags,
    find_unclosed_inline_tags,
    split_blocks_with_ranges,
)

logger = logging.getLogger(__name__)


class _RestartCeilingReached(Exception):
    """Inline substitutions in one declaration did not settle within the pass ceiling."""


class EngineState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    LIMIT_EXCEEDED = "limit_exceeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


class CancellationToken:
    """Cooperative cancellation signal checked between passes."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class ProcessingReport:
    """Result of one processing run."""

    corpus: CorpusIndex
    errors: List[DocProcessorError] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    passes: Dict[str, int] = field(default_factory=dict)
    state: EngineState = EngineState.IDLE

    def success(self) -> bool:
        """Check if the run completed without errors."""
        return not self.errors and self.state is EngineState.IDLE

    @property
    def cancelled(self) -> bool:
        return self.state is EngineState.CANCELLED

    def modified(self) -> List[Declaration]:
        return self.corpus.modified()

    def raise_for_errors(self) -> None:
        if self.errors:
            raise self.errors[0]


class ProcessingEngine:
    """Runs processors over a corpus until every one of them settles."""

    def __init__(
        self,
        processors: Sequence[DocProcessor],
        config: Optional[ProcessingConfig] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> None:
        self.processors = list(processors)
        self.config = config or ProcessingConfig()
        self.cancellation = cancellation
        self.state = EngineState.IDLE
        self._skipped: Set[str] = set()

    @classmethod
    def from_config(
        cls,
        config: ProcessingConfig,
        cancellation: Optional[CancellationToken] = None,
    ) -> "ProcessingEngine":
        return cls(create_processors(config), config, cancellation)

    def run(
        self,
        declarations: Union[CorpusIndex, Iterable[Declaration]],
        *,
        skip: Iterable[str] = (),
    ) -> ProcessingReport:
        """Process the corpus.

        Declarations whose identity is in ``skip`` stay resolvable but are
        never rewritten.
        """
        self._skipped = set(skip)
        corpus = declarations if isinstance(declarations, CorpusIndex) else CorpusIndex(declarations)
        report = ProcessingReport(corpus=corpus)
        self.state = EngineState.RUNNING
        outcome = EngineState.IDLE
        log_processing_event(
            "run_started",
            f"Processing {len(corpus)} declarations",
            processors=[processor.processor_id for processor in self.processors],
        )
        for processor in self.processors:
            try:
                if isinstance(processor, TagProcessor):
                    self._run_tag_processor(processor, corpus, report)
                elif isinstance(processor, CorpusProcessor):
                    self._run_corpus_processor(processor, corpus, report)
                else:
                    raise TypeError(f"Unsupported processor type: {type(processor).__name__}")
            except ProcessingCancelled:
                logger.info("Processing cancelled before %s finished", processor.processor_id)
                outcome = EngineState.CANCELLED
                break
            except CircularReferenceError as exc:
                self._record_failure(report, exc)
                outcome = EngineState.LIMIT_EXCEEDED
                if self.config.fail_fast:
                    break
            except DocProcessorError as exc:
                self._record_failure(report, exc)
                if outcome is EngineState.IDLE:
                    outcome = EngineState.FAILED
                if self.config.fail_fast:
                    break
        if outcome is EngineState.IDLE and report.errors:
            outcome = EngineState.FAILED
        self.state = outcome
        report.state = outcome
        log_processing_event(
            "run_finished",
            f"Processing finished: {outcome.value}",
            modified=len(corpus.modified()),
            errors=len(report.errors),
        )
        return report

    def _record_failure(self, report: ProcessingReport, error: DocProcessorError) -> None:
        report.errors.append(error)
        logger.error(error.message)

    def _check_cancelled(self) -> None:
        if self.cancellation is not None and self.cancellation.cancelled:
            raise ProcessingCancelled("Processing was cancelled.")

    def _context(self, report: ProcessingReport, corpus: CorpusIndex, processor: DocProcessor) -> ProcessingContext:
        query_filter = processor.filter_to_query if isinstance(processor, TagProcessor) else None
        return ProcessingContext(
            corpus=corpus,
            process_limit=self.config.process_limit,
            query_filter=query_filter,
            warnings=report.warnings,
            logger=processor.logger,
        )

    def _run_corpus_processor(self, processor: CorpusProcessor, corpus: CorpusIndex, report: ProcessingReport) -> None:
        self._check_cancelled()
        context = self._context(report, corpus, processor)
        for declaration in corpus:
            if declaration.identity not in self._skipped and processor.filter_to_process(declaration):
                processor.apply(declaration, context)
        report.passes[processor.processor_id] = 1
        logger.info("Processor %s applied to %d declarations", processor.processor_id, len(corpus))

    def _run_tag_processor(self, processor: TagProcessor, corpus: CorpusIndex, report: ProcessingReport) -> None:
        context = self._context(report, corpus, processor)
        processor.begin_run(context)
        targets = [
            declaration
            for declaration in corpus
            if declaration.identity not in self._skipped and processor.filter_to_process(declaration)
        ]
        targets = processor.order(targets, context)
        processor.prepare(targets, context)
        self._warn_unclosed(targets, processor, context)

        limit = self.config.process_limit
        passes = 0
        modified_in_pass = False
        try:
            while True:
                pending = _pending(targets, processor)
                if not pending:
                    break
                if passes >= limit:
                    logger.debug("Processor %s reached the pass ceiling of %d", processor.processor_id, limit)
                    processor.on_limit_reached(pending, context)
                    break
                if passes > 0 and not modified_in_pass:
                    processor.on_stalled(pending, context)
                    break
                self._check_cancelled()
                modified_in_pass = False
                try:
                    for declaration in pending:
                        if self._process_declaration(processor, declaration, context, report):
                            modified_in_pass = True
                except _RestartCeilingReached as exc:
                    passes += 1
                    logger.debug("Inline tags of %s did not settle within %d substitutions", exc, limit)
                    processor.on_limit_reached(_pending(targets, processor), context)
                    break
                passes += 1
                logger.debug("Processor %s finished pass %d", processor.processor_id, passes)
        finally:
            report.passes[processor.processor_id] = passes
        processor.end_run(context)
        logger.info("Processor %s settled after %d passes", processor.processor_id, passes)

    def _warn_unclosed(self, targets: List[Declaration], processor: TagProcessor, context: ProcessingContext) -> None:
        supported = processor.supported_tags
        for declaration in targets:
            content = declaration.content
            for offset in find_unclosed_inline_tags(content):
                snippet = content[offset:offset + 40].split("\n", 1)[0]
                name = snippet[2:].split(" ", 1)[0]
                if name in supported:
                    context.warn(
                        f"Inline tag '{snippet}' in {declaration.describe()} has no closing brace "
                        f"and is treated as text."
                    )
                    continue
                # the open brace swallows every block tag line after it
                hidden = [
                    tag
                    for tag in (find_block_tag_name(line) for line in content[offset:].split("\n")[1:])
                    if tag in supported
                ]
                if hidden:
                    context.warn(
                        f"Inline tag '{snippet}' in {declaration.describe()} has no closing brace "
                        f"and hides the @{hidden[0]} block tag after it."
                    )

    def _process_declaration(
        self,
        processor: TagProcessor,
        declaration: Declaration,
        context: ProcessingContext,
        report: ProcessingReport,
    ) -> bool:
        try:
            return self._substitute_tags(processor, declaration, context)
        except TagProcessingError as exc:
            if self.config.error_mode is ErrorMode.INLINE and not self.config.fail_fast:
                report.errors.append(exc)
                logger.error(exc.message)
                declaration.update_content(exc.render_inline())
                return True
            raise

    def _substitute_tags(self, processor: TagProcessor, declaration: Declaration, context: ProcessingContext) -> bool:
        supported = processor.supported_tags
        modified = False

        # inline tags innermost first, rescanning after every substitution
        restarts = 0
        while True:
            content = declaration.content
            substituted = False
            for occurrence in find_inline_tags(content):
                if occurrence.name not in supported:
                    continue
                tag_text = occurrence.text(content)
                replacement = self._transform(processor, declaration, occurrence, tag_text, context)
                if replacement != tag_text:
                    declaration.update_content(content[:occurrence.start] + replacement + content[occurrence.end:])
                    substituted = modified = True
                    break
            if not substituted:
                break
            restarts += 1
            if restarts > context.process_limit:
                raise _RestartCeilingReached(declaration.describe())

        blocks = split_blocks_with_ranges(declaration.content)
        if not any(block.tag in supported for block in blocks):
            return modified
        texts = [block.text for block in blocks]
        replaced = [False] * len(texts)
        for position, block in enumerate(blocks):
            if block.tag not in supported:
                continue
            occurrence = TagOccurrence(
                name=block.tag,
                start=block.start,
                end=block.start + len(block.text),
                content_start=block.start,
                content_end=block.start + len(block.text),
                inline=False,
            )
            replacement = self._transform(processor, declaration, occurrence, block.text, context)
            if replacement != block.text:
                texts[position] = replacement
                replaced[position] = True
                declaration.update_content("\n".join(texts))
        if any(replaced):
            last = len(texts) - 1
            kept = [
                text
                for position, text in enumerate(texts)
                if text or position in (0, last) or not replaced[position]
            ]
            declaration.update_content("\n".join(kept))
            modified = True
        return modified

    def _transform(
        self,
        processor: TagProcessor,
        declaration: Declaration,
        occurrence: TagOccurrence,
        tag_text: str,
        context: ProcessingContext,
    ) -> str:
        try:
            if occurrence.inline:
                return processor.transform_inline(tag_text, occurrence, declaration, context)
            return processor.transform_block(tag_text, occurrence, declaration, context)
        except (ProcessingCancelled, CircularReferenceError, TagProcessingError):
            raise
        except Exception as exc:
            raise TagProcessingError(
                processor=processor.processor_id,
                declaration_path=declaration.path,
                location=declaration.describe(),
                tag=tag_text,
                current_doc=declaration.content,
                cause=exc,
            ) from exc


def _pending(targets: List[Declaration], processor: TagProcessor) -> List[Declaration]:
    return [declaration for declaration in targets if declaration.tags & processor.supported_tags]


__all__ = [
    "EngineState",
    "CancellationToken",
    "ProcessingReport",
    "ProcessingEngine",
]
