from __future__ import annotations

import logging

from .answers import parse_answer_section, reconcile_answers
from .builder import DocumentBuilder
from .models import AnswerMode, ParseResult
from .normalizer import normalize_lines

logger = logging.getLogger(__name__)


class ExamParseError(ValueError):
    """Raised by callers when a document yields no parts at all."""

    def __init__(self, message: str, preview: str = ""):
        super().__init__(message)
        self.preview = preview


class ParsingEngine:
    """
    Abstract parsing engine. Implementations should be stateless and reusable.
    """

    engine_version = "abstract"

    def parse(self, text: str) -> ParseResult:
        raise NotImplementedError


class TextExamParsingEngine(ParsingEngine):
    """
    Rule-based parser for exam documents that were already converted to text.

    Runs two passes over the normalized lines: the structural pass builds
    parts and questions up to the answer-section header, then the lines after
    that header are read as an answer key and merged into the questions.
    Malformed input never raises; it degrades to fewer (or zero) parts.
    """

    def __init__(self, engine_version: str = "text-rules-v1"):
        self.engine_version = engine_version

    def parse(self, text: str) -> ParseResult:
        lines = normalize_lines(text)
        builder = DocumentBuilder(lines)
        parts = builder.build()
        warnings = list(builder.warnings)

        answer_mode = AnswerMode.NONE
        if builder.answer_boundary is not None:
            answer_key = parse_answer_section(lines[builder.answer_boundary + 1:])
            answer_mode = answer_key.mode
            warnings.extend(reconcile_answers(parts, answer_key))

        result = ParseResult(
            parts=parts,
            engine_version=self.engine_version,
            answer_mode=answer_mode,
            raw_text=None if parts else "\n".join(lines),
            warnings=warnings,
        )
        if result.succeeded:
            logger.info(
                "Parsed %d parts / %d questions from %d lines (answers: %s)",
                len(parts),
                result.question_count,
                len(lines),
                answer_mode.value,
            )
        else:
            logger.warning("No parts found in %d lines of input", len(lines))
        return result
