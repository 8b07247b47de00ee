from __future__ import annotations

import logging
from enum import Enum
from typing import List, Optional, Sequence

from .models import ParsedPart, ParsedQuestion, ParseWarning, ParseWarningKind, QuestionType
from .rules import LineContext, classify_line, looks_like_stem, strip_number
from .type_inference import infer_question_type

logger = logging.getLogger(__name__)


class BuilderState(str, Enum):
    NO_PART = "no_part"
    IN_PART = "in_part"
    IN_DESCRIPTION = "in_description"
    IN_QUESTION_OPEN = "in_question_open"
    EXPECTING_OPTIONS = "expecting_options"
    IN_ANSWER_SECTION = "in_answer_section"


class DocumentBuilder:
    """
    Single forward pass over normalized lines. Holds at most one in-progress
    part and one in-progress question; both are moved into `parts` on flush,
    so nothing already emitted is shared with the accumulators.
    """

    def __init__(self, lines: Sequence[str]):
        self.lines = list(lines)
        self.parts: List[ParsedPart] = []
        self.warnings: List[ParseWarning] = []
        self.state = BuilderState.NO_PART
        self.answer_boundary: Optional[int] = None

        self._part: Optional[ParsedPart] = None
        self._question: Optional[ParsedQuestion] = None
        self._question_source: Optional[int] = None
        self._last_flushed_source: Optional[int] = None
        self._local_index = 0
        self._global_index = 0

    def build(self) -> List[ParsedPart]:
        for index, line in enumerate(self.lines):
            ctx = self._context(index, line)
            rule_name, payload = classify_line(ctx)
            logger.debug("line %d matched %s: %r", index + 1, rule_name, line)
            getattr(self, f"_on_{rule_name}")(ctx, payload)
            if self.state == BuilderState.IN_ANSWER_SECTION:
                break
        self._flush_question()
        self._flush_part()
        return self.parts

    def _context(self, index: int, line: str) -> LineContext:
        part = self._part
        question = self._question
        return LineContext(
            index=index,
            text=line,
            previous=self.lines[index - 1] if index > 0 else None,
            has_part=part is not None,
            part_has_questions=bool(part and (part.questions or question)),
            question_open=question is not None,
            expecting_options=self.state == BuilderState.EXPECTING_OPTIONS,
            option_count=len(question.options or []) if question else 0,
        )

    # region rule handlers
    def _on_part_header(self, ctx: LineContext, key: str) -> None:
        self._flush_question()
        self._flush_part()
        self._part = ParsedPart(title=ctx.text)
        self._local_index = 0
        self._last_flushed_source = None
        self.state = BuilderState.IN_PART

    def _on_answer_header(self, ctx: LineContext, _payload) -> None:
        self._flush_question()
        self.answer_boundary = ctx.index
        self.state = BuilderState.IN_ANSWER_SECTION

    def _on_description(self, ctx: LineContext, text: str) -> None:
        part = self._part
        part.description = f"{part.description} {text}" if part.description else text
        self.state = BuilderState.IN_DESCRIPTION

    def _on_inline_choice(self, ctx: LineContext, payload) -> None:
        stem, options = payload
        self._flush_question()
        self._emit(stem, QuestionType.MULTIPLE_CHOICE, ctx.index, options=options)

    def _on_inline_blank(self, ctx: LineContext, text: str) -> None:
        self._flush_question()
        self._emit(text, self._infer_type(text), ctx.index)

    def _on_numbered_question(self, ctx: LineContext, payload) -> None:
        _number, rest, inline_choice = payload
        self._flush_question()
        if inline_choice:
            stem, options = inline_choice
            self._emit(stem, QuestionType.MULTIPLE_CHOICE, ctx.index, options=options)
            return
        self._open_question(rest, self._infer_type(rest), ctx.index)

    def _on_option(self, ctx: LineContext, options: List[str]) -> None:
        if self._question is None:
            if not looks_like_stem(ctx.previous):
                self._drop(ctx, "option line without a question stem")
                return
            self._open_from_previous_line(ctx.index - 1)
        question = self._question
        if question.type != QuestionType.MULTIPLE_CHOICE:
            self._drop(ctx, f"option line inside a {question.type.value} question")
            return
        question.options.extend(options)
        self.state = BuilderState.EXPECTING_OPTIONS

    def _on_options_terminated(self, ctx: LineContext, _payload) -> None:
        self._flush_question()

    def _on_arrow(self, ctx: LineContext, _payload) -> None:
        self._flush_question()

    def _on_parenthetical_blank(self, ctx: LineContext, content: str) -> None:
        self._emit(content, self._infer_type(content), ctx.index)

    def _on_underscore_fallback(self, ctx: LineContext, text: str) -> None:
        self._open_question(text, self._infer_type(text), ctx.index)

    def _on_pure_underscore(self, ctx: LineContext, _payload) -> None:
        return None

    def _on_unmatched(self, ctx: LineContext, text: str) -> None:
        # Continuation lines of an open question are not merged into its content.
        self._drop(ctx, "line matched no rule")
    # endregion

    def _infer_type(self, content: str) -> QuestionType:
        return infer_question_type(self._part.title, self._part.description, content)

    def _open_question(
        self,
        content: str,
        question_type: QuestionType,
        source_index: int,
        options: Optional[List[str]] = None,
    ) -> None:
        if question_type == QuestionType.MULTIPLE_CHOICE:
            options = list(options or [])
        else:
            options = None
        self._question = ParsedQuestion(content=content, type=question_type, options=options)
        self._question_source = source_index
        if question_type == QuestionType.MULTIPLE_CHOICE:
            self.state = BuilderState.EXPECTING_OPTIONS
        else:
            self.state = BuilderState.IN_QUESTION_OPEN

    def _emit(
        self,
        content: str,
        question_type: QuestionType,
        source_index: int,
        options: Optional[List[str]] = None,
    ) -> None:
        self._open_question(content, question_type, source_index, options=options)
        self._flush_question()

    def _open_from_previous_line(self, source_index: int) -> None:
        part = self._part
        if self._last_flushed_source == source_index and part.questions:
            # The stem already produced a question; take it back instead of duplicating it.
            question = part.questions.pop()
            self._local_index -= 1
            self._global_index -= 1
            question.type = QuestionType.MULTIPLE_CHOICE
            if question.options is None:
                question.options = []
            self._question = question
            self._question_source = source_index
            self._last_flushed_source = None
            return
        content = strip_number(self.lines[source_index])
        self._open_question(content, QuestionType.MULTIPLE_CHOICE, source_index)

    def _flush_question(self) -> None:
        question = self._question
        if question is None:
            return
        self._question = None
        if self._part is not None:
            self.state = BuilderState.IN_PART
        if self._part is None or not question.content.strip():
            logger.debug("discarding empty question opened at line %s", self._question_source)
            return
        self._local_index += 1
        self._global_index += 1
        question.local_index = self._local_index
        question.global_index = self._global_index
        self._part.questions.append(question)
        self._last_flushed_source = self._question_source

    def _flush_part(self) -> None:
        if self._part is None:
            return
        self.parts.append(self._part)
        self._part = None

    def _drop(self, ctx: LineContext, reason: str) -> None:
        self.warnings.append(
            ParseWarning(kind=ParseWarningKind.DROPPED_LINE, message=f"{reason}: {ctx.text}", line_number=ctx.index + 1)
        )
