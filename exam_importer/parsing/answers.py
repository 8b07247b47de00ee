from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Sequence

from .models import AnswerKey, AnswerMode, ParsedPart, ParsedQuestion, ParseWarning, ParseWarningKind

logger = logging.getLogger(__name__)

ANSWER_PART_RE = re.compile(r"^Part\s*([A-Z])(?![A-Z])\s*[:：.]?\s*(.*)$", re.IGNORECASE)
# "1. B", "2) the book was read", "3、C" ... text runs until the next numbered item.
NUMBERED_ANSWER_RE = re.compile(r"(?<!\w)(\d+)\s*[.)、:：]\s*(.+?)(?=[\s,;，；]+\d+\s*[.)、:：]|$)")
LEADING_LETTER_RE = re.compile(r"^([A-D])(?=\s|\(|（|$)", re.IGNORECASE)
# "1. B" / "2) (C)" in a global key: the number is positional noise.
GLOBAL_NUMBER_RE = re.compile(r"^\d+\s*[.)、:：]\s*(?=\S)(?!\d)")
WRAPPED_LETTER_RE = re.compile(r"^[(（]([A-D])[)）]", re.IGNORECASE)
TRAILING_NOTE_RE = re.compile(r"^(?P<answer>.*?)\s*[(（][^()（）]*[)）]\s*$")
TRAILING_PUNCTUATION = " .,;:!?。，；：、)）"
CHOICE_MAX_LENGTH = 2


def normalize_answer(text: str) -> str:
    """Short answers are choice letters and get uppercased; longer ones stay verbatim."""
    stripped = text.strip()
    core = stripped.rstrip(TRAILING_PUNCTUATION)
    if core and len(core) <= CHOICE_MAX_LENGTH:
        return core.upper()
    return stripped


def parse_answer_section(lines: Sequence[str]) -> AnswerKey:
    lines = [line.strip() for line in lines if line and line.strip()]
    if not lines:
        return AnswerKey(mode=AnswerMode.NONE)
    if any(ANSWER_PART_RE.match(line) for line in lines):
        return _parse_part_keyed(lines)
    return AnswerKey(mode=AnswerMode.GLOBAL, sequence=[_global_answer(line) for line in lines])


def _parse_part_keyed(lines: Sequence[str]) -> AnswerKey:
    by_part: Dict[str, Dict[int, str]] = {}
    current: Optional[str] = None
    for line in lines:
        text = line
        header = ANSWER_PART_RE.match(line)
        if header:
            current = header.group(1).upper()
            by_part.setdefault(current, {})
            text = header.group(2)
        if current is None:
            continue
        for number, answer in NUMBERED_ANSWER_RE.findall(text):
            # First occurrence wins when a key lists the same number twice.
            by_part[current].setdefault(int(number), normalize_answer(answer))
    return AnswerKey(mode=AnswerMode.PART_KEYED, by_part=by_part)


def _global_answer(line: str) -> str:
    line = GLOBAL_NUMBER_RE.sub("", line, count=1)
    letter = WRAPPED_LETTER_RE.match(line) or LEADING_LETTER_RE.match(line)
    if letter:
        return letter.group(1).upper()
    noted = TRAILING_NOTE_RE.match(line)
    if noted and noted.group("answer").strip():
        answer = noted.group("answer").strip()
        return answer.upper() if len(answer) == 1 and answer.isalpha() else answer
    return line.strip()


def reconcile_answers(parts: Sequence[ParsedPart], answer_key: AnswerKey) -> List[ParseWarning]:
    """
    Write answers from the key into the questions' `correct_answer`. Never
    raises; problems come back as warnings.
    """
    warnings: List[ParseWarning] = []
    if answer_key.mode == AnswerMode.GLOBAL:
        questions = [question for part in parts for question in part.questions]
        answers = answer_key.sequence
        if len(answers) != len(questions):
            message = f"answer key lists {len(answers)} answers for {len(questions)} questions"
            logger.warning("Answer count mismatch: %s", message)
            warnings.append(ParseWarning(kind=ParseWarningKind.ANSWER_COUNT_MISMATCH, message=message))
        for question, answer in zip(questions, answers):
            _assign(question, answer)
        return warnings

    if answer_key.mode == AnswerMode.PART_KEYED and any(answer_key.by_part.values()):
        for part in parts:
            answers = answer_key.by_part.get(part.key)
            if not answers:
                continue
            for question in part.questions:
                answer = answers.get(question.local_index)
                if answer is not None:
                    _assign(question, answer)
        return warnings

    logger.info("Answer section present but no answers could be read")
    warnings.append(
        ParseWarning(kind=ParseWarningKind.ANSWER_KEY_UNRECOGNIZED, message="no answers found in answer section")
    )
    return warnings


def _assign(question: ParsedQuestion, answer: str) -> None:
    if not question.correct_answer:
        question.correct_answer = answer
