"""
Line classification rules for the structural pass.

Each rule is an independent extractor over a `LineContext`: it returns a
payload when the line belongs to it and `None` otherwise. `RULES` lists them
in priority order and `classify_line` returns the first rule that matches, so
every rule can be exercised on its own and the ordering is the only coupling.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, List, NamedTuple, Optional, Tuple

PART_HEADER_RE = re.compile(r"^Part\s*([A-Z])(?![A-Z])", re.IGNORECASE)
ANSWER_HEADER_RE = re.compile(r"\bAnswer\s+Key\b|\bAnswers?\b|標準答案|答案")
NUMBERED_RE = re.compile(r"^(\d+)[.)]\s+(.+)$")
NUMBERED_PREFIX_RE = re.compile(r"^\d+[.)]")
INLINE_CHOICE_TOKENS = ("(A)", "(B)", "(C)", "(D)")
WORD_CHAR_RE = re.compile(r"[^\W_]")
OPTION_RE = re.compile(r"^\(?([A-D])[).:]\s*(.+)$", re.IGNORECASE)
PAREN_OPTION_TOKEN_RE = re.compile(r"\(([A-D])\)\s*", re.IGNORECASE)
ARROW_RE = re.compile(r"^(?:→|⇒|➔|➜|➝|->)")
BLANK_RUN_RE = re.compile(r"_{3,}")
INLINE_BLANK_RUN_RE = re.compile(r"_{4,}")
LONG_BLANK_RE = re.compile(r"_{5,}")
PURE_BLANK_RE = re.compile(r"^_{5}[_\s]*$")

DESCRIPTION_KEYWORDS = ("choose", "rewrite", "sentence", "insert", "correct", "complete", "example")
MIN_BLANK_LINE_LENGTH = 20


@dataclass(frozen=True)
class LineContext:
    """Snapshot of one line plus the builder state the rules may look at."""

    index: int
    text: str
    previous: Optional[str] = None
    has_part: bool = False
    part_has_questions: bool = False
    question_open: bool = False
    expecting_options: bool = False
    option_count: int = 0


class Rule(NamedTuple):
    name: str
    extract: Callable[[LineContext], Any]


# region pattern helpers
def match_part_header(line: str) -> Optional[str]:
    match = PART_HEADER_RE.match(line)
    return match.group(1).upper() if match else None


def is_numbered(line: str) -> bool:
    return bool(NUMBERED_PREFIX_RE.match(line))


def match_numbered(line: str) -> Optional[Tuple[int, str]]:
    match = NUMBERED_RE.match(line)
    if not match:
        return None
    return int(match.group(1)), match.group(2).strip()


def match_inline_choice(text: str) -> Optional[Tuple[str, List[str]]]:
    """
    Split "stem ____ (A) x (B) y (C) z (D) w" into the stem and four options.
    The stem must carry a 3+ underscore blank before the (A) token.
    """
    blank = BLANK_RUN_RE.search(text)
    if not blank:
        return None
    start = text.find(INLINE_CHOICE_TOKENS[0], blank.end())
    if start == -1:
        return None
    stem = text[:start].strip()
    options: List[str] = []
    cursor = start + len(INLINE_CHOICE_TOKENS[0])
    for token in INLINE_CHOICE_TOKENS[1:]:
        end = text.find(token, cursor + 1)
        if end == -1:
            return None
        options.append(text[cursor:end].strip())
        cursor = end + len(token)
    options.append(text[cursor:].strip())
    if not all(options):
        return None
    return stem, options


def has_inline_blank(text: str) -> bool:
    """True when a 4+ underscore run sits between two word characters."""
    first = WORD_CHAR_RE.search(text)
    if not first:
        return False
    last = first.start()
    for match in WORD_CHAR_RE.finditer(text, first.end()):
        last = match.start()
    return INLINE_BLANK_RUN_RE.search(text, first.end(), last) is not None


def split_parenthetical_blank(text: str) -> Optional[str]:
    """
    Return the text before the first 5+ underscore run that follows a closed
    parenthetical, e.g. "Tom wrote it. (passive) ______" -> "Tom wrote it. (passive)".
    """
    opening = text.find("(")
    if opening == -1:
        return None
    closing = text.find(")", opening + 2)
    if closing == -1:
        return None
    blank = LONG_BLANK_RE.search(text, closing + 1)
    if not blank:
        return None
    return text[: blank.start()].strip()


def parse_option_line(line: str) -> Optional[List[str]]:
    """
    Return the option texts on an option line, in order. The letter tokens are
    dropped; a line like "(A) am (B) is" yields two options.
    """
    match = OPTION_RE.match(line)
    if not match:
        return None
    if line.startswith("(") and len(PAREN_OPTION_TOKEN_RE.findall(line)) > 1:
        pieces = PAREN_OPTION_TOKEN_RE.split(line)
        # split() interleaves captured letters with the texts that follow them
        texts = [piece.strip() for piece in pieces[2::2]]
        return [text for text in texts if text]
    return [match.group(2).strip()]


def looks_like_stem(line: Optional[str]) -> bool:
    if not line:
        return False
    return bool(BLANK_RUN_RE.search(line)) or line.endswith((".", "?"))


def strip_number(line: str) -> str:
    numbered = match_numbered(line)
    return numbered[1] if numbered else line
# endregion


# region rules
def _part_header(ctx: LineContext):
    return match_part_header(ctx.text)


def _answer_header(ctx: LineContext):
    if ctx.has_part and ANSWER_HEADER_RE.search(ctx.text):
        return True
    return None


def _description(ctx: LineContext):
    if not ctx.has_part or ctx.part_has_questions:
        return None
    if is_numbered(ctx.text) or BLANK_RUN_RE.search(ctx.text):
        return None
    lowered = ctx.text.lower()
    if any(keyword in lowered for keyword in DESCRIPTION_KEYWORDS):
        return ctx.text
    return None


def _inline_choice(ctx: LineContext):
    if not ctx.has_part or is_numbered(ctx.text):
        return None
    return match_inline_choice(ctx.text)


def _inline_blank(ctx: LineContext):
    if not ctx.has_part or is_numbered(ctx.text):
        return None
    return ctx.text if has_inline_blank(ctx.text) else None


def _numbered_question(ctx: LineContext):
    if not ctx.has_part:
        return None
    numbered = match_numbered(ctx.text)
    if not numbered:
        return None
    number, rest = numbered
    return number, rest, match_inline_choice(rest)


def _option(ctx: LineContext):
    if not ctx.has_part:
        return None
    return parse_option_line(ctx.text)


def _options_terminated(ctx: LineContext):
    if ctx.expecting_options and ctx.option_count >= 2:
        return True
    return None


def _arrow(ctx: LineContext):
    if ctx.has_part and ARROW_RE.match(ctx.text):
        return True
    return None


def _parenthetical_blank(ctx: LineContext):
    if not ctx.has_part or ctx.question_open or len(ctx.text) <= MIN_BLANK_LINE_LENGTH:
        return None
    return split_parenthetical_blank(ctx.text) or None


def _underscore_fallback(ctx: LineContext):
    if not ctx.has_part or ctx.question_open or len(ctx.text) <= MIN_BLANK_LINE_LENGTH:
        return None
    if PURE_BLANK_RE.match(ctx.text) or not LONG_BLANK_RE.search(ctx.text):
        return None
    return ctx.text


def _pure_underscore(ctx: LineContext):
    return True if PURE_BLANK_RE.match(ctx.text) else None


def _unmatched(ctx: LineContext):
    return ctx.text
# endregion


RULES: Tuple[Rule, ...] = (
    Rule("part_header", _part_header),
    Rule("answer_header", _answer_header),
    Rule("description", _description),
    Rule("inline_choice", _inline_choice),
    Rule("inline_blank", _inline_blank),
    Rule("numbered_question", _numbered_question),
    Rule("option", _option),
    Rule("options_terminated", _options_terminated),
    Rule("arrow", _arrow),
    Rule("parenthetical_blank", _parenthetical_blank),
    Rule("underscore_fallback", _underscore_fallback),
    Rule("pure_underscore", _pure_underscore),
    Rule("unmatched", _unmatched),
)


def classify_line(ctx: LineContext) -> Tuple[str, Any]:
    for rule in RULES:
        payload = rule.extract(ctx)
        if payload is not None:
            return rule.name, payload
    raise AssertionError("the unmatched rule accepts every line")
