from __future__ import annotations

from typing import Tuple

from .models import QuestionType

# (type, keywords, also search the part description). First match wins.
TYPE_RULES: Tuple[Tuple[QuestionType, Tuple[str, ...], bool], ...] = (
    (QuestionType.REWRITE, ("rewrite", "passive", "active"), True),
    (
        QuestionType.FILL_IN_BLANK,
        ("fill", "填空", "combining", "合併", "relative clause", "inserting", "complete", "correct form"),
        True,
    ),
    (QuestionType.MULTIPLE_CHOICE, ("multiple", "choice", "選擇", "單選"), False),
)

DEFAULT_TYPE = QuestionType.MULTIPLE_CHOICE


def infer_question_type(title: str, description: str = "", content: str = "") -> QuestionType:
    """
    Classify a question from the context of its part. `content` is accepted so
    callers can pass the whole context, but only the part title and
    description carry signal today.
    """
    title_text = (title or "").lower()
    description_text = (description or "").lower()
    for question_type, keywords, check_description in TYPE_RULES:
        for keyword in keywords:
            if keyword in title_text or (check_description and keyword in description_text):
                return question_type
    return DEFAULT_TYPE
