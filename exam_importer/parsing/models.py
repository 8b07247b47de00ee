from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional
from datetime import datetime

PART_KEY_RE = re.compile(r"^Part\s*([A-Z])", re.IGNORECASE)


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    FILL_IN_BLANK = "fill_in_blank"
    REWRITE = "rewrite"


class AnswerMode(str, Enum):
    PART_KEYED = "part_keyed"
    GLOBAL = "global"
    NONE = "none"


class ParseWarningKind(str, Enum):
    DROPPED_LINE = "dropped_line"
    ANSWER_COUNT_MISMATCH = "answer_count_mismatch"
    ANSWER_KEY_UNRECOGNIZED = "answer_key_unrecognized"


class ImportJobState(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ImportJobPhase(str, Enum):
    PRECHECK = "precheck"
    PARSE = "parse"
    DB_INGESTION = "db_ingestion"


@dataclass
class ParsedQuestion:
    content: str
    type: QuestionType
    options: Optional[List[str]] = None
    correct_answer: str = ""
    points: int = 1
    local_index: int = 0
    global_index: int = 0


@dataclass
class ParsedPart:
    title: str
    description: str = ""
    questions: List[ParsedQuestion] = field(default_factory=list)

    @property
    def key(self) -> str:
        match = PART_KEY_RE.match(self.title)
        return match.group(1).upper() if match else ""


@dataclass
class ParseWarning:
    kind: ParseWarningKind
    message: str
    line_number: Optional[int] = None


@dataclass
class AnswerKey:
    mode: AnswerMode
    by_part: Dict[str, Dict[int, str]] = field(default_factory=dict)
    sequence: List[str] = field(default_factory=list)


@dataclass
class ParseResult:
    parts: List[ParsedPart]
    engine_version: str
    answer_mode: AnswerMode = AnswerMode.NONE
    raw_text: Optional[str] = None
    warnings: List[ParseWarning] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return bool(self.parts)

    @property
    def question_count(self) -> int:
        return sum(len(part.questions) for part in self.parts)

    def preview(self, limit: int = 500) -> str:
        return (self.raw_text or "")[:limit]


@dataclass
class ExamRecord:
    id: str
    title: str
    description: str
    source_name: str
    engine_version: str
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)


@dataclass
class PartRecord:
    id: str
    exam_id: str
    title: str
    description: str
    order_num: int
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)


@dataclass
class QuestionRecord:
    id: str
    part_id: str
    type: QuestionType
    content: str
    options: Optional[List[str]]
    correct_answer: str
    order_num: int
    points: int = 1
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)


@dataclass
class ImportJobRecord:
    id: str
    exam_id: str
    title: str
    source_name: str
    state: ImportJobState
    phase: ImportJobPhase
    source_path: Optional[str] = None
    error_message: Optional[str] = None
    preview: Optional[str] = None
    part_count: int = 0
    question_count: int = 0
    started_at: Optional[datetime] = None
    updated_at: datetime = field(default_factory=datetime.utcnow)
