"""
Parsing subsystem exports.
"""

from .answers import normalize_answer, parse_answer_section, reconcile_answers
from .builder import BuilderState, DocumentBuilder
from .engine import ExamParseError, ParsingEngine, TextExamParsingEngine
from .job_queue import RQJobQueue, WorkerConfig, run_import_job
from .models import (
    AnswerKey,
    AnswerMode,
    ExamRecord,
    ImportJobPhase,
    ImportJobRecord,
    ImportJobState,
    ParsedPart,
    ParsedQuestion,
    ParseResult,
    ParseWarning,
    ParseWarningKind,
    PartRecord,
    QuestionRecord,
    QuestionType,
)
from .normalizer import normalize_lines
from .repository import ImportRepository, InMemoryImportRepository, SqlAlchemyImportRepository
from .rules import RULES, LineContext, classify_line
from .storage import LocalExamStorage, StoragePaths
from .type_inference import infer_question_type
from .worker import ImportWorker

__all__ = [
    "AnswerKey",
    "AnswerMode",
    "BuilderState",
    "DocumentBuilder",
    "ExamParseError",
    "ExamRecord",
    "ImportJobPhase",
    "ImportJobRecord",
    "ImportJobState",
    "ImportRepository",
    "ImportWorker",
    "InMemoryImportRepository",
    "LineContext",
    "LocalExamStorage",
    "ParsedPart",
    "ParsedQuestion",
    "ParseResult",
    "ParseWarning",
    "ParseWarningKind",
    "ParsingEngine",
    "PartRecord",
    "QuestionRecord",
    "QuestionType",
    "RQJobQueue",
    "RULES",
    "SqlAlchemyImportRepository",
    "StoragePaths",
    "TextExamParsingEngine",
    "WorkerConfig",
    "classify_line",
    "infer_question_type",
    "normalize_answer",
    "normalize_lines",
    "parse_answer_section",
    "reconcile_answers",
    "run_import_job",
]
