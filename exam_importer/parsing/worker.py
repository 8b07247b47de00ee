from __future__ import annotations

import json
import logging
from typing import List, Tuple

from .engine import ExamParseError, ParsingEngine
from .models import (
    ExamRecord,
    ImportJobPhase,
    ImportJobRecord,
    ImportJobState,
    ParsedPart,
    ParseResult,
    PartRecord,
    QuestionRecord,
)
from .repository import ImportRepository
from .storage import LocalExamStorage

logger = logging.getLogger(__name__)

NO_QUESTIONS_MESSAGE = "Could not parse any questions from the document"


class ImportWorker:
    """
    Drives an import job through precheck -> parse -> DB ingestion.
    The worker is stateless and relies on the repository for job/exam state
    and on the storage adapter for filesystem operations.
    """

    def __init__(
        self,
        repository: ImportRepository,
        storage: LocalExamStorage,
        engine: ParsingEngine,
        persist_engine_output: bool = True,
    ):
        self.repo = repository
        self.storage = storage
        self.engine = engine
        self.persist_engine_output = persist_engine_output

    def run_job(self, job_id: str) -> None:
        job = self.repo.get_job(job_id)
        if not job:
            raise ValueError(f"Import job {job_id} not found")

        try:
            self.repo.update_job_state_phase(job_id, state=ImportJobState.RUNNING, phase=ImportJobPhase.PRECHECK)
            text = self.storage.read_source_text(job.id, fallback_path=job.source_path)
            if not text.strip():
                raise ValueError(f"Source text for import {job_id} is empty")

            self.repo.update_job_state_phase(job_id, phase=ImportJobPhase.PARSE)
            result = self.engine.parse(text)
            if self.persist_engine_output:
                self.storage.write_parse_output(job.id, json.loads(json.dumps(result, default=self._json_default)))
            if not result.succeeded:
                raise ExamParseError(NO_QUESTIONS_MESSAGE, preview=result.preview())

            self.repo.update_job_state_phase(job_id, phase=ImportJobPhase.DB_INGESTION)
            self._ingest_parse_result(job, result)

            self.repo.update_job_state_phase(
                job_id,
                state=ImportJobState.COMPLETED,
                part_count=len(result.parts),
                question_count=result.question_count,
            )
            logger.info("Import job %s created exam %s", job_id, job.exam_id)
        except Exception as exc:  # noqa: BLE001
            preview = getattr(exc, "preview", None)
            self.repo.update_job_state_phase(
                job_id, state=ImportJobState.FAILED, error_message=str(exc), preview=preview
            )
            logger.error("Import job %s failed: %s", job_id, exc)
            raise

    def _json_default(self, obj):
        if hasattr(obj, "__dict__"):
            return obj.__dict__
        return str(obj)

    def _ingest_parse_result(self, job: ImportJobRecord, result: ParseResult) -> None:
        exam = ExamRecord(
            id=job.exam_id,
            title=job.title,
            description=f"Imported from: {job.source_name}",
            source_name=job.source_name,
            engine_version=result.engine_version,
        )
        self.repo.save_exam(exam)

        part_records, question_records = self._map_parts(exam.id, result.parts)
        self.repo.upsert_parts(part_records)
        self.repo.upsert_questions(question_records)

    def _map_parts(
        self,
        exam_id: str,
        parts: List[ParsedPart],
    ) -> Tuple[List[PartRecord], List[QuestionRecord]]:
        part_records: List[PartRecord] = []
        question_records: List[QuestionRecord] = []
        # Storage order is the parse order; order_num is the 1-based position.
        for part_order, part in enumerate(parts, start=1):
            part_id = f"{exam_id}-part{part_order}"
            part_records.append(
                PartRecord(
                    id=part_id,
                    exam_id=exam_id,
                    title=part.title,
                    description=part.description or "",
                    order_num=part_order,
                )
            )
            for question_order, question in enumerate(part.questions, start=1):
                question_records.append(
                    QuestionRecord(
                        id=f"{part_id}-q{question_order}",
                        part_id=part_id,
                        type=question.type,
                        content=question.content,
                        options=list(question.options) if question.options is not None else None,
                        correct_answer=question.correct_answer or "",
                        order_num=question_order,
                        points=question.points or 1,
                    )
                )
        return part_records, question_records
