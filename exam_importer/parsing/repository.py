from __future__ import annotations

import json
from copy import deepcopy
from typing import Dict, Iterable, List, Optional

from sqlalchemy import Column, DateTime, Enum, Integer, String, Text, create_engine, select, update
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .models import (
    ExamRecord,
    ImportJobPhase,
    ImportJobRecord,
    ImportJobState,
    PartRecord,
    QuestionRecord,
    QuestionType,
)

Base = declarative_base()


class ExamModel(Base):
    __tablename__ = "exams"
    id = Column(String, primary_key=True)
    title = Column(String)
    description = Column(Text)
    source_name = Column(String)
    engine_version = Column(String)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)


class PartModel(Base):
    __tablename__ = "parts"
    id = Column(String, primary_key=True)
    exam_id = Column(String, index=True)
    title = Column(String)
    description = Column(Text)
    order_num = Column(Integer)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)


class QuestionModel(Base):
    __tablename__ = "questions"
    id = Column(String, primary_key=True)
    part_id = Column(String, index=True)
    type = Column(Enum(QuestionType))
    content = Column(Text)
    options = Column(Text)
    correct_answer = Column(Text)
    order_num = Column(Integer)
    points = Column(Integer)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)


class ImportJobModel(Base):
    __tablename__ = "import_jobs"
    id = Column(String, primary_key=True)
    exam_id = Column(String, index=True)
    title = Column(String)
    source_name = Column(String)
    state = Column(Enum(ImportJobState))
    phase = Column(Enum(ImportJobPhase))
    source_path = Column(String)
    error_message = Column(Text)
    preview = Column(Text)
    part_count = Column(Integer)
    question_count = Column(Integer)
    started_at = Column(DateTime)
    updated_at = Column(DateTime)


class ImportRepository:
    """
    Abstract persistence boundary for exam imports. Implementations can target
    SQLite/Postgres or any other backing store. All methods are synchronous
    to keep the interface minimal for now.
    """

    # Exam operations
    def get_exam(self, exam_id: str) -> Optional[ExamRecord]:
        raise NotImplementedError

    def save_exam(self, exam: ExamRecord) -> None:
        raise NotImplementedError

    def list_exams(self) -> List[ExamRecord]:
        raise NotImplementedError

    # Import job operations
    def get_job(self, job_id: str) -> Optional[ImportJobRecord]:
        raise NotImplementedError

    def save_job(self, job: ImportJobRecord) -> None:
        raise NotImplementedError

    def update_job_state_phase(
        self,
        job_id: str,
        state: Optional[ImportJobState] = None,
        phase: Optional[ImportJobPhase] = None,
        error_message: Optional[str] = None,
        preview: Optional[str] = None,
        part_count: Optional[int] = None,
        question_count: Optional[int] = None,
    ) -> None:
        raise NotImplementedError

    # Content ingestion
    def upsert_parts(self, parts: Iterable[PartRecord]) -> None:
        raise NotImplementedError

    def upsert_questions(self, questions: Iterable[QuestionRecord]) -> None:
        raise NotImplementedError

    def list_parts_for_exam(self, exam_id: str) -> List[PartRecord]:
        raise NotImplementedError

    def list_questions_for_part(self, part_id: str) -> List[QuestionRecord]:
        raise NotImplementedError


def _job_updates(**values) -> Dict[str, object]:
    return {name: value for name, value in values.items() if value is not None}


class InMemoryImportRepository(ImportRepository):
    """
    Simple in-memory store for local runs and tests. It mirrors the DB shape
    and keeps copies of dataclasses to avoid cross-mutation between calls.
    """

    def __init__(self):
        self.exams: Dict[str, ExamRecord] = {}
        self.jobs: Dict[str, ImportJobRecord] = {}
        self.parts: Dict[str, PartRecord] = {}
        self.questions: Dict[str, QuestionRecord] = {}

    def _clone(self, obj):
        return deepcopy(obj)

    def get_exam(self, exam_id: str) -> Optional[ExamRecord]:
        exam = self.exams.get(exam_id)
        return self._clone(exam) if exam else None

    def save_exam(self, exam: ExamRecord) -> None:
        self.exams[exam.id] = self._clone(exam)

    def list_exams(self) -> List[ExamRecord]:
        return sorted((self._clone(e) for e in self.exams.values()), key=lambda e: e.created_at)

    def get_job(self, job_id: str) -> Optional[ImportJobRecord]:
        job = self.jobs.get(job_id)
        return self._clone(job) if job else None

    def save_job(self, job: ImportJobRecord) -> None:
        self.jobs[job.id] = self._clone(job)

    def update_job_state_phase(
        self,
        job_id: str,
        state: Optional[ImportJobState] = None,
        phase: Optional[ImportJobPhase] = None,
        error_message: Optional[str] = None,
        preview: Optional[str] = None,
        part_count: Optional[int] = None,
        question_count: Optional[int] = None,
    ) -> None:
        job = self.jobs.get(job_id)
        if not job:
            return
        values = _job_updates(
            state=state,
            phase=phase,
            error_message=error_message,
            preview=preview,
            part_count=part_count,
            question_count=question_count,
        )
        for name, value in values.items():
            setattr(job, name, value)
        self.jobs[job_id] = self._clone(job)

    def upsert_parts(self, parts: Iterable[PartRecord]) -> None:
        for part in parts:
            self.parts[part.id] = self._clone(part)

    def upsert_questions(self, questions: Iterable[QuestionRecord]) -> None:
        for question in questions:
            self.questions[question.id] = self._clone(question)

    def list_parts_for_exam(self, exam_id: str) -> List[PartRecord]:
        parts = [self._clone(p) for p in self.parts.values() if p.exam_id == exam_id]
        return sorted(parts, key=lambda p: p.order_num)

    def list_questions_for_part(self, part_id: str) -> List[QuestionRecord]:
        questions = [self._clone(q) for q in self.questions.values() if q.part_id == part_id]
        return sorted(questions, key=lambda q: q.order_num)


class SqlAlchemyImportRepository(ImportRepository):
    """
    SQL-backed repository using SQLAlchemy. Works with SQLite/Postgres URLs.
    """

    def __init__(self, database_url: str):
        self.engine = create_engine(database_url, future=True)
        Base.metadata.create_all(self.engine)
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False, future=True)

    def _session(self) -> Session:
        return self.SessionLocal()

    # region Exam operations
    def _to_exam(self, model: ExamModel) -> ExamRecord:
        return ExamRecord(
            id=model.id,
            title=model.title,
            description=model.description or "",
            source_name=model.source_name,
            engine_version=model.engine_version,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def get_exam(self, exam_id: str) -> Optional[ExamRecord]:
        with self._session() as session:
            model = session.get(ExamModel, exam_id)
            if not model:
                return None
            return self._to_exam(model)

    def save_exam(self, exam: ExamRecord) -> None:
        with self._session() as session:
            model = ExamModel(
                id=exam.id,
                title=exam.title,
                description=exam.description,
                source_name=exam.source_name,
                engine_version=exam.engine_version,
                created_at=exam.created_at,
                updated_at=exam.updated_at,
            )
            session.merge(model)
            session.commit()

    def list_exams(self) -> List[ExamRecord]:
        with self._session() as session:
            stmt = select(ExamModel).order_by(ExamModel.created_at)
            return [self._to_exam(m) for m in session.execute(stmt).scalars().all()]

    # endregion

    # region Job operations
    def get_job(self, job_id: str) -> Optional[ImportJobRecord]:
        with self._session() as session:
            model = session.get(ImportJobModel, job_id)
            if not model:
                return None
            return ImportJobRecord(
                id=model.id,
                exam_id=model.exam_id,
                title=model.title,
                source_name=model.source_name,
                state=model.state,
                phase=model.phase,
                source_path=model.source_path,
                error_message=model.error_message,
                preview=model.preview,
                part_count=int(model.part_count or 0),
                question_count=int(model.question_count or 0),
                started_at=model.started_at,
                updated_at=model.updated_at,
            )

    def save_job(self, job: ImportJobRecord) -> None:
        with self._session() as session:
            model = ImportJobModel(
                id=job.id,
                exam_id=job.exam_id,
                title=job.title,
                source_name=job.source_name,
                state=job.state,
                phase=job.phase,
                source_path=job.source_path,
                error_message=job.error_message,
                preview=job.preview,
                part_count=job.part_count,
                question_count=job.question_count,
                started_at=job.started_at,
                updated_at=job.updated_at,
            )
            session.merge(model)
            session.commit()

    def update_job_state_phase(
        self,
        job_id: str,
        state: Optional[ImportJobState] = None,
        phase: Optional[ImportJobPhase] = None,
        error_message: Optional[str] = None,
        preview: Optional[str] = None,
        part_count: Optional[int] = None,
        question_count: Optional[int] = None,
    ) -> None:
        with self._session() as session:
            values = _job_updates(
                state=state,
                phase=phase,
                error_message=error_message,
                preview=preview,
                part_count=part_count,
                question_count=question_count,
            )
            if values:
                stmt = update(ImportJobModel).where(ImportJobModel.id == job_id)
                session.execute(stmt.values(**values))
                session.commit()

    # endregion

    # region content ingestion
    def upsert_parts(self, parts: Iterable[PartRecord]) -> None:
        with self._session() as session:
            for part in parts:
                model = PartModel(
                    id=part.id,
                    exam_id=part.exam_id,
                    title=part.title,
                    description=part.description,
                    order_num=part.order_num,
                    created_at=part.created_at,
                    updated_at=part.updated_at,
                )
                session.merge(model)
            session.commit()

    def upsert_questions(self, questions: Iterable[QuestionRecord]) -> None:
        with self._session() as session:
            for question in questions:
                model = QuestionModel(
                    id=question.id,
                    part_id=question.part_id,
                    type=question.type,
                    content=question.content,
                    options=json.dumps(question.options, ensure_ascii=False) if question.options is not None else None,
                    correct_answer=question.correct_answer,
                    order_num=question.order_num,
                    points=question.points,
                    created_at=question.created_at,
                    updated_at=question.updated_at,
                )
                session.merge(model)
            session.commit()

    def list_parts_for_exam(self, exam_id: str) -> List[PartRecord]:
        with self._session() as session:
            stmt = select(PartModel).where(PartModel.exam_id == exam_id).order_by(PartModel.order_num)
            models = session.execute(stmt).scalars().all()
            return [
                PartRecord(
                    id=m.id,
                    exam_id=m.exam_id,
                    title=m.title,
                    description=m.description or "",
                    order_num=int(m.order_num or 0),
                    created_at=m.created_at,
                    updated_at=m.updated_at,
                )
                for m in models
            ]

    def list_questions_for_part(self, part_id: str) -> List[QuestionRecord]:
        with self._session() as session:
            stmt = select(QuestionModel).where(QuestionModel.part_id == part_id).order_by(QuestionModel.order_num)
            models = session.execute(stmt).scalars().all()
            return [
                QuestionRecord(
                    id=m.id,
                    part_id=m.part_id,
                    type=m.type,
                    content=m.content,
                    options=json.loads(m.options) if m.options else None,
                    correct_answer=m.correct_answer or "",
                    order_num=int(m.order_num or 0),
                    points=int(m.points or 1),
                    created_at=m.created_at,
                    updated_at=m.updated_at,
                )
                for m in models
            ]

    # endregion
