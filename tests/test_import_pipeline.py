import json
from datetime import datetime

import pytest

from exam_importer.parsing import (
    ExamParseError,
    ExamRecord,
    ImportJobPhase,
    ImportJobRecord,
    ImportJobState,
    ImportWorker,
    InMemoryImportRepository,
    LocalExamStorage,
    PartRecord,
    QuestionRecord,
    QuestionType,
    SqlAlchemyImportRepository,
    StoragePaths,
    TextExamParsingEngine,
    WorkerConfig,
    run_import_job,
)
from exam_importer.parsing.worker import NO_QUESTIONS_MESSAGE

EXAM_TEXT = """Part A. 易混淆單字
Choose the correct answer for each sentence.
1. The new policy was very ____.
(A) effect
(B) effective
(C) efficient
2. I ____ tired. (A) am (B) is (C) are (D) be

Part B. 被動語氣 Rewrite in passive voice
1. Tom wrote the letter.
→ ______________________

Answer Key:
Part A: 1. B  2. A
Part B: 1. The letter was written by Tom.
"""


def make_job(job_id="job-1", exam_id="exam-1", source_path=None):
    return ImportJobRecord(
        id=job_id,
        exam_id=exam_id,
        title="Unit 3 Quiz",
        source_name="quiz.txt",
        state=ImportJobState.QUEUED,
        phase=ImportJobPhase.PRECHECK,
        source_path=source_path,
        started_at=datetime.utcnow(),
    )


def make_worker(tmp_path, repo):
    storage = LocalExamStorage(StoragePaths(tmp_path / "data"))
    worker = ImportWorker(
        repository=repo,
        storage=storage,
        engine=TextExamParsingEngine(),
        persist_engine_output=True,
    )
    return worker, storage


def test_sqlalchemy_repository_roundtrip(tmp_path):
    db_path = tmp_path / "test.db"
    repo = SqlAlchemyImportRepository(f"sqlite+pysqlite:///{db_path}")

    exam = ExamRecord(
        id="exam-1",
        title="Quiz",
        description="Imported from: quiz.txt",
        source_name="quiz.txt",
        engine_version="text-rules-v1",
    )
    repo.save_exam(exam)
    fetched = repo.get_exam(exam.id)
    assert fetched and fetched.title == "Quiz"
    assert [e.id for e in repo.list_exams()] == ["exam-1"]

    job = make_job()
    repo.save_job(job)
    repo.update_job_state_phase(job.id, state=ImportJobState.RUNNING, phase=ImportJobPhase.PARSE, part_count=2)
    updated_job = repo.get_job(job.id)
    assert updated_job and updated_job.state == ImportJobState.RUNNING
    assert updated_job.phase == ImportJobPhase.PARSE
    assert updated_job.part_count == 2
    assert updated_job.error_message is None

    repo.upsert_parts(
        [
            PartRecord(id="exam-1-part2", exam_id=exam.id, title="Part B", description="", order_num=2),
            PartRecord(id="exam-1-part1", exam_id=exam.id, title="Part A", description="Choose.", order_num=1),
        ]
    )
    repo.upsert_questions(
        [
            QuestionRecord(
                id="exam-1-part1-q2",
                part_id="exam-1-part1",
                type=QuestionType.FILL_IN_BLANK,
                content="She ____ home.",
                options=None,
                correct_answer="went",
                order_num=2,
            ),
            QuestionRecord(
                id="exam-1-part1-q1",
                part_id="exam-1-part1",
                type=QuestionType.MULTIPLE_CHOICE,
                content="I ____ tired.",
                options=["am", "is"],
                correct_answer="A",
                order_num=1,
            ),
        ]
    )
    parts = repo.list_parts_for_exam(exam.id)
    assert [p.title for p in parts] == ["Part A", "Part B"]
    questions = repo.list_questions_for_part("exam-1-part1")
    assert [q.order_num for q in questions] == [1, 2]
    assert questions[0].options == ["am", "is"]
    assert questions[0].type == QuestionType.MULTIPLE_CHOICE
    assert questions[1].options is None
    assert questions[1].points == 1


def test_worker_imports_exam(tmp_path):
    repo = InMemoryImportRepository()
    worker, storage = make_worker(tmp_path, repo)
    job = make_job()
    storage.save_source_text(job.id, EXAM_TEXT)
    repo.save_job(job)

    worker.run_job(job.id)

    updated_job = repo.get_job(job.id)
    assert updated_job.state == ImportJobState.COMPLETED
    assert updated_job.phase == ImportJobPhase.DB_INGESTION
    assert (updated_job.part_count, updated_job.question_count) == (2, 3)

    exam = repo.get_exam("exam-1")
    assert exam.title == "Unit 3 Quiz"
    assert exam.description == "Imported from: quiz.txt"

    parts = repo.list_parts_for_exam("exam-1")
    assert [(p.order_num, p.title) for p in parts] == [
        (1, "Part A. 易混淆單字"),
        (2, "Part B. 被動語氣 Rewrite in passive voice"),
    ]
    assert parts[0].description == "Choose the correct answer for each sentence."

    part_a = repo.list_questions_for_part(parts[0].id)
    assert [q.order_num for q in part_a] == [1, 2]
    assert part_a[0].options == ["effect", "effective", "efficient"]
    assert [q.correct_answer for q in part_a] == ["B", "A"]

    part_b = repo.list_questions_for_part(parts[1].id)
    assert part_b[0].type == QuestionType.REWRITE
    assert part_b[0].options is None
    assert part_b[0].correct_answer == "The letter was written by Tom."

    output = json.loads(storage.paths.parse_output_path(job.id).read_text(encoding="utf-8"))
    assert output["answer_mode"] == "part_keyed"
    assert len(output["parts"]) == 2


def test_worker_reads_source_from_job_path(tmp_path):
    repo = InMemoryImportRepository()
    worker, _ = make_worker(tmp_path, repo)
    source = tmp_path / "exam.txt"
    source.write_text(EXAM_TEXT, encoding="utf-8")
    repo.save_job(make_job(source_path=str(source)))

    worker.run_job("job-1")

    assert repo.get_job("job-1").state == ImportJobState.COMPLETED


def test_worker_marks_job_failed_when_nothing_parses(tmp_path):
    repo = InMemoryImportRepository()
    worker, storage = make_worker(tmp_path, repo)
    job = make_job()
    storage.save_source_text(job.id, "Just some notes\nwith no sections at all")
    repo.save_job(job)

    with pytest.raises(ExamParseError) as excinfo:
        worker.run_job(job.id)

    assert excinfo.value.preview.startswith("Just some notes")
    failed = repo.get_job(job.id)
    assert failed.state == ImportJobState.FAILED
    assert failed.error_message == NO_QUESTIONS_MESSAGE
    assert failed.preview == "Just some notes\nwith no sections at all"
    assert repo.get_exam("exam-1") is None


def test_worker_rejects_empty_source(tmp_path):
    repo = InMemoryImportRepository()
    worker, storage = make_worker(tmp_path, repo)
    job = make_job()
    storage.save_source_text(job.id, "  \n ")
    repo.save_job(job)

    with pytest.raises(ValueError):
        worker.run_job(job.id)
    assert repo.get_job(job.id).state == ImportJobState.FAILED


def test_worker_unknown_job(tmp_path):
    worker, _ = make_worker(tmp_path, InMemoryImportRepository())
    with pytest.raises(ValueError):
        worker.run_job("missing")


def test_run_import_job_builds_its_own_components(tmp_path):
    config = WorkerConfig(
        database_url=f"sqlite+pysqlite:///{tmp_path / 'queue.db'}",
        exam_storage_root=str(tmp_path / "data"),
        engine_version="text-rules-test",
    )
    repo = SqlAlchemyImportRepository(config.database_url)
    LocalExamStorage(StoragePaths(tmp_path / "data")).save_source_text("job-1", EXAM_TEXT)
    repo.save_job(make_job())

    run_import_job("job-1", config)

    job = repo.get_job("job-1")
    assert job.state == ImportJobState.COMPLETED
    assert (job.part_count, job.question_count) == (2, 3)
    assert repo.get_exam("exam-1").engine_version == "text-rules-test"
    assert (tmp_path / "data" / "imports" / "job-1" / "parse_output.json").is_file()
