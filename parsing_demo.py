"""
Example: import an exam text file into SQLite, or just print what the parser makes of it.

Usage:
    python3 parsing_demo.py --text /path/to/exam.txt --title "Unit 3 Quiz"
    python3 parsing_demo.py --text /path/to/exam.txt --preview
"""

import argparse
import json
import logging
from datetime import datetime
from pathlib import Path

from exam_importer.parsing import (
    ImportJobPhase,
    ImportJobRecord,
    ImportJobState,
    ImportWorker,
    LocalExamStorage,
    SqlAlchemyImportRepository,
    StoragePaths,
    TextExamParsingEngine,
)


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        force=True,
    )


def print_preview(engine: TextExamParsingEngine, text: str) -> None:
    result = engine.parse(text)
    if not result.succeeded:
        print("Could not parse any questions from the document. Input preview:")
        print(result.preview())
        return
    print(json.dumps(result, default=lambda obj: obj.__dict__, ensure_ascii=False, indent=2))


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--text", required=True, type=Path, help="Path to the extracted exam text")
    parser.add_argument("--title", default=None, help="Exam title (defaults to the file name)")
    parser.add_argument("--exam-id", default="exam-demo", help="Exam id (for DB/paths)")
    parser.add_argument("--db", default=Path("./data/exam_importer.db"), type=Path, help="SQLite DB path")
    parser.add_argument("--storage-root", default=Path("./data"), type=Path, help="Storage root for imports")
    parser.add_argument("--preview", action="store_true", help="Print the parse result without importing")
    parser.add_argument("--verbose", action="store_true", help="Log every line classification")
    args = parser.parse_args()

    setup_logging(args.verbose)
    if not args.text.exists():
        raise FileNotFoundError(f"Text file not found: {args.text}")
    text = args.text.read_text(encoding="utf-8")

    engine = TextExamParsingEngine()
    if args.preview:
        print_preview(engine, text)
        return

    args.db.parent.mkdir(parents=True, exist_ok=True)
    repo = SqlAlchemyImportRepository(f"sqlite+pysqlite:///{args.db}")
    storage = LocalExamStorage(StoragePaths(args.storage_root))
    worker = ImportWorker(repository=repo, storage=storage, engine=engine, persist_engine_output=True)

    job_id = f"job-{args.exam_id}"
    source_path = storage.save_source_text(job_id, text)
    job = ImportJobRecord(
        id=job_id,
        exam_id=args.exam_id,
        title=args.title or args.text.stem,
        source_name=args.text.name,
        state=ImportJobState.QUEUED,
        phase=ImportJobPhase.PRECHECK,
        source_path=str(source_path),
        started_at=datetime.utcnow(),
    )
    repo.save_job(job)

    print(f"Starting import job {job_id} for {args.text}")
    worker.run_job(job_id)
    final_job = repo.get_job(job_id)
    print(f"Job finished with state={final_job.state.value}: {final_job.part_count} parts, {final_job.question_count} questions")


if __name__ == "__main__":
    main()
