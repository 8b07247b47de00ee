from __future__ import annotations

import hashlib
import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from exam_importer.parsing import (
    ImportRepository,
    ImportWorker,
    LocalExamStorage,
    RQJobQueue,
    SqlAlchemyImportRepository,
    StoragePaths,
    TextExamParsingEngine,
    WorkerConfig,
)

DEFAULT_DATABASE_URL = "sqlite+pysqlite:///./data/exam_importer.db"


@lru_cache(maxsize=1)
def get_repo() -> ImportRepository:
    db_url = os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)
    return SqlAlchemyImportRepository(db_url)


@lru_cache(maxsize=1)
def get_storage() -> LocalExamStorage:
    root = Path(os.getenv("EXAM_STORAGE_ROOT", "./data"))
    return LocalExamStorage(StoragePaths(root))


@lru_cache(maxsize=1)
def get_engine() -> TextExamParsingEngine:
    return TextExamParsingEngine(engine_version=os.getenv("ENGINE_VERSION", "text-rules-v1"))


def get_worker_config() -> WorkerConfig:
    return WorkerConfig(
        database_url=os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
        exam_storage_root=os.getenv("EXAM_STORAGE_ROOT", "./data"),
        engine_version=os.getenv("ENGINE_VERSION", "text-rules-v1"),
    )


@lru_cache(maxsize=1)
def get_job_queue() -> Optional[RQJobQueue]:
    """
    Imports go through RQ when REDIS_URL is set; otherwise they run as
    FastAPI background tasks in the API process.
    """
    redis_url = os.getenv("REDIS_URL")
    if not redis_url:
        return None
    return RQJobQueue(redis_url, queue_name=os.getenv("IMPORT_QUEUE_NAME", "import-jobs"))


def build_worker() -> ImportWorker:
    return ImportWorker(
        repository=get_repo(),
        storage=get_storage(),
        engine=get_engine(),
        persist_engine_output=True,
    )


def build_exam_id(title: str, payload: bytes) -> str:
    normalized = title.strip().lower()
    slug = "".join(ch if ch.isalnum() else "-" for ch in normalized).strip("-") or "exam"
    digest = hashlib.md5(normalized.encode("utf-8") + payload).hexdigest()[:8]
    return f"{slug}-{digest}"
