from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from redis import Redis
from rq import Queue, Worker

from .engine import TextExamParsingEngine
from .repository import SqlAlchemyImportRepository
from .storage import LocalExamStorage, StoragePaths
from .worker import ImportWorker


@dataclass
class WorkerConfig:
    database_url: str
    exam_storage_root: str
    engine_version: str = "text-rules-v1"
    persist_engine_output: bool = True


def run_import_job(job_id: str, config: WorkerConfig) -> None:
    """
    RQ task entrypoint. Creates all required components and executes an import job.
    """
    repo = SqlAlchemyImportRepository(config.database_url)
    storage = LocalExamStorage(StoragePaths(Path(config.exam_storage_root)))
    engine = TextExamParsingEngine(engine_version=config.engine_version)
    worker = ImportWorker(
        repository=repo,
        storage=storage,
        engine=engine,
        persist_engine_output=config.persist_engine_output,
    )
    worker.run_job(job_id)


class RQJobQueue:
    """
    Redis-backed job queue using RQ. The queue pushes jobs to Redis and workers
    can be started by calling `work()` in a dedicated process.
    """

    def __init__(self, redis_url: str = "redis://localhost:6379/0", queue_name: str = "import-jobs"):
        self.redis = Redis.from_url(redis_url)
        self.queue = Queue(queue_name, connection=self.redis)

    def enqueue_import_job(self, job_id: str, config: WorkerConfig):
        """
        Enqueue an import job. RQ job_id is set to the import job id for idempotency.
        """
        return self.queue.enqueue(run_import_job, job_id, config, job_id=job_id)

    def work(self):
        worker = Worker([self.queue], connection=self.redis)
        worker.work(with_scheduler=True)
