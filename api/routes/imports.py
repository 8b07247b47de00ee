from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, File, Form, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool

from exam_importer.parsing import ImportJobPhase, ImportJobRecord, ImportJobState, ParseResult
from exam_importer.parsing.worker import NO_QUESTIONS_MESSAGE

from api.dependencies import (
    build_exam_id,
    build_worker,
    get_engine,
    get_job_queue,
    get_repo,
    get_storage,
    get_worker_config,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/imports", tags=["imports"])

ACCEPTED_MEDIA_TYPES = ("application/octet-stream",)


async def _read_text(file: UploadFile) -> bytes:
    media_type = (file.content_type or "").split(";")[0].strip().lower()
    if not media_type.startswith("text/") and media_type not in ACCEPTED_MEDIA_TYPES:
        raise HTTPException(status_code=400, detail="Only plain-text uploads are supported")
    payload = await file.read()
    if not payload:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    return payload


def _decode(payload: bytes) -> str:
    try:
        return payload.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="Uploaded file is not valid UTF-8 text")


def serialize_result(result: ParseResult) -> dict:
    return {
        "engine_version": result.engine_version,
        "answer_mode": result.answer_mode,
        "parts": [
            {
                "title": part.title,
                "key": part.key,
                "description": part.description,
                "questions": [
                    {
                        "content": q.content,
                        "type": q.type,
                        "options": q.options,
                        "correct_answer": q.correct_answer,
                        "points": q.points,
                        "local_index": q.local_index,
                        "global_index": q.global_index,
                    }
                    for q in part.questions
                ],
            }
            for part in result.parts
        ],
        "warnings": [
            {"kind": w.kind, "message": w.message, "line_number": w.line_number}
            for w in result.warnings
        ],
    }


@router.post("")
async def create_import(
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    title: str = Form(...),
):
    if not title.strip():
        raise HTTPException(status_code=400, detail="Exam title is required")
    payload = await _read_text(file)
    text = _decode(payload)

    repo = get_repo()
    exam_id = build_exam_id(title, payload)
    if repo.get_exam(exam_id):
        raise HTTPException(status_code=409, detail=f"Exam already exists: {exam_id}")

    job_id = f"job-{exam_id}"
    source_path = get_storage().save_source_text(job_id, text)
    job = ImportJobRecord(
        id=job_id,
        exam_id=exam_id,
        title=title.strip(),
        source_name=file.filename or "upload.txt",
        state=ImportJobState.QUEUED,
        phase=ImportJobPhase.PRECHECK,
        source_path=str(source_path),
        started_at=datetime.utcnow(),
    )
    repo.save_job(job)

    queue = get_job_queue()
    if queue is not None:
        queue.enqueue_import_job(job_id, get_worker_config())
    else:
        background_tasks.add_task(_run_job, job_id)
    return {"exam_id": exam_id, "job_id": job_id}


@router.post("/preview")
async def preview_import(file: UploadFile = File(...)):
    text = _decode(await _read_text(file))
    result = await run_in_threadpool(get_engine().parse, text)
    if not result.succeeded:
        raise HTTPException(
            status_code=400,
            detail={"error": NO_QUESTIONS_MESSAGE, "raw_text": result.preview()},
        )
    return {"raw_text": text, "parsed": serialize_result(result)}


def _run_job(job_id: str) -> None:
    try:
        build_worker().run_job(job_id)
    except Exception:  # noqa: BLE001
        # The worker has already stored the failure on the job record.
        logger.exception("Background import %s failed", job_id)
