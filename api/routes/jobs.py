from __future__ import annotations

from fastapi import APIRouter, HTTPException

from api.dependencies import get_repo

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.get("/{job_id}")
def get_job(job_id: str):
    repo = get_repo()
    job = repo.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail=f"Job not found: {job_id}")
    return {
        "id": job.id,
        "exam_id": job.exam_id,
        "state": job.state,
        "phase": job.phase,
        "part_count": job.part_count,
        "question_count": job.question_count,
        "error_message": job.error_message,
        "preview": job.preview,
    }
