from __future__ import annotations

from fastapi import APIRouter, HTTPException

from api.dependencies import get_repo

router = APIRouter(prefix="/exams", tags=["exams"])


@router.get("")
def list_exams():
    repo = get_repo()
    return [
        {
            "id": e.id,
            "title": e.title,
            "description": e.description,
            "source_name": e.source_name,
        }
        for e in repo.list_exams()
    ]


@router.get("/{exam_id}")
def get_exam(exam_id: str):
    repo = get_repo()
    exam = repo.get_exam(exam_id)
    if not exam:
        raise HTTPException(status_code=404, detail=f"Exam not found: {exam_id}")
    parts = []
    for part in repo.list_parts_for_exam(exam_id):
        questions = repo.list_questions_for_part(part.id)
        parts.append(
            {
                "id": part.id,
                "title": part.title,
                "description": part.description,
                "order_num": part.order_num,
                "questions": [
                    {
                        "id": q.id,
                        "type": q.type,
                        "content": q.content,
                        "options": q.options,
                        "correct_answer": q.correct_answer,
                        "order_num": q.order_num,
                        "points": q.points,
                    }
                    for q in questions
                ],
            }
        )
    return {
        "id": exam.id,
        "title": exam.title,
        "description": exam.description,
        "engine_version": exam.engine_version,
        "parts": parts,
    }
