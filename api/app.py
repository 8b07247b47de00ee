from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes.exams import router as exams_router
from api.routes.imports import router as imports_router
from api.routes.jobs import router as jobs_router


def create_app() -> FastAPI:
    app = FastAPI(title="Exam Importer API", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(imports_router)
    app.include_router(jobs_router)
    app.include_router(exams_router)

    @app.get("/healthz")
    def health() -> dict:
        return {"status": "ok"}

    return app


app = create_app()
