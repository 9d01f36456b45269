"""REST API adapter."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI, HTTPException

from scenariotrace.domain.models import AnalysisRequest
from scenariotrace.errors import InconsistentInputError
from scenariotrace.io.report import summary_payload, trend_snapshot
from scenariotrace.server.wire import ServiceBundle


def create_app(services: ServiceBundle) -> FastAPI:
    app = FastAPI(title="ScenarioTrace Server (REST)")

    @app.get("/healthz")
    def healthz() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/analyze")
    def analyze(request: AnalysisRequest) -> Dict[str, Any]:
        try:
            summary = services.analyze(request)
        except InconsistentInputError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        gate = services.evaluate_gate(summary)
        return {
            "summary": summary_payload(summary),
            "trend": trend_snapshot(summary),
            "gate": gate.model_dump(),
        }

    return app
