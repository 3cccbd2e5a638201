"""HTTP surface of the Perspective Engine.

Endpoints:
    GET  /                  Static UI document
    POST /analyze           Run a decision analysis and wait for its result
    GET  /history           Past analyses of the demo user, newest first
    GET  /instances/{id}    Status of one workflow instance
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from importlib import resources
from typing import Optional

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse

from .constants import GENERIC_ERROR_MESSAGE
from .contracts import (
    AnalyzeRequest,
    AnalyzeResponse,
    CompletedResult,
    DecisionInput,
    InstanceSnapshot,
    PollResult,
)
from .errors import NotFoundError
from .service import Services, build_services

logger = logging.getLogger(__name__)

router = APIRouter()


def _services(request: Request) -> Services:
    return request.app.state.services


def describe_result(result: PollResult) -> str:
    """Caller-facing text for a poll result. Never carries internal detail."""
    if isinstance(result, CompletedResult) and isinstance(result.output, str):
        return result.output
    return GENERIC_ERROR_MESSAGE


@router.get("/", response_class=HTMLResponse)
async def index() -> str:
    return resources.files("perspective").joinpath("static/index.html").read_text(
        encoding="utf-8"
    )


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze(request: Request):
    """Create a workflow instance for the demo user and wait for it."""
    services = _services(request)
    try:
        body = await request.json()
        payload = AnalyzeRequest.model_validate(body)
    except ValueError as e:
        logger.warning(f"Rejected analyze request: {e}")
        return JSONResponse({"analysis": f"Error: {e}"}, status_code=500)

    polling = services.config.polling
    try:
        instance_id = await services.registry.create(
            DecisionInput(prompt=payload.prompt, user_id=services.config.demo_user_id)
        )
        result = await services.poller.wait(
            instance_id, max_attempts=polling.max_attempts, interval=polling.interval
        )
    except Exception:
        logger.exception("Analyze request failed before a result was available")
        return JSONResponse({"analysis": GENERIC_ERROR_MESSAGE}, status_code=500)
    if not isinstance(result, CompletedResult):
        logger.warning(f"Analysis {instance_id} ended without output: {result.kind}")
    return AnalyzeResponse(analysis=describe_result(result))


@router.get("/history")
async def history(request: Request) -> list[dict]:
    services = _services(request)
    entries = await services.decisions.list_decisions(services.config.demo_user_id)
    return [
        entry.model_dump(mode="json", include={"prompt", "analysis", "timestamp"})
        for entry in entries
    ]


@router.get("/instances/{instance_id}", response_model=InstanceSnapshot)
async def instance_status(instance_id: str, request: Request):
    try:
        return await _services(request).registry.status(instance_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Instance not found")


def create_app(services: Optional[Services] = None) -> FastAPI:
    """Build the FastAPI application around ``services``."""
    services = services or build_services()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await services.registry.resume_incomplete()
        logger.info("Perspective Engine ready")
        yield
        logger.info("Shutting down Perspective Engine")
        await services.registry.shutdown()

    app = FastAPI(title="Perspective Engine", version="0.1.0", lifespan=lifespan)
    app.state.services = services
    app.include_router(router)
    return app
