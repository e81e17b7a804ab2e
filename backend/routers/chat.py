"""
Document Chat Router - HTTP endpoints

- POST /process-fixed-document  answer a question about the configured document
- POST /clear-session           drop a session's cached document context
- GET  /debug-info              environment diagnostics (404 in production)

Architecture:
- chat.py: request models, endpoints, 500 boundary
- chat_orchestration/: session ids, answer pipeline, chunk scan
- chat_prompts.py: system prompts, refusal sentence, response cleanup

The interaction log is written by a background task after the response
has been sent; it can neither delay nor alter an answer.
"""

import json
import logging
import platform
import time
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from config import APP_VERSION, RuntimeConfig, get_config
from errors import ErrorCode, debug_payload, format_unexpected_error, log_error
from services.interaction_log import InteractionLogger, InteractionRecord, get_interaction_logger

from .chat_orchestration import DocumentChatOrchestrator, get_orchestrator, resolve_session_id

logger = logging.getLogger(__name__)

router = APIRouter()


class QuestionRequest(BaseModel):
    question: str = Field(..., min_length=1, max_length=1000)
    session_id: Optional[str] = Field(None, max_length=100)


class ClearSessionRequest(BaseModel):
    session_id: str = Field(..., min_length=1, max_length=100)


@router.post("/process-fixed-document")
async def process_fixed_document(
    request: QuestionRequest,
    background_tasks: BackgroundTasks,
    orchestrator: DocumentChatOrchestrator = Depends(get_orchestrator),
    interaction_logger: InteractionLogger = Depends(get_interaction_logger),
    config: RuntimeConfig = Depends(get_config),
):
    """Answer one question; failures inside the pipeline come back as answers."""
    session_id = resolve_session_id(request.session_id)
    start = time.perf_counter()

    try:
        outcome = await orchestrator.answer(request.question, session_id)
    except Exception as e:
        # Only faults the pipeline does not model reach this point
        log_error(logger, e, context=f"process-fixed-document {session_id}")
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        text = format_unexpected_error(e, session_id)

        background_tasks.add_task(
            interaction_logger.log,
            InteractionRecord(
                session_id=session_id,
                question=request.question,
                response=text,
                response_time_ms=elapsed_ms,
                status="error",
                metadata={"error_code": ErrorCode.INTERNAL_UNEXPECTED.value, "exception": type(e).__name__},
            ),
        )

        content = {"error": "Error interno", "response": text, "session_id": session_id}
        if not config.is_production:
            content["debug_info"] = debug_payload(e, session_id=session_id, elapsed_ms=elapsed_ms)
        return JSONResponse(status_code=500, content=content)

    background_tasks.add_task(interaction_logger.log, outcome.to_record(request.question))
    return outcome.to_response()


@router.post("/clear-session")
async def clear_session(
    request: ClearSessionRequest,
    orchestrator: DocumentChatOrchestrator = Depends(get_orchestrator),
):
    """Forget a session's context. Unknown sessions clear just as well."""
    await orchestrator.clear_session(request.session_id)
    return {"message": "Sesión limpiada exitosamente", "session_id": request.session_id}


async def _body_session_id(request: Request) -> Optional[str]:
    """session_id from a JSON body, for clients that send one with GET."""
    raw = await request.body()
    if not raw:
        return None
    try:
        payload = json.loads(raw)
    except ValueError:
        logger.debug("Ignoring non-JSON /debug-info body")
        return None
    value = payload.get("session_id") if isinstance(payload, dict) else None
    return value if isinstance(value, str) else None


@router.get("/debug-info")
async def debug_info(
    request: Request,
    session_id: Optional[str] = None,
    orchestrator: DocumentChatOrchestrator = Depends(get_orchestrator),
    interaction_logger: InteractionLogger = Depends(get_interaction_logger),
    config: RuntimeConfig = Depends(get_config),
):
    """Environment diagnostics and, optionally, one session's cached context."""
    if config.is_production:
        raise HTTPException(status_code=404, detail="Not found")

    info = {
        "environment": config.app_env,
        "python_version": platform.python_version(),
        "app_version": APP_VERSION,
        "config": config.to_dict(mask_secrets=True),
        "cache": await orchestrator.store.health(),
        "database": await interaction_logger.health(),
    }
    if not session_id:
        session_id = await _body_session_id(request)
    if session_id and session_id.strip():
        info["session"] = await orchestrator.store.describe(session_id)
    return info
