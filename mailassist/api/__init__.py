"""FastAPI application exposing the mailassist generation pipeline."""

from __future__ import annotations

import threading
from typing import List, Optional

from fastapi import FastAPI, HTTPException, status
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel

from .. import __version__
from ..assistant import GENERATION_FAILED_MESSAGE, Assistant
from ..models import FALLBACK_MODELS

app = FastAPI(
    title="mailassist API",
    description="Generate email text from a selection using OpenAI chat completions.",
    version=__version__,
)

_assistant_lock = threading.Lock()
_assistant: Optional[Assistant] = None


class HealthResponse(BaseModel):
    status: str = "ok"
    model: str
    configured: bool


class ModelsResponse(BaseModel):
    models: List[str]
    source: str


class GeneratePayload(BaseModel):
    text: str
    use_marker: bool = False


class GenerateResponse(BaseModel):
    text: str
    prompt: str


def _get_assistant() -> Assistant:
    global _assistant
    if _assistant is not None:
        return _assistant
    with _assistant_lock:
        if _assistant is None:
            _assistant = Assistant.from_disk()
    return _assistant


@app.on_event("startup")
async def load_configuration() -> None:
    await run_in_threadpool(_get_assistant)


@app.get("/health", response_model=HealthResponse)
async def healthcheck() -> HealthResponse:
    assistant = await run_in_threadpool(_get_assistant)
    return HealthResponse(model=assistant.config.openai_model, configured=assistant.is_configured)


@app.get("/models", response_model=ModelsResponse)
async def list_models() -> ModelsResponse:
    assistant = await run_in_threadpool(_get_assistant)
    fetched = await run_in_threadpool(assistant.list_models)
    if fetched:
        return ModelsResponse(models=fetched, source="live")
    return ModelsResponse(models=[model_id for model_id, _ in FALLBACK_MODELS], source="fallback")


@app.post("/generate", response_model=GenerateResponse)
async def generate(payload: GeneratePayload) -> GenerateResponse:
    assistant = await run_in_threadpool(_get_assistant)
    if not assistant.is_configured:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="No valid OpenAI API key configured.",
        )

    # The assistant serialises generations, so concurrent requests queue here.
    request = await run_in_threadpool(assistant.generate, payload.text, use_marker=payload.use_marker)

    if request.prompt is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No prompt found in text.")
    if not request.succeeded or request.response is None:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=GENERATION_FAILED_MESSAGE)
    return GenerateResponse(text=request.response, prompt=request.prompt)
