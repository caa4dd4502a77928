from __future__ import annotations

import os
import shutil
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .data.repository import create_parts_repository
from .errors import StockVoiceError
from .llm.providers import build_llm, get_model_name
from .llm.transcription import build_transcriber
from .schemas import (
    ChangeBatch,
    CommandRequest,
    CommandResponse,
    DeletePartsRequest,
    ExecuteChangesRequest,
    ExecuteChangesResponse,
    PartUpdateRequest,
    VoiceCommandResponse,
)
from .service import CommandService

ROOT = Path(__file__).resolve().parents[2]

load_dotenv(ROOT / ".env")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


PARTS_STORE = os.getenv("PARTS_STORE", "sqlite").strip().lower()
PARTS_DB_PATH = Path(os.getenv("PARTS_DB_PATH", str(ROOT / "data" / "parts.db")))
PARTS_DB_POOL_SIZE = _env_int("PARTS_DB_POOL_SIZE", 10)
LLM_PROVIDER = os.getenv("LLM_PROVIDER", "openai").strip().lower()
LLM_MAX_TOKENS = _env_int("LLM_MAX_TOKENS", 500)
LLM_TEMPERATURE = _env_float("LLM_TEMPERATURE", 0.0) or 0.0
LLM_TIMEOUT_SECONDS = _env_float("LLM_TIMEOUT_SECONDS", None)

PartsStore = Literal["sqlite", "memory"]


def _normalize_store(store: str) -> PartsStore:
    if store in {"sqlite", "memory"}:
        return store
    return "sqlite"


def _build_service() -> CommandService:
    repo = create_parts_repository(
        _normalize_store(PARTS_STORE),
        db_path=PARTS_DB_PATH,
        pool_size=PARTS_DB_POOL_SIZE,
    )
    provider = LLM_PROVIDER if LLM_PROVIDER in {"openai", "openrouter"} else "openai"
    llm = build_llm(provider, temperature=LLM_TEMPERATURE, max_tokens=LLM_MAX_TOKENS)
    if llm is None:
        print(f"[StockVoice] No API key for provider '{provider}', command interpretation disabled")
    else:
        print(f"[StockVoice] Completion model: {provider}/{get_model_name(provider)}")
    return CommandService(
        repo,
        llm=llm,
        transcriber=build_transcriber(LLM_TIMEOUT_SECONDS),
        llm_timeout_seconds=LLM_TIMEOUT_SECONDS,
    )


service = _build_service()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    try:
        service.repo.ping()
        print("[StockVoice] Database connection OK")
    except StockVoiceError as err:
        print(f"[StockVoice] Database connection failed: {err}")
    yield
    service.repo.close()
    print("[StockVoice] Database pool closed")


app = FastAPI(title="StockVoice", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StockVoiceError)
async def stockvoice_error_handler(request: Request, exc: StockVoiceError):
    print(f"[StockVoice] {request.method} {request.url.path} failed: {type(exc).__name__}: {exc}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.public_message})


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.get("/api/health")
def health():
    storage = "ok"
    try:
        service.repo.ping()
    except StockVoiceError:
        storage = "unavailable"
    return {
        "status": "ok" if storage == "ok" else "degraded",
        "storage": storage,
        "completion": "configured" if service.llm is not None else "missing",
    }


@app.post("/api/process-command")
def process_command(payload: CommandRequest):
    batch = service.interpret_text(payload.command, payload.language)
    return CommandResponse(changes=batch.changes).model_dump(exclude_none=True)


@app.post("/api/voice-command")
def voice_command(audio: UploadFile = File(...), language: str = Form(...)):
    service.check_language(language)
    suffix = Path(audio.filename or "").suffix or ".webm"
    with tempfile.NamedTemporaryFile(prefix="voice-", suffix=suffix, delete=False) as tmp:
        shutil.copyfileobj(audio.file, tmp)
        audio_path = Path(tmp.name)
    try:
        batch, command_text = service.interpret_voice(audio_path, language)
        return VoiceCommandResponse(changes=batch.changes, commandText=command_text).model_dump(exclude_none=True)
    finally:
        audio_path.unlink(missing_ok=True)


@app.post("/api/execute-changes")
def execute_changes(payload: ExecuteChangesRequest):
    result = service.execute(ChangeBatch(changes=payload.changes))
    return ExecuteChangesResponse(success=result.success, results=result.outcomes).model_dump()


@app.get("/api/parts")
def list_parts():
    return [p.model_dump() for p in service.repo.all_parts()]


@app.put("/api/parts/{part_id}")
def update_part(part_id: int, payload: PartUpdateRequest):
    try:
        found = service.repo.update(
            part_id,
            payload.manufacturer,
            payload.part,
            payload.model,
            payload.quantity,
        )
    except ValueError as err:
        return _error(400, str(err))
    if not found:
        return _error(404, f"Part {part_id} not found")
    return {"success": True}


@app.delete("/api/parts")
def delete_parts(payload: DeletePartsRequest):
    deleted = service.repo.delete(payload.ids)
    return {"success": True, "deleted": deleted}
