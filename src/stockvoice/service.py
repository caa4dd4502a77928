from __future__ import annotations

import time
from pathlib import Path
from typing import Optional, Tuple, TYPE_CHECKING

from .data.repository import PartsRepository
from .errors import (
    CompletionFailure,
    CompletionUnavailable,
    InvalidLanguage,
    ResponseParseError,
    SchemaViolation,
    TranscriptionFailure,
)
from .llm.prompts import build_instruction
from .llm.providers import complete
from .llm.transcription import Transcriber
from .nodes.extract import ChangeExtractor
from .nodes.normalize import normalize
from .nodes.reconcile import InventoryReconciler
from .schemas import SUPPORTED_LANGUAGES, ChangeBatch, ReconciliationResult

if TYPE_CHECKING:
    from langchain_openai import ChatOpenAI


class CommandService:
    """
    命令服务 - Command Service

    Runs one command through normalize, build instruction, completion,
    extract, and (on execute) reconcile. Stages run sequentially; the only
    waits are the transcription and completion calls.
    """

    def __init__(
        self,
        repo: PartsRepository,
        llm: Optional["ChatOpenAI"] = None,
        transcriber: Optional[Transcriber] = None,
        llm_timeout_seconds: Optional[float] = None,
    ):
        self.repo = repo
        self.llm = llm
        self.transcriber = transcriber
        self.llm_timeout_seconds = llm_timeout_seconds
        self.extractor = ChangeExtractor()
        self.reconciler = InventoryReconciler()

    @staticmethod
    def check_language(language: object) -> str:
        if language not in SUPPORTED_LANGUAGES:
            raise InvalidLanguage(language)
        return language  # type: ignore[return-value]

    def interpret_text(self, command: str, language: str) -> ChangeBatch:
        self.check_language(language)
        print(f"[StockVoice] Processing text command [Language: {language}]: {command}")
        command_text = normalize(command, language)
        if command_text != command:
            print(f"[StockVoice] Corrected text: {command_text!r}")
        instruction = build_instruction(command_text, language)
        raw = self._complete(instruction, language)
        return self._extract(raw)

    def interpret_voice(self, audio_path: Path, language: str) -> Tuple[ChangeBatch, str]:
        self.check_language(language)
        if self.transcriber is None:
            raise TranscriptionFailure("Transcription service is not configured")

        print(f"[StockVoice] Processing voice command [Language: {language}]")
        try:
            transcript = self.transcriber.transcribe(audio_path, language)
        except Exception as err:
            print(f"[StockVoice] Transcription request failed: {err}")
            raise TranscriptionFailure(f"Transcription request failed: {err}") from err

        command_text = (transcript or "").strip()
        if not command_text:
            print("[StockVoice] Transcription returned no text")
            raise TranscriptionFailure()
        print(f"[StockVoice] Recognised text: {command_text!r}")

        command_text = normalize(command_text, language)
        instruction = build_instruction(command_text, language)
        raw = self._complete(instruction, language)
        return self._extract(raw), command_text

    def execute(self, batch: ChangeBatch) -> ReconciliationResult:
        return self.reconciler.apply(batch, self.repo)

    def _complete(self, instruction: str, language: str) -> str:
        if self.llm is None:
            raise CompletionUnavailable()
        try:
            raw = complete(self.llm, instruction, self.llm_timeout_seconds)
        except Exception as err:
            raise CompletionFailure(f"Completion request failed: {err}") from err
        print(f"[StockVoice] Completion response [Language: {language}]: {raw}")
        return raw

    def _extract(self, raw: str) -> ChangeBatch:
        start = time.time()
        try:
            batch = self.extractor.extract(raw)
        except (ResponseParseError, SchemaViolation) as err:
            print(f"[StockVoice] {err} | raw response: {err.raw_text!r}")
            raise
        print(f"[PERF] Extract took {time.time() - start:.3f}s ({len(batch.changes)} changes)")
        return batch
