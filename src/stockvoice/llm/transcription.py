"""
语音转写 - Speech Transcription

Audio file plus language hint in, transcript text out. The pipeline depends
only on Transcriber; OpenAITranscriber is the production implementation.
"""

from __future__ import annotations

import os
import time
from pathlib import Path
from typing import Optional

from openai import OpenAI


class Transcriber:
    """转写服务基类 - Transcription Service Base Class"""

    def transcribe(self, audio_path: Path, language: str) -> str:
        """Return the raw transcript; an empty string means nothing was recognised."""
        raise NotImplementedError


class OpenAITranscriber(Transcriber):
    def __init__(
        self,
        api_key: str,
        model: str = "whisper-1",
        timeout_seconds: Optional[float] = None,
    ):
        self.model = model
        self._client = OpenAI(api_key=api_key, timeout=timeout_seconds, max_retries=0)

    def transcribe(self, audio_path: Path, language: str) -> str:
        start = time.time()
        with Path(audio_path).open("rb") as audio:
            response = self._client.audio.transcriptions.create(
                model=self.model,
                file=audio,
                language=language,
                response_format="json",
            )
        print(f"[PERF] Transcription took {time.time() - start:.3f}s")
        return getattr(response, "text", None) or ""


def build_transcriber(timeout_seconds: Optional[float] = None) -> Optional[Transcriber]:
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        return None
    return OpenAITranscriber(
        api_key=api_key,
        model=os.getenv("OPENAI_TRANSCRIPTION_MODEL", "whisper-1"),
        timeout_seconds=timeout_seconds,
    )
