"""LLM 模块：补全模型、转写与指令模板"""

from .providers import build_llm, complete, invoke_with_rate_limit, invoke_with_turn_timeout
from .prompts import EXTRACTION_PROMPTS, build_instruction
from .transcription import OpenAITranscriber, Transcriber, build_transcriber

__all__ = [
    "build_llm",
    "complete",
    "invoke_with_rate_limit",
    "invoke_with_turn_timeout",
    "EXTRACTION_PROMPTS",
    "build_instruction",
    "Transcriber",
    "OpenAITranscriber",
    "build_transcriber",
]
