"""
LLM 提供商构建与调用管理 - LLM Provider Building and Invocation Management

管理补全模型实例的构建、速率限制和超时控制。
Manage completion model building, rate limiting, and timeout control.
"""

from __future__ import annotations

import os
import threading
import time
from typing import Literal, Optional

from langchain_openai import ChatOpenAI

# 全局锁与状态 - Global Lock and State
_LLM_CALL_LOCK = threading.Lock()
_LAST_LLM_CALL_AT = 0.0

Provider = Literal["openai", "openrouter"]


def build_llm(
    provider: Provider,
    temperature: float = 0.0,
    max_tokens: int = 500,
) -> Optional[ChatOpenAI]:
    """
    构建指定提供商的补全模型 - Build Completion Model for Provider

    参数 Parameters:
        provider: "openai" 或 "openrouter"
        temperature: 生成温度
                     Generation temperature
        max_tokens: 单次补全的最大 token 数
                    Maximum tokens per completion

    返回 Returns:
        ChatOpenAI 实例，如果 API key 缺失则返回 None
        ChatOpenAI instance, or None if the API key is missing
    """
    max_retries = int(os.getenv("LLM_MAX_RETRIES", "0"))

    if provider == "openrouter":
        openrouter_key = os.getenv("OPENROUTER_API_KEY")
        if not openrouter_key:
            return None
        return ChatOpenAI(
            model=os.getenv("OPENROUTER_MODEL", "openai/gpt-3.5-turbo"),
            temperature=temperature,
            max_tokens=max_tokens,
            api_key=openrouter_key,
            base_url=os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1"),
            timeout=None,
            max_retries=max_retries,
        )

    if provider == "openai":
        openai_key = os.getenv("OPENAI_API_KEY")
        if not openai_key:
            return None
        return ChatOpenAI(
            model=os.getenv("OPENAI_MODEL", "gpt-3.5-turbo"),
            temperature=temperature,
            max_tokens=max_tokens,
            api_key=openai_key,
            timeout=None,
            max_retries=max_retries,
        )

    return None


def invoke_with_rate_limit(invoke_fn):
    """
    带速率限制的调用 - Invocation with Rate Limiting

    Disabled unless LLM_RATE_LIMIT_ENABLED=true; then consecutive calls are
    spaced by at least LLM_MIN_INTERVAL_SECONDS.
    """
    global _LAST_LLM_CALL_AT

    if os.getenv("LLM_RATE_LIMIT_ENABLED", "false").lower() != "true":
        return invoke_fn()

    min_interval = float(os.getenv("LLM_MIN_INTERVAL_SECONDS", "1.0"))
    with _LLM_CALL_LOCK:
        now = time.monotonic()
        target_at = max(now, _LAST_LLM_CALL_AT + min_interval)
        _LAST_LLM_CALL_AT = target_at

    wait = max(0.0, target_at - time.monotonic())
    if wait > 0:
        print(f"[PERF] Rate limit wait: {wait:.3f}s")
        time.sleep(wait)
    return invoke_fn()


def invoke_with_turn_timeout(invoke_fn, timeout_seconds: Optional[float] = None):
    """
    带超时控制的调用 - Invocation with Timeout Control

    参数 Parameters:
        invoke_fn: 要执行的函数
                   Function to execute
        timeout_seconds: 超时时间（秒），None 表示不限制
                         Timeout in seconds, None means no limit

    异常 Raises:
        TimeoutError: 如果调用超时
                      If call times out
    """
    start = time.time()
    try:
        if not timeout_seconds:
            return invoke_fn()

        result = [None]
        exception = [None]

        def worker():
            try:
                result[0] = invoke_fn()
            except Exception as e:
                exception[0] = e

        thread = threading.Thread(target=worker, daemon=True)
        thread.start()
        thread.join(timeout=timeout_seconds)

        if thread.is_alive():
            elapsed = time.time() - start
            print(f"[PERF] LLM call timed out after {elapsed:.3f}s (timeout={timeout_seconds}s)")
            raise TimeoutError(f"LLM call timed out after {timeout_seconds}s")
        if exception[0]:
            raise exception[0]
        return result[0]
    except Exception as err:
        elapsed = time.time() - start
        print(f"[PERF] LLM call failed after {elapsed:.3f}s: {err}")
        raise


def complete(llm: ChatOpenAI, instruction: str, timeout_seconds: Optional[float] = None) -> str:
    """Send one instruction as a single user message and return the completion text."""
    start = time.time()
    message = invoke_with_turn_timeout(
        lambda: invoke_with_rate_limit(lambda: llm.invoke(instruction)),
        timeout_seconds,
    )
    print(f"[PERF] Completion took {time.time() - start:.3f}s")
    content = getattr(message, "content", message)
    if isinstance(content, list):
        # 多段内容只取文本段
        content = "".join(
            c.get("text", "") if isinstance(c, dict) else str(c) for c in content
        )
    return content if isinstance(content, str) else str(content)


def get_model_name(provider: str) -> str:
    if provider == "openrouter":
        return os.getenv("OPENROUTER_MODEL", "openai/gpt-3.5-turbo")
    if provider == "openai":
        return os.getenv("OPENAI_MODEL", "gpt-3.5-turbo")
    return provider
