"""
转写纠错节点 - Transcript Correction Node

Fixes known speech-recognition mistakes before the text reaches the prompt.
"""

from __future__ import annotations

import re
from typing import Dict, List, Tuple

# 常见误识别 → 正确写法，按语言分组
TRANSCRIPTION_CORRECTIONS: Dict[str, Dict[str, str]] = {
    "lv": {
        "tajota": "Toyota",
        "bremzha diski": "bremžu disks",
    },
}


def _compile(corrections: Dict[str, str]) -> List[Tuple[re.Pattern, str]]:
    # 长短语优先，避免被其中的单词先替换
    ordered = sorted(corrections.items(), key=lambda kv: len(kv[0]), reverse=True)
    return [
        (re.compile(rf"\b{re.escape(wrong)}\b", re.IGNORECASE), right)
        for wrong, right in ordered
    ]


_PATTERNS: Dict[str, List[Tuple[re.Pattern, str]]] = {
    lang: _compile(mapping) for lang, mapping in TRANSCRIPTION_CORRECTIONS.items()
}


def normalize(text: str, language: str) -> str:
    """
    纠正转写文本 - Correct Transcript Text

    Whole-word, case-insensitive replacement of known mis-transcriptions for
    languages that have a correction table; any other text is returned as is.
    """
    if not text:
        return text
    for pattern, replacement in _PATTERNS.get(language, []):
        text = pattern.sub(lambda _m, r=replacement: r, text)
    return text
