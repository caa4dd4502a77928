"""
变更提取节点 - Change Extraction Node

从补全服务的原始响应中解码库存变更。
Decode stock changes from the completion service's raw response.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError

from ..errors import ResponseParseError, SchemaViolation
from ..schemas import ChangeBatch, ChangeRequest


class ChangeExtractor:
    """
    变更提取器 - Change Extractor

    Only checks that the response is JSON with a 'changes' list. An element
    that cannot be decoded is kept in place with its reason in ``error``;
    field-level rules (positive quantity, known action) are left to the
    reconciler.
    """

    def extract(self, raw_response_text: str) -> ChangeBatch:
        """
        提取变更 - Extract Changes

        参数 Parameters:
            raw_response_text: 补全服务返回的原始文本
                               Raw text returned by the completion service

        返回 Returns:
            ChangeBatch，保持原始顺序
            ChangeBatch in response order

        异常 Raises:
            ResponseParseError: 文本不是合法 JSON
            SchemaViolation: 缺少 changes 列表
        """
        raw = raw_response_text if isinstance(raw_response_text, str) else ""
        try:
            payload = json.loads(raw.strip())
        except json.JSONDecodeError as err:
            raise ResponseParseError(raw, str(err)) from err

        if not isinstance(payload, dict) or "changes" not in payload:
            raise SchemaViolation(raw, "missing 'changes'")
        items = payload["changes"]
        if not isinstance(items, list):
            raise SchemaViolation(raw, "'changes' is not a list")

        changes = []
        for index, item in enumerate(items):
            change = self._decode_change(item)
            if change.error:
                print(f"[EXTRACT] change #{index} kept as invalid: {change.error}")
            changes.append(change)
        return ChangeBatch(changes=changes)

    @staticmethod
    def _decode_change(item: Any) -> ChangeRequest:
        if not isinstance(item, dict):
            return ChangeRequest(error=f"change is not an object: {item!r}")
        fields = {k: v for k, v in item.items() if k != "error"}
        try:
            return ChangeRequest.model_validate(fields)
        except ValidationError as err:
            problems = err.errors()

        # 丢弃无法解码的字段，其余字段照常保留
        bad = {str(p["loc"][0]) for p in problems if p["loc"]}
        reason = "; ".join(
            f"{p['loc'][0]}={fields.get(p['loc'][0])!r}: {p['msg']}" if p["loc"] else p["msg"]
            for p in problems
        )
        kept = {k: v for k, v in fields.items() if k not in bad}
        return ChangeRequest.model_validate({**kept, "error": reason})


def extract_changes(raw_response_text: str) -> ChangeBatch:
    return ChangeExtractor().extract(raw_response_text)
