from __future__ import annotations

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from .data.models import Part


Language = Literal["ru", "lv"]
SUPPORTED_LANGUAGES = ("ru", "lv")

ChangeAction = Literal["add", "remove"]
OutcomeStatus = Literal["applied", "insufficient_stock", "unknown_part", "invalid"]


class ChangeRequest(BaseModel):
    manufacturer: str = ""
    part: str = ""
    model: str = ""
    quantity: int = 1
    # 未知动作原样保留，由 reconciler 报告为 invalid
    action: str = "add"
    # 无法解码的元素：记录原因，由 reconciler 报告为 invalid
    error: Optional[str] = None

    @field_validator("manufacturer", "part", "model", mode="before")
    @classmethod
    def _text_or_empty(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity_default(cls, value: Any) -> Any:
        return 1 if value is None else value

    @field_validator("action", mode="before")
    @classmethod
    def _action_default(cls, value: Any) -> Any:
        if value is None:
            return "add"
        if isinstance(value, str):
            return value.strip().lower() or "add"
        return value

    def key(self) -> tuple[str, str, str]:
        return (self.manufacturer, self.part, self.model)

    def describe(self) -> str:
        return f"{self.manufacturer} {self.part} {self.model}".strip()


class ChangeBatch(BaseModel):
    changes: List[ChangeRequest] = Field(default_factory=list)


class ChangeOutcome(BaseModel):
    index: int
    change: ChangeRequest
    status: OutcomeStatus
    part_id: Optional[int] = None
    quantity_before: Optional[int] = None
    quantity_after: Optional[int] = None
    detail: str = ""


class ReconciliationResult(BaseModel):
    outcomes: List[ChangeOutcome] = Field(default_factory=list)
    success: bool = True

    @property
    def applied(self) -> int:
        return sum(1 for o in self.outcomes if o.status == "applied")

    @property
    def skipped(self) -> int:
        return len(self.outcomes) - self.applied


# === HTTP 请求/响应 ===

class CommandRequest(BaseModel):
    command: str
    language: str


class CommandResponse(BaseModel):
    changes: List[ChangeRequest]


class VoiceCommandResponse(BaseModel):
    changes: List[ChangeRequest]
    commandText: str


class ExecuteChangesRequest(BaseModel):
    changes: List[ChangeRequest] = Field(default_factory=list)


class ExecuteChangesResponse(BaseModel):
    success: bool
    results: List[ChangeOutcome] = Field(default_factory=list)


class PartUpdateRequest(BaseModel):
    manufacturer: str
    part: str
    model: str
    quantity: int


class DeletePartsRequest(BaseModel):
    ids: List[int] = Field(default_factory=list)


__all__ = [
    "Part",
    "Language",
    "SUPPORTED_LANGUAGES",
    "ChangeRequest",
    "ChangeBatch",
    "ChangeOutcome",
    "ReconciliationResult",
    "CommandRequest",
    "CommandResponse",
    "VoiceCommandResponse",
    "ExecuteChangesRequest",
    "ExecuteChangesResponse",
    "PartUpdateRequest",
    "DeletePartsRequest",
]
