"""数据模型定义 - persisted inventory entities"""

from __future__ import annotations

from pydantic import BaseModel, Field


class Part(BaseModel):
    """库存配件 - one inventory row, keyed by (manufacturer, part, model)"""
    # 标识
    id: int = Field(description="存储分配的标识 storage-assigned id")

    # 自然键
    manufacturer: str = Field(description="厂商（英文规范名）")
    part: str = Field(description="配件名称（目标语言）")
    model: str = Field(description="车型/型号")

    # 库存
    quantity: int = Field(default=0, ge=0, description="库存数量")

    def key(self) -> tuple[str, str, str]:
        return (self.manufacturer, self.part, self.model)
