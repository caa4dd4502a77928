"""Data 模块：数据模型与仓库"""

from .models import Part
from .repository import (
    PartsRepository,
    InMemoryPartsRepository,
    SQLitePartsRepository,
    create_parts_repository,
)

__all__ = [
    "Part",
    "PartsRepository",
    "InMemoryPartsRepository",
    "SQLitePartsRepository",
    "create_parts_repository",
]
