"""Nodes 模块：命令处理流水线节点"""

from .normalize import normalize, TRANSCRIPTION_CORRECTIONS
from .extract import ChangeExtractor, extract_changes
from .reconcile import InventoryReconciler, apply_changes

__all__ = [
    "normalize",
    "TRANSCRIPTION_CORRECTIONS",
    "ChangeExtractor",
    "extract_changes",
    "InventoryReconciler",
    "apply_changes",
]
