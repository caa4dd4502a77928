"""
库存对账节点 - Inventory Reconciliation Node

把一批变更逐条应用到库存。
Apply a batch of changes to stored inventory, one change at a time.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Optional

from ..schemas import ChangeBatch, ChangeOutcome, ChangeRequest, ReconciliationResult

if TYPE_CHECKING:
    from ..data.repository import PartsRepository


VALID_ACTIONS = ("add", "remove")


class InventoryReconciler:
    """
    库存对账器 - Inventory Reconciler

    Changes are applied in batch order and independently: a skipped change
    (invalid, insufficient stock, unknown part) is recorded and the batch
    continues. Nothing is rolled back, so a partially applied batch is a
    normal result. Storage errors propagate to the caller.
    """

    def apply(self, batch: ChangeBatch, repo: "PartsRepository") -> ReconciliationResult:
        start = time.time()
        result = ReconciliationResult()
        for index, change in enumerate(batch.changes):
            outcome = self._apply_one(index, change, repo)
            if outcome.status != "applied":
                print(f"[RECONCILE] skipped #{index} ({outcome.status}): {outcome.detail}")
            result.outcomes.append(outcome)
        print(
            f"[PERF] Reconcile took {time.time() - start:.3f}s "
            f"(applied={result.applied}, skipped={result.skipped})"
        )
        return result

    @staticmethod
    def _validate(change: ChangeRequest) -> Optional[str]:
        if change.error:
            return change.error
        missing = [name for name in ("manufacturer", "part", "model") if not getattr(change, name).strip()]
        if missing:
            return f"missing {', '.join(missing)}"
        if change.action not in VALID_ACTIONS:
            return f"unknown action {change.action!r}"
        if change.quantity <= 0:
            return f"quantity must be positive, got {change.quantity}"
        return None

    def _apply_one(self, index: int, change: ChangeRequest, repo: "PartsRepository") -> ChangeOutcome:
        problem = self._validate(change)
        if problem:
            return ChangeOutcome(index=index, change=change, status="invalid", detail=problem)

        delta = change.quantity if change.action == "add" else -change.quantity
        existing = repo.find_by_key(change.manufacturer, change.part, change.model)

        if existing is not None:
            new_quantity = repo.adjust_quantity(existing.id, delta)
            if new_quantity is not None:
                return ChangeOutcome(
                    index=index,
                    change=change,
                    status="applied",
                    part_id=existing.id,
                    quantity_before=new_quantity - delta,
                    quantity_after=new_quantity,
                )
            current = repo.get(existing.id)
            if current is not None:
                return ChangeOutcome(
                    index=index,
                    change=change,
                    status="insufficient_stock",
                    part_id=current.id,
                    quantity_before=current.quantity,
                    quantity_after=current.quantity,
                    detail=f"cannot remove {change.quantity} of {change.describe()}: only {current.quantity} in stock",
                )
            # 查找之后该行已被删除，按不存在处理

        if change.action == "add":
            created = repo.insert(change.manufacturer, change.part, change.model, change.quantity)
            return ChangeOutcome(
                index=index,
                change=change,
                status="applied",
                part_id=created.id,
                quantity_before=created.quantity - change.quantity,
                quantity_after=created.quantity,
            )

        return ChangeOutcome(
            index=index,
            change=change,
            status="unknown_part",
            detail=f"part not found, cannot remove: {change.describe()}",
        )


def apply_changes(batch: ChangeBatch, repo: "PartsRepository") -> ReconciliationResult:
    return InventoryReconciler().apply(batch, repo)
