from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional

from ..backends.interfaces import ResourceBackend
from ..constants import EXPENSES
from ..domain.models import Expense, ExpenseStatus, Identity
from ..results import ErrorKind, Result, validation_failure
from ..utils import _now_iso
from .base import IdentityProvider, ResourceStore
from .events import EventStore


@dataclass(frozen=True)
class CategoryTotals:
    spent: float = 0.0
    pending: float = 0.0


@dataclass(frozen=True)
class BudgetSummary:
    total_budget: float = 0.0
    total_spent: float = 0.0
    pending_amount: float = 0.0
    remaining: float = 0.0
    pending_count: int = 0
    category_breakdown: dict[str, CategoryTotals] = field(default_factory=dict)


def summarize_budget(expenses: Iterable[Expense], total_budget: float = 0.0) -> BudgetSummary:
    """Reduce *expenses* to spent/pending totals; approved and paid count as spent."""
    spent = 0.0
    pending = 0.0
    pending_count = 0
    breakdown: dict[str, list[float]] = {}
    for exp in expenses:
        bucket = breakdown.setdefault(exp.category, [0.0, 0.0])
        amount = float(exp.amount)
        if exp.is_spent:
            spent += amount
            bucket[0] += amount
        elif exp.status == ExpenseStatus.PENDING:
            pending += amount
            pending_count += 1
            bucket[1] += amount
    return BudgetSummary(
        total_budget=total_budget,
        total_spent=spent,
        pending_amount=pending,
        remaining=total_budget - spent,
        pending_count=pending_count,
        category_breakdown={k: CategoryTotals(spent=v[0], pending=v[1]) for k, v in breakdown.items()},
    )


def _check_amount(payload: dict[str, Any]) -> None:
    if isinstance(payload.get("amount"), bool):
        raise validation_failure("Amount must be a number")


class ExpenseStore(ResourceStore[Expense]):
    """Submitted expenses with an approve/reject/paid lifecycle."""

    entity = EXPENSES
    entity_cls = Expense
    FILTERS = frozenset({"event_id", "status", "category", "submitted_by", "approved_by"})

    def __init__(
        self,
        backend: ResourceBackend,
        identity: IdentityProvider,
        *,
        events: Optional[EventStore] = None,
        budgets: Optional[Mapping[str, float]] = None,
    ) -> None:
        super().__init__(backend, identity)
        self._events = events
        self._budgets = dict(budgets or {})

    def _prepare_create(self, payload: dict[str, Any], identity: Identity) -> dict[str, Any]:
        # New submissions always enter the approval lifecycle as pending.
        payload["status"] = ExpenseStatus.PENDING.value
        payload.pop("approved_by", None)
        payload.pop("approved_at", None)
        _check_amount(payload)
        if isinstance(payload.get("category"), str):
            payload["category"] = payload["category"].strip()
        return payload

    def _prepare_update(self, current: Expense, patch: dict[str, Any]) -> dict[str, Any]:
        _check_amount(patch)
        return patch

    async def budget_for(self, event_id: str) -> Result[float]:
        """Configured budget, else the event's ``budget_total``, else 0."""
        if event_id in self._budgets:
            return Result.success(float(self._budgets[event_id]))
        if self._events is None:
            return Result.success(0.0)
        found = await self._events.get(event_id)
        if found.ok:
            return Result.success(float(found.value.budget_total))  # type: ignore[union-attr]
        if found.kind == ErrorKind.NOT_FOUND:
            return Result.success(0.0)
        return Result.failure(found.error)  # type: ignore[arg-type]

    async def approve(self, expense_id: str) -> Result[Expense]:
        """Approve and stamp the approving identity (distinct from the submitter)."""
        identity = self._identity()
        approver = identity.id if identity is not None else None
        return await self.update(
            expense_id,
            {"status": ExpenseStatus.APPROVED, "approved_by": approver, "approved_at": _now_iso()},
        )

    async def reject(self, expense_id: str) -> Result[Expense]:
        return await self.update(expense_id, {"status": ExpenseStatus.REJECTED})

    async def mark_paid(self, expense_id: str) -> Result[Expense]:
        return await self.update(expense_id, {"status": ExpenseStatus.PAID})

    async def budget_summary(self, event_id: str, total_budget: Optional[float] = None) -> Result[BudgetSummary]:
        """Scan the event's expenses; an event with none yields a zero summary."""
        snap = await self.snapshot(event_id=event_id)
        if not snap.ok:
            return Result.failure(snap.error)  # type: ignore[arg-type]
        if total_budget is None:
            budget = await self.budget_for(event_id)
            if not budget.ok:
                return Result.failure(budget.error)  # type: ignore[arg-type]
            total_budget = budget.value
        return Result.success(summarize_budget(snap.value or [], float(total_budget or 0.0)))
