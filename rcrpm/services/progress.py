"""Progress aggregation over objectives, indicators, tasks and resources."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import Decimal
from uuid import UUID

from rcrpm.models.entities import (
    FinancialResource,
    HumanResource,
    Indicator,
    MaterialResource,
    Objective,
    Task,
    TaskStatus,
)


def percent(current: float | int | Decimal, target: float | int | Decimal) -> float:
    """``current / target`` as a percentage capped at 100, two decimals."""

    target_value = float(target)
    if target_value <= 0:
        return 0.0
    return round(min(100.0, float(current) / target_value * 100.0), 2)


def indicator_progress(indicator: Indicator) -> float:
    return percent(indicator.current, indicator.target)


def objective_summary(objectives: Iterable[Objective], indicators: Iterable[Indicator]) -> dict[str, object]:
    rows = list(objectives)
    indicator_rows = list(indicators)
    completed = sum(1 for row in rows if row.is_completed)
    indicator_values = [indicator_progress(row) for row in indicator_rows]
    return {
        "total": len(rows),
        "completed": completed,
        "percent": percent(completed, len(rows)),
        "indicators": len(indicator_rows),
        "indicator_average": round(sum(indicator_values) / len(indicator_values), 2) if indicator_values else 0.0,
    }


def task_summary(tasks: Iterable[Task]) -> dict[str, object]:
    counts = {task_status.value: 0 for task_status in TaskStatus}
    total = 0
    for task in tasks:
        counts[task.status.value] += 1
        total += 1
    return {
        "total": total,
        "by_status": counts,
        "percent_done": percent(counts[TaskStatus.DONE.value], total),
    }


def resource_summary(
    *,
    material: Iterable[MaterialResource],
    human: Iterable[HumanResource],
    participants: Mapping[UUID, int],
    financial: FinancialResource | None,
) -> dict[str, object]:
    material_rows = [
        {
            "id": str(row.id),
            "name": row.name,
            "needed": row.needed,
            "owned": row.owned,
            "percent": percent(row.owned, row.needed),
        }
        for row in material
    ]
    human_rows = [
        {
            "id": str(row.id),
            "name": row.name,
            "needed": row.needed,
            "participants": participants.get(row.id, 0),
            "percent": percent(participants.get(row.id, 0), row.needed),
        }
        for row in human
    ]
    financial_row = None
    if financial is not None:
        financial_row = {
            "amount": str(financial.amount),
            "owned": str(financial.owned),
            "percent": percent(financial.owned, financial.amount),
        }
    return {"material": material_rows, "human": human_rows, "financial": financial_row}
