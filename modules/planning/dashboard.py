"""Dashboard window queries and statistics."""
from datetime import date
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .alerts import list_contracts_without_future_visit, list_one_off_nearing_completion
from .config import PlanningConfig, get_config
from .models import (
    CLOSED_STATUSES,
    Intervention,
    InterventionKind,
    InterventionStatus,
)
from .windows import due_window, is_overdue, resolve_today, week_bounds


def _due_filter(start: date, end: date) -> list:
    return [
        Intervention.planned_date >= start,
        Intervention.planned_date <= end,
        Intervention.status == InterventionStatus.TO_SCHEDULE,
    ]


def _overdue_filter(today: date) -> list:
    return [
        Intervention.planned_date < today,
        Intervention.status.not_in(CLOSED_STATUSES),
    ]


def list_due_within(
    session: Session,
    days: Optional[int] = None,
    today: Optional[date] = None,
    config: Optional[PlanningConfig] = None,
) -> list[Intervention]:
    """TO_SCHEDULE visits planned within [today, today + days]."""
    if days is None:
        days = (config or get_config()).due_soon_days
    start, end = due_window(days, today)
    return list(session.scalars(
        select(Intervention)
        .where(*_due_filter(start, end))
        .order_by(Intervention.planned_date, Intervention.id)
    ).all())


def list_overdue(session: Session, today: Optional[date] = None) -> list[Intervention]:
    """Open visits planned before today."""
    return list(session.scalars(
        select(Intervention)
        .where(*_overdue_filter(resolve_today(today)))
        .order_by(Intervention.planned_date, Intervention.id)
    ).all())


def list_current_week(session: Session, today: Optional[date] = None) -> list[Intervention]:
    """Every visit planned Monday to Sunday of the current week, any status."""
    monday, sunday = week_bounds(today)
    return list(session.scalars(
        select(Intervention)
        .where(Intervention.planned_date >= monday, Intervention.planned_date <= sunday)
        .order_by(
            Intervention.planned_date,
            Intervention.planned_time.is_(None),
            Intervention.planned_time,
            Intervention.id,
        )
    ).all())


def _count(session: Session, *filters) -> int:
    return session.scalar(select(func.count(Intervention.id)).where(*filters))


def get_dashboard_stats(
    session: Session,
    today: Optional[date] = None,
    config: Optional[PlanningConfig] = None,
) -> dict:
    """Counters for the dashboard header.

    Returns:
        {"due_soon_count", "overdue_count", "upcoming_inspections_30d",
         "contracts_needing_attention_count", "one_off_almost_done_count"}
    """
    config = config or get_config()
    ref = resolve_today(today)
    due_start, due_end = due_window(config.due_soon_days, ref)
    insp_start, insp_end = due_window(config.inspection_window_days, ref)

    return {
        "due_soon_count": _count(session, *_due_filter(due_start, due_end)),
        "overdue_count": _count(session, *_overdue_filter(ref)),
        "upcoming_inspections_30d": _count(
            session,
            Intervention.planned_date >= insp_start,
            Intervention.planned_date <= insp_end,
            Intervention.kind == InterventionKind.INSPECTION,
            Intervention.status.not_in(CLOSED_STATUSES),
        ),
        "contracts_needing_attention_count": len(
            list_contracts_without_future_visit(session, ref)
        ),
        "one_off_almost_done_count": len(list_one_off_nearing_completion(session)),
    }


def intervention_to_dict(intervention: Intervention, today: Optional[date] = None) -> dict:
    """Serialize an intervention for JSON output."""
    return {
        "id": intervention.id,
        "contract_id": intervention.contract_id,
        "client_id": intervention.client_id,
        "site_id": intervention.site_id,
        "kind": intervention.kind.value,
        "service_label": intervention.service_label,
        "planned_date": intervention.planned_date.isoformat(),
        "planned_time": intervention.planned_time,
        "status": intervention.status.value,
        "completed_date": (
            intervention.completed_date.isoformat() if intervention.completed_date else None
        ),
        "overdue": (
            not intervention.is_closed and is_overdue(intervention.planned_date, today)
        ),
        "notes": intervention.notes,
    }
