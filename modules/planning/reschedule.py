"""Manual moves of a single intervention: postpone, confirm, cancel.

None of these touch the rest of the series.
"""
import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from .completion import merge_notes
from .config import PlanningConfig, get_config
from .errors import NotFound, ValidationError
from .lifecycle import check_transition
from .models import Intervention, InterventionStatus
from .windows import resolve_today

logger = logging.getLogger(__name__)

_TIME_FORMAT_HINT = "HH:MM"


def _load(session: Session, intervention_id: int) -> Intervention:
    intervention = session.get(Intervention, intervention_id)
    if intervention is None:
        raise NotFound("Intervention", intervention_id)
    return intervention


def _stamp(label: str, reason: str, today: Optional[date], config: PlanningConfig) -> str:
    return f"[{label} on {resolve_today(today).strftime(config.date_format)}] {reason.strip()}"


def postpone(
    session: Session,
    intervention_id: int,
    actor_id: Optional[int],
    new_date: Optional[date],
    reason: Optional[str],
    *,
    today: Optional[date] = None,
    config: Optional[PlanningConfig] = None,
) -> Intervention:
    """Move one visit to ``new_date`` and record why.

    Raises:
        ValidationError: missing target date or blank reason
        NotFound: intervention does not exist
        InvalidState: intervention is DONE or CANCELLED
    """
    config = config or get_config()
    if new_date is None:
        raise ValidationError("A new planned date is required")
    if not reason or not reason.strip():
        raise ValidationError("A postponement reason is required")

    intervention = _load(session, intervention_id)
    check_transition(intervention, InterventionStatus.POSTPONED)

    old = intervention.planned_date
    intervention.notes = merge_notes(
        intervention.notes, _stamp("Postponed", reason, today, config)
    )
    intervention.status = InterventionStatus.POSTPONED
    intervention.planned_date = new_date
    intervention.updated_by_id = actor_id
    session.flush()

    logger.info(f"Intervention {intervention.id} postponed: {old} → {new_date} ({reason.strip()})")
    return intervention


def schedule(
    session: Session,
    intervention_id: int,
    actor_id: Optional[int],
    planned_date: Optional[date] = None,
    planned_time: Optional[str] = None,
) -> Intervention:
    """Confirm a visit (→ SCHEDULED), optionally fixing its date and time."""
    if planned_time is not None and not _valid_time(planned_time):
        raise ValidationError(f"Invalid time '{planned_time}', expected {_TIME_FORMAT_HINT}")

    intervention = _load(session, intervention_id)
    check_transition(intervention, InterventionStatus.SCHEDULED)

    intervention.status = InterventionStatus.SCHEDULED
    if planned_date is not None:
        intervention.planned_date = planned_date
    if planned_time is not None:
        intervention.planned_time = planned_time
    intervention.updated_by_id = actor_id
    session.flush()

    logger.info(
        f"Intervention {intervention.id} scheduled for {intervention.planned_date}"
        f"{f' {intervention.planned_time}' if intervention.planned_time else ''}"
    )
    return intervention


def cancel(
    session: Session,
    intervention_id: int,
    actor_id: Optional[int],
    reason: Optional[str] = None,
    *,
    today: Optional[date] = None,
    config: Optional[PlanningConfig] = None,
) -> Intervention:
    """Cancel an open visit. Cancelled visits no longer count toward the series."""
    config = config or get_config()
    intervention = _load(session, intervention_id)
    check_transition(intervention, InterventionStatus.CANCELLED)

    if reason and reason.strip():
        intervention.notes = merge_notes(
            intervention.notes, _stamp("Cancelled", reason, today, config)
        )
    intervention.status = InterventionStatus.CANCELLED
    intervention.updated_by_id = actor_id
    session.flush()

    logger.info(f"Intervention {intervention.id} cancelled (reason: {reason or 'none'})")
    return intervention


def _valid_time(value: str) -> bool:
    parts = value.split(":")
    if len(parts) != 2 or not all(p.isdigit() and len(p) == 2 for p in parts):
        return False
    hours, minutes = int(parts[0]), int(parts[1])
    return 0 <= hours < 24 and 0 <= minutes < 60
