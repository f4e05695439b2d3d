"""Completion handler: the anti-forgetting core.

Marking a visit done on its actual date drives the rest of its series
(same contract, site and kind):

    1. visit → DONE, planned_date = completed_date = actual date
    2. suggested next date = actual date + one period
    3. other queued visits after the old planned date shift by the same delta
    4. the next queued visit is retargeted to the suggested date,
       or a new one is created while the series is below its max count

Steps 3-4 only run when the contract auto-creates follow-ups or the caller
asks for one (``create_next``).
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .errors import NotFound
from .lifecycle import check_transition
from .locks import hold_series_lock
from .models import (
    CLOSED_STATUSES,
    Contract,
    Intervention,
    InterventionStatus,
    OUT_OF_CONTRACT_KINDS,
)
from .recurrence import next_occurrence
from .resolver import resolve_rule

logger = logging.getLogger(__name__)

# skipped_reason values
SKIP_OUT_OF_CONTRACT = "out_of_contract"
SKIP_NO_FREQUENCY = "no_frequency"
SKIP_MANUAL_FOLLOW_UP = "manual_follow_up"
SKIP_MAX_COUNT = "max_count_reached"


@dataclass
class CompletionResult:
    intervention: Intervention
    next_created: bool = False
    next_intervention: Optional[Intervention] = None
    suggested_date: Optional[date] = None
    operations_remaining: Optional[int] = None
    shifted: list[Intervention] = field(default_factory=list)
    skipped_reason: Optional[str] = None


def merge_notes(existing: Optional[str], addition: Optional[str]) -> Optional[str]:
    """Append a line to free-text notes."""
    if not addition:
        return existing
    if not existing:
        return addition
    return f"{existing}\n{addition}"


def _series_filter(intervention: Intervention) -> list:
    site_clause = (
        Intervention.site_id.is_(None)
        if intervention.site_id is None
        else Intervention.site_id == intervention.site_id
    )
    return [
        Intervention.contract_id == intervention.contract_id,
        site_clause,
        Intervention.kind == intervention.kind,
        Intervention.id != intervention.id,
    ]


def _open_series(intervention: Intervention) -> list:
    return _series_filter(intervention) + [Intervention.status.not_in(CLOSED_STATUSES)]


def _shift_series(session: Session, intervention: Intervention,
                  planned_before: date, effective: date, actor_id) -> list[Intervention]:
    """Move queued visits planned after ``planned_before`` by the completion delta."""
    delta = effective - planned_before
    futures = session.scalars(
        select(Intervention)
        .where(*_open_series(intervention), Intervention.planned_date > planned_before)
        .order_by(Intervention.planned_date)
    ).all()
    for other in futures:
        old = other.planned_date
        other.planned_date = old + delta
        other.updated_by_id = actor_id
        logger.debug(f"Shifted intervention {other.id}: {old} → {other.planned_date}")
    return list(futures)


def _count_series(session: Session, intervention: Intervention) -> int:
    """Non-cancelled visits of the series, the completed one included."""
    filters = _series_filter(intervention)[:-1]
    return session.scalar(
        select(func.count(Intervention.id)).where(
            *filters, Intervention.status != InterventionStatus.CANCELLED
        )
    )


def _remaining(session: Session, intervention: Intervention,
               max_count: Optional[int]) -> Optional[int]:
    if max_count is None:
        return None
    return max(max_count - _count_series(session, intervention), 0)


def complete_intervention(
    session: Session,
    intervention_id: int,
    actor_id: Optional[int],
    *,
    actual_date: Optional[date] = None,
    create_next: bool = False,
    notes: Optional[str] = None,
) -> CompletionResult:
    """Mark an intervention done and schedule its follow-up.

    Args:
        session: SQLAlchemy session (caller manages commit)
        intervention_id: Intervention.id to complete
        actor_id: user completing the visit
        actual_date: day the visit really happened (default: planned date)
        create_next: materialize the follow-up even if the contract
            does not auto-create
        notes: field notes appended to the existing ones

    Raises:
        NotFound: intervention does not exist
        InvalidState: intervention is already DONE or CANCELLED
    """
    intervention = session.get(Intervention, intervention_id)
    if intervention is None:
        raise NotFound("Intervention", intervention_id)

    if intervention.contract_id is not None:
        # Held until the caller's transaction ends
        hold_series_lock(session, intervention.contract_id, intervention.site_id,
                         intervention.kind)
        # A completion that held the lock before us may have moved or closed it
        session.refresh(intervention)
    check_transition(intervention, InterventionStatus.DONE)

    if intervention.contract_id is None:
        _mark_done(intervention, actual_date, actor_id, notes)
        session.flush()
        logger.info(f"Intervention {intervention.id} done (no contract)")
        return CompletionResult(intervention=intervention,
                                skipped_reason=SKIP_OUT_OF_CONTRACT)

    # Row lock on the contract until the caller's transaction ends
    contract = session.scalars(
        select(Contract)
        .where(Contract.id == intervention.contract_id)
        .with_for_update()
    ).one()
    result = _complete_locked(
        session, intervention, contract, actor_id,
        actual_date=actual_date, create_next=create_next, notes=notes,
    )
    session.flush()

    logger.info(
        f"Intervention {intervention.id} done on {intervention.completed_date}: "
        f"suggested={result.suggested_date}, next_created={result.next_created}, "
        f"next={result.next_intervention.id if result.next_intervention else None}, "
        f"shifted={len(result.shifted)}, skipped={result.skipped_reason}"
    )
    return result


def _mark_done(intervention: Intervention, actual_date: Optional[date],
               actor_id, notes: Optional[str]) -> date:
    effective = actual_date or intervention.planned_date
    intervention.status = InterventionStatus.DONE
    intervention.completed_date = effective
    intervention.planned_date = effective
    intervention.notes = merge_notes(intervention.notes, notes)
    intervention.updated_by_id = actor_id
    return effective


def _complete_locked(
    session: Session,
    intervention: Intervention,
    contract: Contract,
    actor_id,
    *,
    actual_date: Optional[date],
    create_next: bool,
    notes: Optional[str],
) -> CompletionResult:
    planned_before = intervention.planned_date
    effective = _mark_done(intervention, actual_date, actor_id, notes)
    result = CompletionResult(intervention=intervention)

    if intervention.kind in OUT_OF_CONTRACT_KINDS:
        result.skipped_reason = SKIP_OUT_OF_CONTRACT
        return result

    rule = resolve_rule(contract, intervention.kind, intervention.site_id)
    if not rule.is_scheduled:
        result.skipped_reason = SKIP_NO_FREQUENCY
        return result

    result.suggested_date = next_occurrence(effective, rule.frequency, rule.custom_days)

    if not (contract.auto_create_next or create_next):
        # Suggestion only; the contract alerts catch a series left empty
        result.skipped_reason = SKIP_MANUAL_FOLLOW_UP
        result.operations_remaining = _remaining(session, intervention, rule.max_count)
        return result

    if effective != planned_before:
        result.shifted = _shift_series(session, intervention, planned_before,
                                       effective, actor_id)
        session.flush()

    next_existing = session.scalars(
        select(Intervention)
        .where(*_open_series(intervention), Intervention.planned_date > effective)
        .order_by(Intervention.planned_date, Intervention.id)
        .limit(1)
    ).first()

    if next_existing is not None:
        if next_existing.planned_date != result.suggested_date:
            logger.debug(
                f"Retargeted intervention {next_existing.id}: "
                f"{next_existing.planned_date} → {result.suggested_date}"
            )
            next_existing.planned_date = result.suggested_date
            next_existing.updated_by_id = actor_id
        result.next_intervention = next_existing
        result.operations_remaining = _remaining(session, intervention, rule.max_count)
        return result

    if rule.max_count is not None and _count_series(session, intervention) >= rule.max_count:
        result.skipped_reason = SKIP_MAX_COUNT
        result.operations_remaining = 0
        return result

    follow_up = Intervention(
        contract_id=intervention.contract_id,
        client_id=intervention.client_id,
        site_id=intervention.site_id,
        kind=intervention.kind,
        service_label=intervention.service_label,
        planned_date=result.suggested_date,
        planned_time=intervention.planned_time,
        duration_minutes=intervention.duration_minutes,
        status=InterventionStatus.TO_SCHEDULE,
        created_by_id=actor_id,
        updated_by_id=actor_id,
    )
    session.add(follow_up)
    session.flush()

    result.next_created = True
    result.next_intervention = follow_up
    result.operations_remaining = _remaining(session, intervention, rule.max_count)
    return result
