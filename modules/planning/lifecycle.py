"""Intervention status state machine.

Status Flow:
    TO_SCHEDULE → SCHEDULED → DONE
         ↓  ↑        ↓  ↑
         POSTPONED ──┘  (loops back to SCHEDULED / TO_SCHEDULE)
    any open status → CANCELLED

DONE and CANCELLED are terminal.
"""
from .errors import InvalidState
from .models import Intervention, InterventionStatus

S = InterventionStatus

ALLOWED_TRANSITIONS = {
    S.TO_SCHEDULE: {S.SCHEDULED, S.POSTPONED, S.DONE, S.CANCELLED},
    S.SCHEDULED: {S.SCHEDULED, S.POSTPONED, S.DONE, S.CANCELLED},
    S.POSTPONED: {S.TO_SCHEDULE, S.SCHEDULED, S.POSTPONED, S.DONE, S.CANCELLED},
    S.DONE: set(),
    S.CANCELLED: set(),
}


def can_transition(current: InterventionStatus, target: InterventionStatus) -> bool:
    return InterventionStatus(target) in ALLOWED_TRANSITIONS[InterventionStatus(current)]


def check_transition(intervention: Intervention, target: InterventionStatus) -> None:
    """Raise InvalidState unless the intervention may move to ``target``."""
    if not can_transition(intervention.status, target):
        raise InvalidState(
            f"Intervention {intervention.id}: cannot go from "
            f"'{intervention.status.value}' to '{InterventionStatus(target).value}'"
        )
