"""Service Planning Engine.

Recurrence and anti-forgetting scheduling for pest-control service contracts:
initial calendar generation, completion-driven follow-ups, postponements,
dashboard windows and contract alerts.

Every operation takes an SQLAlchemy session and only flushes; wrap calls in
``session_scope`` (or the caller's own transaction) to commit them.
"""

from .models import (
    Base,
    Contract,
    ContractKind,
    ContractSite,
    ContractStatus,
    Frequency,
    Intervention,
    InterventionHistory,
    InterventionKind,
    InterventionStatus,
)
from .errors import PlanningError, NotFound, InvalidState, ValidationError
from .config import PlanningConfig, get_config, load_config, reload_config
from .database import get_engine, session_scope, init_db
from .recurrence import next_occurrence, iter_occurrences
from .resolver import ResolvedRule, first_defined, resolve_rule
from .generator import PlanResult, generate_initial_plan
from .completion import CompletionResult, complete_intervention
from .reschedule import postpone, schedule, cancel
from .alerts import (
    PastEndDateAlert,
    list_contracts_without_future_visit,
    list_one_off_nearing_completion,
    list_contracts_past_end_date,
    collect_alerts,
)
from .dashboard import (
    list_due_within,
    list_overdue,
    list_current_week,
    get_dashboard_stats,
)

__all__ = [
    # Models
    "Base",
    "Contract",
    "ContractKind",
    "ContractSite",
    "ContractStatus",
    "Frequency",
    "Intervention",
    "InterventionHistory",
    "InterventionKind",
    "InterventionStatus",
    # Errors
    "PlanningError",
    "NotFound",
    "InvalidState",
    "ValidationError",
    # Config / database
    "PlanningConfig",
    "get_config",
    "load_config",
    "reload_config",
    "get_engine",
    "session_scope",
    "init_db",
    # Recurrence
    "next_occurrence",
    "iter_occurrences",
    "ResolvedRule",
    "first_defined",
    "resolve_rule",
    # Operations
    "PlanResult",
    "generate_initial_plan",
    "CompletionResult",
    "complete_intervention",
    "postpone",
    "schedule",
    "cancel",
    # Alerts
    "PastEndDateAlert",
    "list_contracts_without_future_visit",
    "list_one_off_nearing_completion",
    "list_contracts_past_end_date",
    "collect_alerts",
    # Dashboard
    "list_due_within",
    "list_overdue",
    "list_current_week",
    "get_dashboard_stats",
]
