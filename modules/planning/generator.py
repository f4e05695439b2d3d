"""Initial planning of a newly activated contract.

For every scope (each ContractSite, or the contract itself when it has none)
and every recurring visit kind with a frequency and a first due date:

    count set (or ONE_OFF)  → exactly ``count`` occurrences
    RECURRING without count → occurrences up to the end date
                              (or today + horizon_days)

REGULAR occurrences are created once per service, INSPECTION once per date.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from .config import PlanningConfig, get_config
from .errors import InvalidState, NotFound
from .models import (
    Contract,
    ContractKind,
    ContractSite,
    ContractStatus,
    Intervention,
    InterventionKind,
    InterventionStatus,
    RECURRING_KINDS,
)
from .recurrence import iter_occurrences
from .resolver import (
    resolve_first_date,
    resolve_rule,
    resolve_services,
)
from .windows import resolve_today

logger = logging.getLogger(__name__)


@dataclass
class PlanResult:
    contract: Contract
    created_interventions: list[Intervention] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.created_interventions)


def _occurrence_count(contract: Contract, kind: InterventionKind,
                      site: Optional[ContractSite], max_count: Optional[int]) -> Optional[int]:
    """Bounded count for a kind, or None when the end date bounds it."""
    if max_count is not None and max_count > 0:
        return max_count
    if contract.kind != ContractKind.ONE_OFF:
        return None
    if kind == InterventionKind.INSPECTION and site is None:
        # Site-less one-off contracts inspect as often as they operate
        regular = resolve_rule(contract, InterventionKind.REGULAR).max_count
        if regular:
            return regular
    logger.warning(
        f"One-off contract {contract.id} has no {kind.value.lower()} count"
        f"{f' for site {site.site_id}' if site else ''}, nothing planned"
    )
    return 0


def _plan_scope(
    session: Session,
    contract: Contract,
    site: Optional[ContractSite],
    until: date,
    actor_id: Optional[int],
) -> list[Intervention]:
    site_id = site.site_id if site is not None else None
    services = resolve_services(contract, site)
    created = []

    for kind in RECURRING_KINDS:
        rule = resolve_rule(contract, kind, site_id)
        first = resolve_first_date(contract, kind, site_id)
        if not rule.is_scheduled or first is None:
            continue

        count = _occurrence_count(contract, kind, site, rule.max_count)
        if count == 0:
            continue

        labels = services if kind == InterventionKind.REGULAR else [None]
        for planned in iter_occurrences(
            first, rule.frequency, rule.custom_days,
            count=count, until=until,
        ):
            for label in labels:
                intervention = Intervention(
                    contract_id=contract.id,
                    client_id=contract.client_id,
                    site_id=site_id,
                    kind=kind,
                    service_label=label,
                    planned_date=planned,
                    status=InterventionStatus.TO_SCHEDULE,
                    created_by_id=actor_id,
                    updated_by_id=actor_id,
                )
                session.add(intervention)
                created.append(intervention)
                logger.debug(
                    f"Planned {kind.value} {planned} "
                    f"(contract={contract.id}, site={site_id}, service={label})"
                )
    return created


def generate_initial_plan(
    session: Session,
    contract_id: int,
    actor_id: Optional[int] = None,
    *,
    today: Optional[date] = None,
    config: Optional[PlanningConfig] = None,
) -> PlanResult:
    """Create the initial calendar of visits for an active contract.

    Args:
        session: SQLAlchemy session (caller manages commit)
        contract_id: Contract.id to plan
        actor_id: user recorded as creator of the visits
        today: reference day for the default horizon

    Raises:
        NotFound: contract does not exist
        InvalidState: contract is not ACTIVE
    """
    config = config or get_config()
    contract = session.get(
        Contract, contract_id, options=[selectinload(Contract.sites)]
    )
    if contract is None:
        raise NotFound("Contract", contract_id)
    if contract.status != ContractStatus.ACTIVE:
        raise InvalidState(
            f"Only active contracts can be planned "
            f"(contract {contract_id} is '{contract.status.value}')"
        )

    until = contract.end_date or resolve_today(today) + timedelta(days=config.horizon_days)
    scopes = list(contract.sites) or [None]

    result = PlanResult(contract=contract)
    for site in scopes:
        result.created_interventions.extend(
            _plan_scope(session, contract, site, until, actor_id)
        )
    session.flush()

    logger.info(
        f"Initial plan for contract {contract.id}: {result.count} interventions "
        f"over {len(scopes)} scope(s), until {until}"
    )
    return result
