# Planning Test Fixtures
# Used by test_planning_*.py

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from modules.planning.models import (
    Contract,
    ContractKind,
    ContractSite,
    ContractStatus,
    Intervention,
    InterventionKind,
    InterventionStatus,
)


def make_contract(
    session: Session,
    kind: ContractKind = ContractKind.RECURRING,
    status: ContractStatus = ContractStatus.ACTIVE,
    start_date: date = date(2024, 1, 1),
    end_date: Optional[date] = None,
    services: Optional[list] = None,
    client_id: int = 100,
    **rules,
) -> Contract:
    """Create a contract. ``rules`` are the regular_*/inspection_* columns."""
    contract = Contract(
        client_id=client_id,
        kind=kind,
        status=status,
        start_date=start_date,
        end_date=end_date,
        services=services if services is not None else ["Rodent control"],
        auto_create_next=rules.pop("auto_create_next", True),
        **rules,
    )
    session.add(contract)
    session.flush()
    return contract


def make_site(session: Session, contract: Contract, site_id: int, **rules) -> ContractSite:
    """Attach a site override to a contract."""
    cs = ContractSite(contract=contract, site_id=site_id, **rules)
    session.add(cs)
    session.flush()
    return cs


def make_intervention(
    session: Session,
    contract: Optional[Contract],
    planned_date: date,
    kind: InterventionKind = InterventionKind.REGULAR,
    status: InterventionStatus = InterventionStatus.TO_SCHEDULE,
    site_id: Optional[int] = None,
    client_id: int = 100,
    **fields,
) -> Intervention:
    intervention = Intervention(
        contract_id=contract.id if contract is not None else None,
        client_id=contract.client_id if contract is not None else client_id,
        site_id=site_id,
        kind=kind,
        planned_date=planned_date,
        status=status,
        **fields,
    )
    session.add(intervention)
    session.flush()
    return intervention


def series_dates(session: Session, contract: Contract, kind=InterventionKind.REGULAR,
                 site_id: Optional[int] = None) -> list[date]:
    """Planned dates of one series, oldest first."""
    query = session.query(Intervention).filter(
        Intervention.contract_id == contract.id,
        Intervention.kind == kind,
    )
    if site_id is None:
        query = query.filter(Intervention.site_id.is_(None))
    else:
        query = query.filter(Intervention.site_id == site_id)
    return [i.planned_date for i in query.order_by(Intervention.planned_date).all()]
