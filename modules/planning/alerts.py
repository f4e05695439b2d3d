"""Anti-forgetting alerts.

Three read-only checks over active contracts:
- CONTRACT_WITHOUT_VISIT:  nothing queued from today on
- ONE_OFF_LAST_VISIT:      one-off contract with a single open regular visit left
- CONTRACT_PAST_END_DATE:  recurring contract with visits queued after its end date
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy import and_, exists, func, select
from sqlalchemy.orm import Session

from .models import (
    CLOSED_STATUSES,
    Contract,
    ContractKind,
    ContractStatus,
    Intervention,
    InterventionKind,
    QUEUED_STATUSES,
)
from .windows import resolve_today

logger = logging.getLogger(__name__)

ALERT_WITHOUT_VISIT = "CONTRACT_WITHOUT_VISIT"
ALERT_ONE_OFF_LAST = "ONE_OFF_LAST_VISIT"
ALERT_PAST_END_DATE = "CONTRACT_PAST_END_DATE"


@dataclass
class PastEndDateAlert:
    contract: Contract
    count: int
    earliest_date: date


def list_contracts_without_future_visit(
    session: Session,
    today: Optional[date] = None,
) -> list[Contract]:
    """Active contracts with no TO_SCHEDULE/SCHEDULED visit on or after today."""
    ref = resolve_today(today)
    queued = exists().where(
        Intervention.contract_id == Contract.id,
        Intervention.status.in_(QUEUED_STATUSES),
        Intervention.planned_date >= ref,
    )
    return list(session.scalars(
        select(Contract)
        .where(Contract.status == ContractStatus.ACTIVE, ~queued)
        .order_by(Contract.id)
    ).all())


def list_one_off_nearing_completion(session: Session) -> list[Contract]:
    """Active one-off contracts with exactly one open REGULAR visit."""
    open_regular = (
        select(Intervention.contract_id, func.count(Intervention.id).label("remaining"))
        .where(
            Intervention.kind == InterventionKind.REGULAR,
            Intervention.status.not_in(CLOSED_STATUSES),
        )
        .group_by(Intervention.contract_id)
        .subquery()
    )
    return list(session.scalars(
        select(Contract)
        .join(open_regular, open_regular.c.contract_id == Contract.id)
        .where(
            Contract.status == ContractStatus.ACTIVE,
            Contract.kind == ContractKind.ONE_OFF,
            open_regular.c.remaining == 1,
        )
        .order_by(Contract.id)
    ).all())


def list_contracts_past_end_date(session: Session) -> list[PastEndDateAlert]:
    """Recurring contracts with queued visits after their end date.

    Grouped per contract, earliest offending date first.
    """
    rows = session.execute(
        select(
            Contract,
            func.count(Intervention.id),
            func.min(Intervention.planned_date),
        )
        .join(Intervention, and_(
            Intervention.contract_id == Contract.id,
            Intervention.planned_date > Contract.end_date,
        ))
        .where(
            Contract.kind == ContractKind.RECURRING,
            Contract.end_date.is_not(None),
            Intervention.status.in_(QUEUED_STATUSES),
        )
        .group_by(Contract.id)
        .order_by(func.min(Intervention.planned_date), Contract.id)
    ).all()
    return [
        PastEndDateAlert(contract=contract, count=count, earliest_date=earliest)
        for contract, count, earliest in rows
    ]


def _contract_fields(contract: Contract) -> dict:
    return {
        "contract_id": contract.id,
        "client_id": contract.client_id,
        "start_date": contract.start_date.isoformat() if contract.start_date else None,
        "end_date": contract.end_date.isoformat() if contract.end_date else None,
        "services": list(contract.services or []),
    }


def collect_alerts(session: Session, today: Optional[date] = None) -> list[dict]:
    """All alerts as display records, grouped by type."""
    alerts = []
    for contract in list_contracts_without_future_visit(session, today):
        alerts.append({
            "id": f"without-visit-{contract.id}",
            "type": ALERT_WITHOUT_VISIT,
            "message": f"Contract {contract.id} has no future intervention planned",
            **_contract_fields(contract),
        })

    for contract in list_one_off_nearing_completion(session):
        alerts.append({
            "id": f"one-off-{contract.id}",
            "type": ALERT_ONE_OFF_LAST,
            "message": f"Last remaining visit on one-off contract {contract.id}",
            "purchase_order_number": contract.purchase_order_number,
            **_contract_fields(contract),
        })

    for alert in list_contracts_past_end_date(session):
        alerts.append({
            "id": f"past-end-{alert.contract.id}",
            "type": ALERT_PAST_END_DATE,
            "message": (
                f"{alert.count} intervention(s) planned after the end date "
                f"of contract {alert.contract.id}"
            ),
            "count": alert.count,
            "next_date": alert.earliest_date.isoformat(),
            **_contract_fields(alert.contract),
        })

    logger.info(f"Alerts: {len(alerts)} raised")
    return alerts
