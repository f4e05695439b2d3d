"""SQLAlchemy 2.0 models for the service planning engine.

Four tables:
- contracts:             client agreements with default visit rules
- contract_sites:        per-site overrides of a contract's rules
- interventions:         scheduled or completed field visits
- intervention_history:  audit trail for visit status/date changes

Clients, sites and users are owned by the CRUD layer and referenced by id only.
"""
import enum
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
    event,
    inspect,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    Session,
    mapped_column,
    relationship,
)


class Base(DeclarativeBase):
    """Shared declarative base for all planning models."""
    pass


# --- Enums ---


class ContractKind(str, enum.Enum):
    RECURRING = "RECURRING"   # Running contract, bounded by end date or count
    ONE_OFF = "ONE_OFF"       # Fixed number of purchased visits


class ContractStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    ENDED = "ENDED"
    CANCELLED = "CANCELLED"


class Frequency(str, enum.Enum):
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    SEMIANNUAL = "SEMIANNUAL"
    ANNUAL = "ANNUAL"
    CUSTOM = "CUSTOM"         # Day count taken from *_custom_days


class InterventionKind(str, enum.Enum):
    REGULAR = "REGULAR"                    # Service execution
    INSPECTION = "INSPECTION"              # Periodic quality check
    COMPLAINT = "COMPLAINT"                # Ad-hoc call-out
    FIRST_VISIT = "FIRST_VISIT"            # Commercial first visit
    COMMERCIAL_VISIT = "COMMERCIAL_VISIT"  # Commercial site visit


# Kinds that never drive recurrence
OUT_OF_CONTRACT_KINDS = frozenset({
    InterventionKind.COMPLAINT,
    InterventionKind.FIRST_VISIT,
    InterventionKind.COMMERCIAL_VISIT,
})

RECURRING_KINDS = (InterventionKind.REGULAR, InterventionKind.INSPECTION)


class InterventionStatus(str, enum.Enum):
    TO_SCHEDULE = "TO_SCHEDULE"
    SCHEDULED = "SCHEDULED"
    DONE = "DONE"
    POSTPONED = "POSTPONED"
    CANCELLED = "CANCELLED"


CLOSED_STATUSES = (InterventionStatus.DONE, InterventionStatus.CANCELLED)
QUEUED_STATUSES = (InterventionStatus.TO_SCHEDULE, InterventionStatus.SCHEDULED)


def _enum(enum_cls):
    return Enum(enum_cls, native_enum=False, length=20,
                values_callable=lambda e: [m.value for m in e])


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --- Models ---


class Contract(Base):
    """A client agreement with its default rules for regular and inspection visits."""
    __tablename__ = "contracts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    client_id: Mapped[int] = mapped_column(Integer, nullable=False)
    kind: Mapped[ContractKind] = mapped_column(
        _enum(ContractKind), nullable=False, default=ContractKind.RECURRING
    )
    status: Mapped[ContractStatus] = mapped_column(
        _enum(ContractStatus), nullable=False, default=ContractStatus.ACTIVE
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    services: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    purchase_order_number: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Regular visits
    regular_frequency: Mapped[Optional[Frequency]] = mapped_column(
        _enum(Frequency), nullable=True
    )
    regular_custom_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    regular_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    first_regular_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # Inspection visits
    inspection_frequency: Mapped[Optional[Frequency]] = mapped_column(
        _enum(Frequency), nullable=True
    )
    inspection_custom_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    inspection_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    first_inspection_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    auto_create_next: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    sites: Mapped[list["ContractSite"]] = relationship(
        back_populates="contract",
        cascade="all, delete-orphan",
        order_by="ContractSite.id",
    )
    interventions: Mapped[list["Intervention"]] = relationship(
        back_populates="contract",
        order_by="Intervention.planned_date",
    )

    __table_args__ = (
        Index("ix_contracts_status", "status"),
        Index("ix_contracts_client", "client_id"),
    )

    def site_override(self, site_id: Optional[int]) -> Optional["ContractSite"]:
        """Return the ContractSite for site_id, if one is attached."""
        if site_id is None:
            return None
        return next((cs for cs in self.sites if cs.site_id == site_id), None)

    def __repr__(self) -> str:
        return (
            f"<Contract(id={self.id}, kind='{self.kind.value if self.kind else None}', "
            f"status='{self.status.value if self.status else None}', "
            f"start={self.start_date}, end={self.end_date})>"
        )


class ContractSite(Base):
    """Per-site override of a contract's rules. Unset columns fall back to the contract."""
    __tablename__ = "contract_sites"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    contract_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False
    )
    site_id: Mapped[int] = mapped_column(Integer, nullable=False)
    services: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)

    regular_frequency: Mapped[Optional[Frequency]] = mapped_column(
        _enum(Frequency), nullable=True
    )
    regular_custom_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    regular_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    first_regular_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    inspection_frequency: Mapped[Optional[Frequency]] = mapped_column(
        _enum(Frequency), nullable=True
    )
    inspection_custom_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    inspection_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    first_inspection_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    contract: Mapped["Contract"] = relationship(back_populates="sites")

    __table_args__ = (
        UniqueConstraint("contract_id", "site_id", name="uq_contract_site"),
    )

    def __repr__(self) -> str:
        return f"<ContractSite(contract_id={self.contract_id}, site_id={self.site_id})>"


class Intervention(Base):
    """One scheduled or completed visit.

    Once DONE, planned_date is kept equal to completed_date.
    """
    __tablename__ = "interventions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    contract_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("contracts.id", ondelete="SET NULL"), nullable=True
    )
    client_id: Mapped[int] = mapped_column(Integer, nullable=False)
    site_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    kind: Mapped[InterventionKind] = mapped_column(
        _enum(InterventionKind), nullable=False, default=InterventionKind.REGULAR
    )
    service_label: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    planned_date: Mapped[date] = mapped_column(Date, nullable=False)
    planned_time: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)  # HH:MM
    duration_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    status: Mapped[InterventionStatus] = mapped_column(
        _enum(InterventionStatus), nullable=False, default=InterventionStatus.TO_SCHEDULE
    )
    completed_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_by_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    updated_by_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=_utcnow, onupdate=_utcnow
    )

    contract: Mapped[Optional["Contract"]] = relationship(back_populates="interventions")
    history: Mapped[list["InterventionHistory"]] = relationship(
        back_populates="intervention",
        cascade="all, delete-orphan",
        order_by="InterventionHistory.id",
    )

    # Indexes for the series and window queries
    __table_args__ = (
        Index("ix_interventions_series", "contract_id", "site_id", "kind"),
        Index("ix_interventions_planned", "planned_date"),
        Index("ix_interventions_status", "status"),
    )

    @property
    def is_closed(self) -> bool:
        return self.status in CLOSED_STATUSES

    def __repr__(self) -> str:
        return (
            f"<Intervention(id={self.id}, contract={self.contract_id}, "
            f"site={self.site_id}, kind='{self.kind.value if self.kind else None}', "
            f"date={self.planned_date}, "
            f"status='{self.status.value if self.status else None}')>"
        )


class InterventionHistory(Base):
    """Audit trail: tracks status and date changes on interventions."""
    __tablename__ = "intervention_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    intervention_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("interventions.id", ondelete="CASCADE"), nullable=False
    )
    field_changed: Mapped[str] = mapped_column(Text, nullable=False)
    old_value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    new_value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    changed_by_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    changed_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=_utcnow
    )

    intervention: Mapped["Intervention"] = relationship(back_populates="history")

    __table_args__ = (
        Index("ix_intervention_history_iid", "intervention_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<InterventionHistory(intervention_id={self.intervention_id}, "
            f"field='{self.field_changed}', "
            f"'{self.old_value}' → '{self.new_value}')>"
        )


# ---------------------------------------------------------------------------
# Auto-history via SQLAlchemy event listeners
# ---------------------------------------------------------------------------
TRACKED_FIELDS = ("status", "planned_date", "completed_date", "notes")


def _as_text(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def track_intervention_changes(session: Session) -> list[InterventionHistory]:
    """Collect history entries for dirty Intervention objects.

    Registered on SessionEvents.before_flush; only persisted rows are tracked.
    """
    changes = []
    for obj in session.dirty:
        if not isinstance(obj, Intervention):
            continue
        state = inspect(obj)
        for attr in TRACKED_FIELDS:
            hist = state.attrs[attr].history
            if not hist.has_changes():
                continue
            old = hist.deleted[0] if hist.deleted else None
            new = hist.added[0] if hist.added else None
            if _as_text(old) == _as_text(new):
                continue
            changes.append(InterventionHistory(
                intervention_id=obj.id,
                field_changed=attr,
                old_value=_as_text(old),
                new_value=_as_text(new),
                changed_by_id=obj.updated_by_id,
            ))
    if changes:
        session.add_all(changes)
    return changes


@event.listens_for(Session, "before_flush")
def _before_flush_track_changes(session, flush_context, instances):
    """Automatically create history entries during flush."""
    track_intervention_changes(session)
