"""Frequency resolution: site override first, contract defaults second.

Frequency and custom day count travel together from the most specific source
that sets a frequency; the max count and first date fall back on their own,
so a site that only sets a frequency still inherits the contract's count.
"""
from dataclasses import dataclass
from datetime import date
from typing import Optional

from .models import Contract, ContractSite, Frequency, InterventionKind

# Column prefix per recurring visit kind
_PREFIX = {
    InterventionKind.REGULAR: "regular",
    InterventionKind.INSPECTION: "inspection",
}


@dataclass(frozen=True)
class ResolvedRule:
    """Effective recurrence rule for one contract/site/kind."""
    frequency: Optional[Frequency] = None
    custom_days: Optional[int] = None
    max_count: Optional[int] = None

    @property
    def is_scheduled(self) -> bool:
        return self.frequency is not None


def first_defined(*values):
    """Return the first value that is not None (or None if all are)."""
    return next((v for v in values if v is not None), None)


def _sources(contract: Contract, site_id: Optional[int]) -> list:
    override = contract.site_override(site_id)
    return [override, contract] if override is not None else [contract]


def _prefix(kind: InterventionKind) -> str:
    try:
        return _PREFIX[InterventionKind(kind)]
    except KeyError:
        raise ValueError(f"{kind} visits have no recurrence rule") from None


def _pick(sources: list, attr: str):
    return first_defined(*(getattr(src, attr) for src in sources))


def _rule_source(sources: list, prefix: str):
    """The most specific source that sets a frequency for the kind."""
    return next(
        (src for src in sources if getattr(src, f"{prefix}_frequency") is not None),
        None,
    )


def resolve_rule(
    contract: Contract,
    kind: InterventionKind,
    site_id: Optional[int] = None,
) -> ResolvedRule:
    """Resolve (frequency, custom_days, max_count) for a visit kind.

    Frequency and custom days come from the same source; a site that sets
    only a frequency does not inherit the contract's day count.
    """
    prefix = _prefix(kind)
    sources = _sources(contract, site_id)
    rule_source = _rule_source(sources, prefix)
    if rule_source is None:
        return ResolvedRule(max_count=_pick(sources, f"{prefix}_count"))
    custom_days = getattr(rule_source, f"{prefix}_custom_days")
    return ResolvedRule(
        frequency=getattr(rule_source, f"{prefix}_frequency"),
        # Zero or negative day counts are treated as unset
        custom_days=custom_days if custom_days and custom_days > 0 else None,
        max_count=_pick(sources, f"{prefix}_count"),
    )


def resolve_first_date(
    contract: Contract,
    kind: InterventionKind,
    site_id: Optional[int] = None,
) -> Optional[date]:
    """First due date of a visit kind, site value first."""
    prefix = _prefix(kind)
    return _pick(_sources(contract, site_id), f"first_{prefix}_date")


def resolve_services(contract: Contract, site: Optional[ContractSite] = None) -> list[str]:
    """Service names for a scope. An empty site list counts as unset."""
    site_services = site.services if site is not None and site.services else None
    return list(first_defined(site_services, contract.services) or [])
