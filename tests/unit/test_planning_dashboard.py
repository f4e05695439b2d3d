"""Tests for dashboard windows, stats and serialization."""
import sys
from datetime import date
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from modules.planning.dashboard import (
    get_dashboard_stats,
    intervention_to_dict,
    list_current_week,
    list_due_within,
    list_overdue,
)
from modules.planning.models import ContractKind, InterventionKind, InterventionStatus as S
from modules.planning.windows import due_window, is_overdue, resolve_today, week_bounds
from tests.fixtures.planning import make_contract, make_intervention

# Wednesday
TODAY = date(2024, 6, 5)


class TestWindows:

    def test_due_window_inclusive(self):
        assert due_window(7, TODAY) == (TODAY, date(2024, 6, 12))

    def test_week_bounds(self):
        assert week_bounds(TODAY) == (date(2024, 6, 3), date(2024, 6, 9))
        assert week_bounds(date(2024, 6, 3)) == (date(2024, 6, 3), date(2024, 6, 9))
        assert week_bounds(date(2024, 6, 9)) == (date(2024, 6, 3), date(2024, 6, 9))

    def test_is_overdue(self):
        assert is_overdue(date(2024, 6, 4), TODAY)
        assert not is_overdue(TODAY, TODAY)

    def test_resolve_today_default(self):
        assert resolve_today() == date.today()


class TestDueWithin:

    def test_window_and_status(self, session, monthly_contract, config):
        make_intervention(session, monthly_contract, date(2024, 6, 4))
        in_window = [
            make_intervention(session, monthly_contract, date(2024, 6, 12)),
            make_intervention(session, monthly_contract, TODAY),
        ]
        make_intervention(session, monthly_contract, date(2024, 6, 13))
        make_intervention(session, monthly_contract, date(2024, 6, 6), status=S.SCHEDULED)
        make_intervention(session, monthly_contract, date(2024, 6, 6), status=S.POSTPONED)

        result = list_due_within(session, today=TODAY, config=config)
        assert [i.id for i in result] == [in_window[1].id, in_window[0].id]

    def test_explicit_days(self, session, monthly_contract, config):
        visit = make_intervention(session, monthly_contract, date(2024, 6, 20))
        assert list_due_within(session, 7, TODAY, config) == []
        assert list_due_within(session, 15, TODAY, config) == [visit]


class TestOverdue:

    def test_open_past_visits(self, session, monthly_contract):
        late = make_intervention(session, monthly_contract, date(2024, 5, 1))
        postponed = make_intervention(session, monthly_contract, date(2024, 6, 1),
                                      status=S.POSTPONED)
        make_intervention(session, monthly_contract, date(2024, 5, 2), status=S.DONE)
        make_intervention(session, monthly_contract, date(2024, 5, 3), status=S.CANCELLED)
        make_intervention(session, monthly_contract, TODAY)

        assert list_overdue(session, TODAY) == [late, postponed]


class TestCurrentWeek:

    def test_any_status_ordered_by_time(self, session, monthly_contract):
        untimed = make_intervention(session, monthly_contract, date(2024, 6, 4))
        afternoon = make_intervention(session, monthly_contract, date(2024, 6, 4),
                                      planned_time="14:00", status=S.DONE)
        morning = make_intervention(session, monthly_contract, date(2024, 6, 4),
                                    planned_time="08:00", status=S.SCHEDULED)
        sunday = make_intervention(session, monthly_contract, date(2024, 6, 9),
                                   status=S.CANCELLED)
        monday = make_intervention(session, monthly_contract, date(2024, 6, 3))
        make_intervention(session, monthly_contract, date(2024, 6, 2))
        make_intervention(session, monthly_contract, date(2024, 6, 10))

        result = list_current_week(session, TODAY)
        assert result == [monday, morning, afternoon, untimed, sunday]


class TestStats:

    def test_counters(self, session, config):
        contract = make_contract(session)
        make_intervention(session, contract, date(2024, 6, 7))
        make_intervention(session, contract, date(2024, 6, 8))
        make_intervention(session, contract, date(2024, 6, 1))
        make_intervention(session, contract, date(2024, 6, 20), kind=InterventionKind.INSPECTION)
        make_intervention(session, contract, date(2024, 7, 20), kind=InterventionKind.INSPECTION)
        make_intervention(session, contract, date(2024, 6, 21), kind=InterventionKind.INSPECTION,
                          status=S.DONE)

        make_contract(session)
        one_off = make_contract(session, kind=ContractKind.ONE_OFF)
        make_intervention(session, one_off, date(2024, 6, 30), status=S.SCHEDULED)

        stats = get_dashboard_stats(session, TODAY, config)
        assert stats == {
            "due_soon_count": 2,
            "overdue_count": 1,
            "upcoming_inspections_30d": 1,
            "contracts_needing_attention_count": 1,
            "one_off_almost_done_count": 1,
        }

    def test_empty_database(self, session, config):
        assert set(get_dashboard_stats(session, TODAY, config).values()) == {0}

    def test_window_sizes_from_config(self, session, config):
        contract = make_contract(session)
        make_intervention(session, contract, date(2024, 6, 15))
        config.due_soon_days = 14
        assert get_dashboard_stats(session, TODAY, config)["due_soon_count"] == 1


class TestInterventionToDict:

    def test_serializes_fields(self, session, monthly_contract):
        visit = make_intervention(session, monthly_contract, date(2024, 6, 1),
                                  site_id=3, service_label="Rodent control",
                                  planned_time="10:15", notes="Back door")
        data = intervention_to_dict(visit, TODAY)

        assert data["id"] == visit.id
        assert data["contract_id"] == monthly_contract.id
        assert data["kind"] == "REGULAR"
        assert data["status"] == "TO_SCHEDULE"
        assert data["planned_date"] == "2024-06-01"
        assert data["planned_time"] == "10:15"
        assert data["completed_date"] is None
        assert data["overdue"] is True
        assert data["notes"] == "Back door"

    def test_closed_visits_never_overdue(self, session, monthly_contract):
        visit = make_intervention(session, monthly_contract, date(2024, 6, 1),
                                  status=S.DONE, completed_date=date(2024, 6, 1))
        data = intervention_to_dict(visit, TODAY)
        assert data["overdue"] is False
        assert data["completed_date"] == "2024-06-01"
