"""Tests for series locks and concurrent completions."""
import sys
import threading
from datetime import date
from pathlib import Path

import pytest
from sqlalchemy.orm import Session

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from modules.planning.completion import complete_intervention
from modules.planning.database import get_engine, init_db, session_scope
from modules.planning.locks import _lock_for, hold_series_lock, series_key
from modules.planning.models import Frequency, Intervention, InterventionKind, InterventionStatus
from tests.fixtures.planning import make_contract, make_intervention


class TestRegistry:

    def test_same_key_same_lock(self):
        key = series_key(1, 2, InterventionKind.REGULAR)
        assert _lock_for(key) is _lock_for(series_key(1, 2, "REGULAR"))

    @pytest.mark.parametrize("other", [
        (2, 2, InterventionKind.REGULAR),
        (1, None, InterventionKind.REGULAR),
        (1, 2, InterventionKind.INSPECTION),
    ])
    def test_different_keys_different_locks(self, other):
        assert _lock_for(series_key(1, 2, InterventionKind.REGULAR)) is not \
            _lock_for(series_key(*other))


class TestHeldUntilTransactionEnd:

    def test_released_on_commit(self, engine):
        lock = _lock_for(series_key(501, None, InterventionKind.REGULAR))
        with Session(engine) as session:
            session.begin()
            hold_series_lock(session, 501, None, InterventionKind.REGULAR)
            assert lock.locked()
            session.commit()
            assert not lock.locked()

    def test_released_on_rollback(self, engine):
        lock = _lock_for(series_key(502, None, InterventionKind.REGULAR))
        with Session(engine) as session:
            session.begin()
            hold_series_lock(session, 502, None, InterventionKind.REGULAR)
            session.rollback()
            assert not lock.locked()

    def test_reentrant_within_session(self, engine):
        lock = _lock_for(series_key(503, 1, InterventionKind.INSPECTION))
        with Session(engine) as session:
            session.begin()
            hold_series_lock(session, 503, 1, InterventionKind.INSPECTION)
            hold_series_lock(session, 503, 1, InterventionKind.INSPECTION)
            assert lock.locked()
        assert not lock.locked()

    def test_completions_in_one_session(self, session, monthly_contract):
        first = make_intervention(session, monthly_contract, date(2024, 3, 15))
        result = complete_intervention(session, first.id, 7)
        complete_intervention(session, result.next_intervention.id, 7)
        assert _lock_for(series_key(monthly_contract.id, None, "REGULAR")).locked()


class TestConcurrentCompletions:

    def test_one_follow_up_per_series(self, tmp_path, config):
        engine = get_engine(f"sqlite:///{tmp_path / 'concurrent.db'}", config=config)
        init_db(engine)
        with session_scope(engine) as session:
            contract = make_contract(session, regular_frequency=Frequency.MONTHLY)
            visit_ids = [
                make_intervention(session, contract, d).id
                for d in (date(2024, 3, 15), date(2024, 3, 16))
            ]

        barrier = threading.Barrier(len(visit_ids))
        results, errors = [], []

        def complete(intervention_id):
            try:
                barrier.wait()
                with session_scope(engine) as s:
                    results.append(complete_intervention(s, intervention_id, 7))
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=complete, args=(i,)) for i in visit_ids]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        assert errors == []
        assert sum(r.next_created for r in results) == 1
        with session_scope(engine) as session:
            rows = session.query(Intervention).all()
            assert len(rows) == 3
            assert sum(r.status == InterventionStatus.DONE for r in rows) == 2
            assert sum(r.status == InterventionStatus.TO_SCHEDULE for r in rows) == 1
        engine.dispose()
