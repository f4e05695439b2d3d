"""
Planning Test Configuration

Shared fixtures for all tests.
"""
import sys
from datetime import date
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from modules.planning.config import PlanningConfig
from modules.planning.models import Base, Contract, Frequency
from tests.fixtures.planning import make_contract


# =============================================================================
# FIXTURES: Database
# =============================================================================

@pytest.fixture
def engine():
    eng = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s


# =============================================================================
# FIXTURES: Configuration
# =============================================================================

@pytest.fixture
def config() -> PlanningConfig:
    return PlanningConfig(database_url="sqlite:///:memory:")


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keep real config files and env overrides out of the tests."""
    import modules.planning.config as config_mod

    monkeypatch.setenv("PLANNING_CONFIG_PATH", str(tmp_path / "missing.yml"))
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setattr(config_mod, "_config", None)
    yield


# =============================================================================
# FIXTURES: Contracts
# =============================================================================

@pytest.fixture
def monthly_contract(session) -> Contract:
    """Recurring monthly contract for 2024, auto-creating follow-ups, no count."""
    return make_contract(
        session,
        regular_frequency=Frequency.MONTHLY,
        first_regular_date=date(2024, 1, 15),
        end_date=date(2024, 12, 31),
    )
