"""Pytest configuration and shared fixtures."""

import datetime as dt

import pytest
from sqlalchemy.orm import sessionmaker

from shift_scheduler.domain.db import create_db_engine
from shift_scheduler.domain.models import Base, Organization
from shift_scheduler.domain.store import SqlAlchemyStore

# Monday of the week most tests schedule
WEEK_START = dt.date(2025, 3, 3)


def pytest_configure(config):
    """Configure pytest."""
    # Add custom markers
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (deselect with '-m \"not integration\"')"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


@pytest.fixture
def db_session():
    """Create in-memory database session for testing."""
    engine = create_db_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def store(db_session):
    return SqlAlchemyStore(db_session)


@pytest.fixture
def org(db_session):
    """A single organization."""
    organization = Organization(name="Corner Bakery")
    db_session.add(organization)
    db_session.commit()
    return organization


@pytest.fixture
def week_start():
    return WEEK_START
