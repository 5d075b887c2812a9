"""Pytest configuration and fixtures for choreloop tests."""

import pytest
import sys
from datetime import datetime, timezone
from pathlib import Path

# Add parent directory to path so we can import modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from app import create_app
from chore_config import ChoreSettings, ChoreTemplate
from models import db, ChoreInstance


def ts(year, month, day, hour=0, minute=0, second=0) -> int:
    """Epoch seconds for a UTC wall-clock time."""
    return int(datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc).timestamp())


@pytest.fixture(autouse=True)
def utc_timezone(monkeypatch):
    """Evaluate recurrence expressions in UTC regardless of the host."""
    monkeypatch.setenv('TZ', 'UTC')


@pytest.fixture
def dishes_template():
    """Weekly chore due Sundays at 19:00."""
    return ChoreTemplate(
        title='dishes',
        description='Do the dishes',
        recurrence_expression='0 0 19 * * sun',
    )


@pytest.fixture
def trash_template():
    """Daily chore due at 08:00 (five-field layout)."""
    return ChoreTemplate(
        title='trash',
        description='Take out the trash',
        recurrence_expression='0 8 * * *',
    )


@pytest.fixture
def chore_settings(dishes_template, trash_template):
    """Settings with a weekly and a daily chore, 2h grace, 24h lookahead."""
    return ChoreSettings(
        templates={
            dishes_template.title: dishes_template,
            trash_template.title: trash_template,
        },
        overdue_time=2 * 3600,
        lookahead_time=24 * 3600,
        check_interval=3600,
    )


@pytest.fixture(scope='function')
def app(chore_settings):
    """Create application instance for testing."""
    app = create_app('testing', chore_settings=chore_settings)

    yield app

    # Clean up
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client for making requests."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create database session for tests."""
    with app.app_context():
        yield db.session


@pytest.fixture
def make_instance(db_session):
    """Factory for persisted chore instances."""

    def _make(title, expected, overdue=None, expiration=None, status='assigned'):
        instance = ChoreInstance(
            title=title,
            expected_completion_time=expected,
            overdue_time=overdue if overdue is not None else expected + 2 * 3600,
            expiration_time=expiration if expiration is not None else expected + 7 * 86400,
            status=status,
        )
        db_session.add(instance)
        db_session.commit()
        return instance

    return _make
