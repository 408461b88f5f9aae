"""
Pytest fixtures for card ledger backend tests.

Provides an in-memory database, owner contexts, seeded lot/card/show rows,
and a test client.
"""

from datetime import date

import pytest
from cardledger import create_app
from cardledger.config import TestingConfig
from cardledger.context import LedgerContext
from cardledger.extensions import db
from cardledger.services import inventory_service, show_service


OWNER_ID = 1
OTHER_OWNER_ID = 2
MENTOR_ID = 99

PURCHASE_DATE = date(2024, 3, 1)
SALE_DATE = date(2024, 3, 2)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestingConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def runner(app):
    return app.test_cli_runner()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def ctx(db_session):
    return LedgerContext(owner_id=OWNER_ID)


@pytest.fixture(scope='function')
def other_ctx(db_session):
    """A second owner whose rows must stay invisible to the first."""
    return LedgerContext(owner_id=OTHER_OWNER_ID)


@pytest.fixture(scope='function')
def mentor_ctx(db_session):
    """Mentor browsing OWNER_ID's books (read-only)."""
    return LedgerContext(owner_id=OWNER_ID, viewer_id=MENTOR_ID)


@pytest.fixture(scope='function')
def lot(ctx):
    """EstateBox lot bought for $100."""
    return inventory_service.create_lot(
        ctx, source="EstateBox", purchase_date=PURCHASE_DATE, total_cost="100.00"
    )


@pytest.fixture(scope='function')
def second_lot(ctx):
    return inventory_service.create_lot(
        ctx, source="Garage Sale Binder", purchase_date=PURCHASE_DATE, total_cost="40.00"
    )


@pytest.fixture(scope='function')
def card(ctx, lot):
    """Smith 2001 in the EstateBox lot, asking $50."""
    return inventory_service.add_show_card(
        ctx, lot_id=lot.id, player_name="Smith", year="2001", asking_price="50.00"
    )


@pytest.fixture(scope='function')
def show(ctx):
    return show_service.create_show(
        ctx, name="Spring Card Show", show_date=SALE_DATE, table_cost="75.00", location="Expo Hall"
    )


@pytest.fixture(scope='function')
def second_show(ctx):
    return show_service.create_show(ctx, name="Fall Card Show", show_date=SALE_DATE)


def owner_headers(owner_id: int = OWNER_ID, viewer_id: int | None = None) -> dict:
    """Helper to create owner identity headers."""
    headers = {'X-Owner-Id': str(owner_id)}
    if viewer_id is not None:
        headers['X-Viewer-Id'] = str(viewer_id)
    return headers
