"""
Pytest fixtures for ZenStyle backend tests.

Provides an in-memory database, a test client and the salon entities the
tests book and sell against.

Calendar used throughout: 2024-06-10 is a Monday, 2024-06-14 a Friday
(closed under the default working hours).
"""

from datetime import date

import pytest

from zenstyle import create_app
from zenstyle.extensions import db
from zenstyle.models import Client, Product, Service, Staff, Supplier
from zenstyle.services import settings_service


MONDAY = date(2024, 6, 10)
FRIDAY = date(2024, 6, 14)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BOOKING_WEBHOOK_URL': None,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


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
def working_hours(db_session):
    """Default hours: every day 08:00-19:00, Friday closed."""
    settings_service.seed_default_working_hours()
    return settings_service.get_working_hours()


@pytest.fixture(scope='function')
def sarah(db_session):
    """Commission-paid stylist (10%)."""
    staff = Staff(
        first_name="Sarah",
        last_name="Benali",
        specialties=["hair"],
        salary_type="commission",
        commission_rate=10,
        base_salary_cents=0,
        is_active=True,
    )
    db_session.add(staff)
    db_session.commit()
    return staff


@pytest.fixture(scope='function')
def yasmine(db_session):
    """Second stylist on a monthly salary."""
    staff = Staff(
        first_name="Yasmine",
        last_name="Haddad",
        specialties=["nails"],
        salary_type="monthly",
        base_salary_cents=4500000,
        is_active=True,
    )
    db_session.add(staff)
    db_session.commit()
    return staff


@pytest.fixture(scope='function')
def haircut(db_session):
    """60-minute service priced 1500."""
    service = Service(
        name_ar="قص الشعر",
        name_fr="Coupe",
        category="hair",
        price_cents=1500,
        duration=60,
    )
    db_session.add(service)
    db_session.commit()
    return service


@pytest.fixture(scope='function')
def manicure(db_session):
    """30-minute service priced 800."""
    service = Service(
        name_ar="مانيكير",
        name_fr="Manucure",
        category="nails",
        price_cents=800,
        duration=30,
    )
    db_session.add(service)
    db_session.commit()
    return service


@pytest.fixture(scope='function')
def shampoo(db_session):
    """Retail product priced 1000 with 10 in stock."""
    product = Product(
        name_ar="شامبو",
        name_fr="Shampooing",
        category="hair",
        price_cents=1000,
        unit_cost_cents=600,
        stock=10,
        min_stock=5,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def amina(db_session):
    """Client with no history."""
    client = Client(first_name="Amina", last_name="Kaci", phone="0555000001")
    db_session.add(client)
    db_session.commit()
    return client


@pytest.fixture(scope='function')
def supplier(db_session):
    supplier = Supplier(name="Beauty Supply", phone="0210000000", city="Alger")
    db_session.add(supplier)
    db_session.commit()
    return supplier


@pytest.fixture
def monday():
    return MONDAY


@pytest.fixture
def friday():
    return FRIDAY


@pytest.fixture
def reload(db_session):
    """Fresh copy of a row, bypassing anything cached in the session."""
    def _reload(model, row_id):
        db_session.expire_all()
        return db_session.get(model, row_id)
    return _reload
