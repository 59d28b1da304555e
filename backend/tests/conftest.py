"""
Pytest fixtures for stockroom backend tests.

Provides an in-memory application, a per-test table wipe, user / store /
membership / product factories, and auth header helpers.
"""

import pytest

from stockroom import create_app
from stockroom.config import Config
from stockroom.extensions import db
from stockroom.models import Product
from stockroom.services import auth_service, membership_service, store_service, token_service


PASSWORD = "secret123"


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    JWT_SECRET_KEY = "test-jwt-secret-key-that-is-long-enough-for-hs256"
    BCRYPT_ROUNDS = 4
    LEDGER_COMMIT_ATTEMPTS = 2


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function', autouse=True)
def db_session(app):
    """Fresh data for each test."""
    with app.app_context():
        db.session.rollback()
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        db.session.expunge_all()

        yield db.session

        # Cleanup after test
        db.session.rollback()


# =============================================================================
# FACTORIES
# =============================================================================


@pytest.fixture
def make_user(db_session):
    def _make_user(name="User", email=None, password=PASSWORD, account_type="staff"):
        email = email or f"{name.lower().replace(' ', '.')}@example.com"
        return auth_service.create_user(name=name, email=email, password=password, account_type=account_type)
    return _make_user


@pytest.fixture
def make_store(db_session):
    """Create a store; the owner becomes its admin."""
    def _make_store(owner, name="Main Store", **fields):
        patch = {"name": name}
        patch.update(fields)
        return store_service.create_store(owner=owner, patch=patch)
    return _make_store


@pytest.fixture
def add_member(db_session):
    def _add_member(user, store, role):
        return membership_service.add_membership(user_id=user.id, store_id=store.id, role=role)
    return _add_member


@pytest.fixture
def make_product(db_session):
    def _make_product(store, name="Widget", stock=10, cost_price_cents=80, selling_price_cents=120,
                      low_stock_threshold=5, sku=None):
        product = Product(
            store_id=store.id,
            name=name,
            sku=sku,
            stock=stock,
            cost_price_cents=cost_price_cents,
            selling_price_cents=selling_price_cents,
            low_stock_threshold=low_stock_threshold,
        )
        db_session.add(product)
        db_session.commit()
        return product
    return _make_product


def token_for(user):
    return token_service.issue_token(user)


def auth_headers(token, store_id=None):
    headers = {"Authorization": f"Bearer {token}"}
    if store_id is not None:
        headers["X-Store-Id"] = str(store_id)
    return headers


# =============================================================================
# STANDARD CAST
# =============================================================================
# owner: founder and admin of `store`
# coadmin / staff: members of `store`
# outsider: admin of `other_store`, no membership in `store`


@pytest.fixture
def owner(make_user):
    return make_user(name="Owner", email="owner@example.com", account_type="admin")


@pytest.fixture
def store(make_store, owner):
    return make_store(owner, name="Store S", admin_pin="PIN-S")


@pytest.fixture
def coadmin(make_user, add_member, store):
    user = make_user(name="Coadmin", email="coadmin@example.com", account_type="coadmin")
    add_member(user, store, "coadmin")
    return user


@pytest.fixture
def staff(make_user, add_member, store):
    user = make_user(name="Staff", email="staff@example.com")
    add_member(user, store, "staff")
    return user


@pytest.fixture
def outsider(make_user):
    return make_user(name="Outsider", email="outsider@example.com", account_type="admin")


@pytest.fixture
def other_store(make_store, outsider):
    return make_store(outsider, name="Store T", admin_pin="PIN-T")


@pytest.fixture
def product(make_product, store):
    return make_product(store, name="Widget", sku="W-1", stock=10, cost_price_cents=80,
                        selling_price_cents=120, low_stock_threshold=5)


@pytest.fixture
def other_product(make_product, other_store):
    return make_product(other_store, name="Gadget", sku="G-1", stock=10)


@pytest.fixture
def owner_headers(owner, store):
    return auth_headers(token_for(owner), store.id)


@pytest.fixture
def coadmin_headers(coadmin, store):
    return auth_headers(token_for(coadmin), store.id)


@pytest.fixture
def staff_headers(staff, store):
    return auth_headers(token_for(staff), store.id)


@pytest.fixture
def outsider_headers(outsider, other_store):
    return auth_headers(token_for(outsider), other_store.id)
