"""
Pytest fixtures for posledger backend tests.

Provides an in-memory database, seeded roles/users/products, auth headers and
a fake Midtrans gateway served through httpx.MockTransport.
"""

import hashlib

import httpx
import pytest

from posledger import create_app
from posledger.extensions import db
from posledger.models import Product, Stock
from posledger.services.auth_service import create_user
from posledger.services import permission_service, session_service


TEST_SERVER_KEY = "SB-Mid-server-test-key"
TEST_PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'MIDTRANS_SERVER_KEY': TEST_SERVER_KEY,
        'MIDTRANS_IS_PRODUCTION': False,
        'APP_URL': 'http://pos.test',
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
def setup_roles(db_session):
    """Setup default roles and permissions."""
    permission_service.create_default_roles()
    db_session.commit()


def _make_user(username: str, name: str, role_name: str):
    # Low bcrypt cost keeps the suite fast
    return create_user(
        username=username,
        name=name,
        email=f"{username}@pos.test",
        password=TEST_PASSWORD,
        role_name=role_name,
        rounds=4,
    )


@pytest.fixture(scope='function')
def cashier(setup_roles):
    return _make_user("cashier", "Kasir Satu", "cashier")


@pytest.fixture(scope='function')
def manager(setup_roles):
    return _make_user("manager", "Manajer Toko", "manager")


@pytest.fixture(scope='function')
def admin(setup_roles):
    return _make_user("admin", "Administrator", "admin")


def _headers_for(user) -> dict:
    _, token = session_service.create_session(user.id)
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def cashier_headers(cashier):
    return _headers_for(cashier)


@pytest.fixture(scope='function')
def manager_headers(manager):
    return _headers_for(manager)


@pytest.fixture(scope='function')
def admin_headers(admin):
    return _headers_for(admin)


def _make_product(sku: str, name: str, price: int, quantity: int, is_active: bool = True) -> Product:
    product = Product(sku=sku, name=name, price=price, is_active=is_active)
    db.session.add(product)
    db.session.flush()
    db.session.add(Stock(product_id=product.id, quantity=quantity))
    db.session.commit()
    return product


@pytest.fixture(scope='function')
def coffee(db_session):
    """Kopi Susu, 20000, 10 in stock."""
    return _make_product("KOPI-01", "Kopi Susu", 20000, 10)


@pytest.fixture(scope='function')
def tea(db_session):
    """Teh Manis, 10000, 5 in stock."""
    return _make_product("TEH-01", "Teh Manis", 10000, 5)


@pytest.fixture(scope='function')
def retired_product(db_session):
    return _make_product("OLD-01", "Roti Lama", 8000, 3, is_active=False)


@pytest.fixture
def stock_of(db_session):
    """Read the current on-hand quantity straight from the database."""
    def _stock_of(product) -> int:
        db_session.expire_all()
        return db_session.query(Stock.quantity).filter_by(product_id=product.id).scalar()
    return _stock_of


class FakeMidtrans:
    """Records requests and answers like the Snap and Core status APIs."""

    def __init__(self):
        self.requests = []
        self.snap_status = 201
        self.snap_body = {
            "token": "snap-token-123",
            "redirect_url": "https://app.sandbox.midtrans.com/snap/v4/redirection/snap-token-123",
        }
        self.statuses = {}
        self.fail_with = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            raise self.fail_with

        path = request.url.path
        if request.method == "POST" and path.endswith("/snap/v1/transactions"):
            return httpx.Response(self.snap_status, json=self.snap_body)
        if request.method == "GET" and path.endswith("/status"):
            order_id = path.split("/")[-2]
            if order_id not in self.statuses:
                return httpx.Response(404, json={"status_code": "404", "status_message": "Transaction doesn't exist."})
            return httpx.Response(200, json=self.statuses[order_id])
        return httpx.Response(404)


@pytest.fixture
def gateway(app):
    """Route the app's Midtrans client through an in-process fake."""
    fake = FakeMidtrans()
    app.config['MIDTRANS_TRANSPORT'] = httpx.MockTransport(fake.handler)
    yield fake
    app.config['MIDTRANS_TRANSPORT'] = None


@pytest.fixture
def notification():
    """Build a correctly signed Midtrans notification body."""
    def _notification(
        order_id: str,
        transaction_status: str,
        gross_amount: str,
        *,
        status_code: str = "200",
        fraud_status: str | None = "accept",
        payment_type: str = "qris",
        server_key: str = TEST_SERVER_KEY,
    ) -> dict:
        signature = hashlib.sha512(
            f"{order_id}{status_code}{gross_amount}{server_key}".encode("utf-8")
        ).hexdigest()
        body = {
            "order_id": order_id,
            "transaction_status": transaction_status,
            "status_code": status_code,
            "gross_amount": gross_amount,
            "payment_type": payment_type,
            "transaction_id": f"mt-{order_id}",
            "transaction_time": "2025-06-01 17:05:00",
            "status_message": "midtrans payment notification",
            "signature_key": signature,
        }
        if fraud_status is not None:
            body["fraud_status"] = fraud_status
        return body
    return _notification
