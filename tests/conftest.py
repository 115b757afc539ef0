"""
Pytest configuration and shared fixtures for SignalFriend tests.
"""

import os
from datetime import timedelta

import pytest

ADMIN_ADDRESS = "0x" + "ad" * 20
PREDICTOR_ADDRESS = "0x" + "11" * 20
BUYER_ADDRESS = "0x" + "22" * 20
OTHER_ADDRESS = "0x" + "33" * 20

# Set test environment before importing app
os.environ["FLASK_ENV"] = "testing"
os.environ["FLASK_SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["REDIS_ENABLED"] = "false"
os.environ["ADMIN_ADDRESSES"] = ADMIN_ADDRESS
os.environ["ALCHEMY_SIGNING_KEY"] = "test-signing-key"
os.environ["CHAIN_ID"] = "97"


@pytest.fixture(scope="session")
def _app():
    from signalfriend.factory import create_app

    flask_app = create_app()
    flask_app.config.update({"TESTING": True})
    return flask_app


@pytest.fixture
def app(_app):
    """Test application with an active application context."""
    with _app.app_context():
        yield _app


@pytest.fixture
def client(app):
    """Create a test client for the Flask application."""
    return app.test_client()


@pytest.fixture(autouse=True)
def reset_database(_app):
    """Give every test empty tables and an empty nonce store."""
    from signalfriend import nonce_store
    from signalfriend.database import get_engine
    from signalfriend.models import Base

    engine = get_engine()
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    nonce_store.clear()

    yield

    nonce_store.clear()


# ============================================================================
# Auth helpers
# ============================================================================


def bearer(address):
    from signalfriend.tokens import issue_token

    return {"Authorization": f"Bearer {issue_token(address)}"}


@pytest.fixture
def auth_headers(app):
    """Bearer headers for the default predictor wallet."""
    return bearer(PREDICTOR_ADDRESS)


@pytest.fixture
def buyer_headers(app):
    return bearer(BUYER_ADDRESS)


@pytest.fixture
def admin_headers(app):
    return bearer(ADMIN_ADDRESS)


# ============================================================================
# Model factories
# ============================================================================


@pytest.fixture
def make_category():
    """Insert a category and return its id."""
    from signalfriend.database import session_scope
    from signalfriend.models import Category

    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        n = counter["n"]
        fields = {
            "name": f"Category {n}",
            "slug": f"category-{n}",
            "main_group": "Crypto",
            "sort_order": n,
        }
        fields.update(overrides)
        with session_scope() as session:
            category = Category(**fields)
            session.add(category)
            session.flush()
            return category.id

    return _make


@pytest.fixture
def make_predictor():
    """Insert a predictor and return its wallet address."""
    from signalfriend.database import session_scope
    from signalfriend.models import Predictor

    counter = {"n": 0}

    def _make(address=PREDICTOR_ADDRESS, **overrides):
        counter["n"] += 1
        fields = {
            "wallet_address": address.lower(),
            "token_id": counter["n"],
            "display_name": f"Predictor #{counter['n']}",
        }
        fields.update(overrides)
        with session_scope() as session:
            session.add(Predictor(**fields))
        return address.lower()

    return _make


@pytest.fixture
def make_signal(make_category, make_predictor):
    """Insert a signal and return its content id. Creates the predictor and category when missing."""
    from signalfriend.database import session_scope
    from signalfriend.models import Predictor, Signal
    from signalfriend.utils import utc_now

    def _make(predictor_address=PREDICTOR_ADDRESS, category_id=None, expires_in=timedelta(days=7), **overrides):
        with session_scope() as session:
            predictor = session.query(Predictor).filter_by(wallet_address=predictor_address.lower()).first()
            predictor_id = predictor.id if predictor else None
        if predictor_id is None:
            make_predictor(predictor_address)
            with session_scope() as session:
                predictor_id = session.query(Predictor).filter_by(wallet_address=predictor_address.lower()).one().id
        if category_id is None:
            category_id = make_category()

        fields = {
            "predictor_id": predictor_id,
            "predictor_address": predictor_address.lower(),
            "title": "BTC breakout",
            "description": "Long setup on the daily chart",
            "content": "Entry 60000, target 68000, stop 57000",
            "category_id": category_id,
            "price_usdt": 10.0,
            "expires_at": utc_now() + expires_in,
            "risk_level": "medium",
            "potential_reward": "high",
        }
        fields.update(overrides)
        with session_scope() as session:
            signal = Signal(**fields)
            session.add(signal)
            session.flush()
            return signal.content_id

    return _make


@pytest.fixture
def make_receipt():
    """Record a purchase through the receipts service and return the receipt dict."""
    from signalfriend.services.receipts import create_receipt_from_event

    counter = {"n": 0}

    def _make(content_id, buyer_address=BUYER_ADDRESS, token_id=None, price_usdt=10.0, predictor_address=PREDICTOR_ADDRESS):
        counter["n"] += 1
        return create_receipt_from_event(
            token_id=token_id if token_id is not None else 1000 + counter["n"],
            content_id=content_id,
            buyer_address=buyer_address,
            predictor_address=predictor_address,
            price_usdt=price_usdt,
            transaction_hash="0x" + f"{counter['n']:064x}",
        )

    return _make


# ============================================================================
# Webhook payload builders
# ============================================================================


def address_topic(address):
    return "0x" + "00" * 12 + address.lower()[2:]


def uint_topic(value):
    return "0x" + f"{value:064x}"


def contract_log(event, topics, types, values, tx_hash="0x" + "ab" * 32):
    """A GRAPHQL webhook log for one of the marketplace events."""
    from eth_abi import encode

    from signalfriend.contracts import EVENT_TOPICS

    return {
        "topics": [EVENT_TOPICS[event]] + list(topics),
        "data": "0x" + encode(types, values).hex(),
        "account": {"address": "0x5133397a4b9463c5270beba05b22301e6dd184ca"},
        "transaction": {"hash": tx_hash},
    }


def graphql_payload(logs, created_at=None):
    from signalfriend.utils import isoformat, utc_now

    return {
        "webhookId": "wh_test",
        "id": "whevt_test",
        "createdAt": created_at or isoformat(utc_now()),
        "type": "GRAPHQL",
        "event": {"data": {"block": {"number": 4242, "logs": logs}}},
    }


def purchase_log(content_id, token_id, price_wei, buyer=BUYER_ADDRESS, predictor=PREDICTOR_ADDRESS, tx_hash=None):
    from signalfriend.utils import uuid_to_bytes32

    identifier = bytes.fromhex(uuid_to_bytes32(content_id)[2:])
    return contract_log(
        "SignalPurchased",
        [address_topic(buyer), address_topic(predictor), uint_topic(token_id)],
        ["bytes32", "uint256", "uint256"],
        [identifier, price_wei, price_wei + 5 * 10**17],
        tx_hash=tx_hash or "0x" + f"{token_id:064x}",
    )


# Pytest configuration hooks
def pytest_configure(config):
    """Configure pytest with custom settings."""
    config.addinivalue_line("markers", "unit: fast tests without HTTP")
    config.addinivalue_line("markers", "integration: tests that go through the Flask test client")


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers automatically."""
    for item in items:
        # Add 'unit' marker to tests in unit/ directory
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)

        # Add 'integration' marker to tests in integration/ directory
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
