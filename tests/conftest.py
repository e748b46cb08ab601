import os
import sys
from pathlib import Path

import pytest

# Ensure project root is on sys.path so tests can import the 'orderflow' package
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Settings are read at import time, so point them at throwaway locations first
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_orderflow.db")
os.environ["LOG_TO_FILE"] = "false"
os.environ["UPLOAD_DIRECTORY"] = str(ROOT / "tests" / ".uploads")
os.environ["SMTP_SERVER"] = ""

from orderflow.config.database import Base, engine, SessionLocal
from orderflow.core.security import create_access_token
from orderflow.models import User


@pytest.fixture(autouse=True)
def reset_db():
    # Drop all and re-create so every test starts from an empty schema and counter
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def make_user(db):
    def _make_user(username, role="Sales", leader=None):
        user = User(
            username=username,
            email=f"{username}@example.com",
            role=role,
            assigned_to_leader_id=leader.id if leader else None,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make_user


@pytest.fixture
def headers_for():
    def _headers_for(user):
        token = create_access_token({"sub": user.id})
        return {"Authorization": f"Bearer {token}"}
    return _headers_for


@pytest.fixture
def admin(make_user):
    return make_user("admin", role="Admin")


@pytest.fixture
def admin_headers(admin, headers_for):
    return headers_for(admin)


@pytest.fixture
def order_payload():
    """A valid create body: 2×100 @18% + 1×50 tax-inclusive + 20 freight = 306."""
    def _order_payload(**overrides):
        payload = {
            "customername": "Acme Schools",
            "name": "R. Sharma",
            "contactNo": "9876543210",
            "customerEmail": "buyer@example.com",
            "city": "Patna",
            "state": "Bihar",
            "pinCode": "800001",
            "shippingAddress": "12 Station Road",
            "billingAddress": "12 Station Road",
            "orderType": "B2C",
            "dispatchFrom": "Morinda",
            "paymentTerms": "100% Advance",
            "paymentMethod": "NEFT",
            "paymentCollected": "100",
            "freightcs": "20",
            "products": [
                {"productType": "Chair", "qty": 2, "unitPrice": 100, "gst": "18"},
                {"productType": "Table", "qty": 1, "unitPrice": 50, "gst": "including"},
            ],
        }
        payload.update(overrides)
        return payload
    return _order_payload
