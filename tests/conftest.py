import os

# Must be set before app modules build the default engine
os.environ.setdefault("DATABASE_URL", "sqlite://")

from typing import Any, Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core import models  # noqa: F401
from app.core.config import Settings, get_settings
from app.core.errors import UpstreamUnavailable
from app.domains.learn.router import get_reward_service
from app.domains.learn.service import RewardLedgerService
from app.domains.submissions.schemas import SubmissionCreate
from app.domains.submissions.service import SubmissionService
from app.shared.database.connection import Base, get_db
from app.shared.marketplace import get_marketplace
from app.shared.xrpl import get_ledger
from app.shared.xumm_client import PayloadStatus, SigningSession, get_signing_gateway

ADMIN_PASSWORD = "admin-s3cret"
CREATOR = "rPT1Sjq2YGrBMTttX4GZHjKu9dyfzbpAYe"
DESTINATION = "rU15yYD3cHmNXGxHJSJGoLUSogxZ17FpKd"


class FakeSigner:
    """In-memory stand-in for the Xumm payload API."""

    def __init__(self):
        self.created: List[tuple] = []
        self.statuses: Dict[str, PayloadStatus] = {}

    def create_payload(self, txjson: Dict[str, Any]) -> SigningSession:
        uuid = f"uuid-{len(self.created) + 1}"
        self.created.append((uuid, txjson))
        self.statuses[uuid] = PayloadStatus()
        return SigningSession(uuid=uuid, link=f"https://xumm.app/sign/{uuid}")

    def get_payload(self, uuid: str) -> PayloadStatus:
        return self.statuses[uuid]

    def sign(self, uuid: str, txid: Optional[str] = None) -> None:
        self.statuses[uuid] = PayloadStatus(
            resolved=True, signed=True, account=CREATOR, txid=txid or f"TX-{uuid}"
        )

    def decline(self, uuid: str) -> None:
        self.statuses[uuid] = PayloadStatus(resolved=True, signed=False)

    def last_uuid(self) -> str:
        return self.created[-1][0]


class FakeMarketplace:
    def __init__(self):
        self.calls: List[Dict[str, Any]] = []
        self.fail = False

    def notify(self, fields: Dict[str, Any]) -> Any:
        self.calls.append(fields)
        if self.fail:
            raise httpx.ConnectError("marketplace down")
        return {"ok": True}


class FakeLedger:
    def __init__(self):
        self.payments: List[tuple] = []
        self.fail_for: set = set()
        self.transactions: Dict[str, Dict[str, Any]] = {}
        self.tokens: Dict[str, List[Dict[str, Any]]] = {}

    def send_token_payment(self, destination, amount):
        if destination in self.fail_for:
            raise UpstreamUnavailable(f"XRPL payment to {destination} failed: tecPATH_DRY")
        self.payments.append((destination, amount))
        return f"HASH{len(self.payments)}"

    def get_transaction(self, tx_hash):
        return self.transactions.get(tx_hash, {"validated": False})

    def account_tokens(self, account):
        return self.tokens.get(account, [])


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        database_url="sqlite://",
        admin_password=ADMIN_PASSWORD,
        payment_destination=DESTINATION,
        cfc_distributor_seed="sEdTestSeedOnly",
        cfc_issuer="rIssuerForTests",
        marketplace_regular_key="rMarketplaceKey",
    )


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def signer() -> FakeSigner:
    return FakeSigner()


@pytest.fixture
def marketplace() -> FakeMarketplace:
    return FakeMarketplace()


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def submissions(db, test_settings, signer, marketplace, ledger) -> SubmissionService:
    return SubmissionService(
        db, test_settings, signer=signer, marketplace=marketplace, ledger=ledger
    )


@pytest.fixture
def no_rules():
    def fetch(cid, timeout, gateway=None):
        raise httpx.ConnectTimeout("no gateway in tests")

    return fetch


@pytest.fixture
def rewards(db, test_settings, ledger, no_rules) -> RewardLedgerService:
    return RewardLedgerService(db, test_settings, ledger=ledger, fetch_document=no_rules)


@pytest.fixture
def make_submission(submissions):
    def _make(**overrides):
        data = {
            "wallet": CREATOR,
            "name": "Sunrise",
            "description": "Oil on canvas",
            "image_cid": "QmImage",
            "metadata_cid": "QmMeta",
            "quantity": 1,
        }
        data.update(overrides)
        return submissions.create(SubmissionCreate(**data))

    return _make


@pytest.fixture
def client(db, test_settings, signer, marketplace, ledger, rewards):
    from app.main import create_app

    app = create_app()

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_signing_gateway] = lambda: signer
    app.dependency_overrides[get_marketplace] = lambda: marketplace
    app.dependency_overrides[get_ledger] = lambda: ledger
    app.dependency_overrides[get_reward_service] = lambda: rewards

    with TestClient(app) as c:
        yield c
