"""
Integration tests for the Token Ledger API
Tests end-to-end workflows using FastAPI TestClient
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi.testclient import TestClient

from token_ledger.accounts import NULL_ACCOUNT
from token_ledger.api import create_app
from token_ledger.api.auth import LedgerSystem, get_ledger_system, issue_caller_token
from token_ledger.config import LedgerConfig
from token_ledger.storage import InMemoryStorage


ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20
CAROL = "0x" + "c3" * 20
SPENDER = "0x" + "d4" * 20

SUPPLY = 10 ** 27


def make_config(**overrides):
    settings = dict(
        _env_file=None,
        initial_holder=ALICE,
        total_supply=SUPPLY,
        token_name="Test Token",
        token_symbol="TST",
        token_decimals=18,
        jwt_secret="test-secret"
    )
    settings.update(overrides)
    return LedgerConfig(**settings)


def make_client(**overrides):
    system = LedgerSystem(config=make_config(**overrides), storage=InMemoryStorage())
    app = create_app()
    app.dependency_overrides[get_ledger_system] = lambda: system
    return TestClient(app), system


def as_caller(account):
    return {"X-Caller": account}


@pytest.fixture
def client():
    """Create a test client over a fresh in-memory ledger, auth disabled"""
    test_client, system = make_client()
    yield test_client
    system.close()


class TestHealthEndpoints:
    """Test basic health endpoint"""

    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "healthy"


class TestTokenEndpoints:
    """Test read-only queries"""

    def test_token_metadata(self, client):
        r = client.get("/token")
        assert r.status_code == 200
        data = r.json()
        assert data["name"] == "Test Token"
        assert data["symbol"] == "TST"
        assert data["decimals"] == 18
        assert data["total_supply"] == str(SUPPLY)
        assert data["total_supply_display"] == "1000000000"

    def test_initial_balances(self, client):
        assert client.get(f"/balances/{ALICE}").json()["balance"] == str(SUPPLY)
        assert client.get(f"/balances/{BOB}").json()["balance"] == "0"

    def test_unknown_allowance_is_zero(self, client):
        r = client.get(f"/allowances/{ALICE}/{SPENDER}")
        assert r.status_code == 200
        assert r.json()["allowance"] == "0"


class TestTransferEndpoints:
    """Test mutating endpoints with the caller header"""

    def test_transfer(self, client):
        r = client.post("/transfer", json={"to": BOB, "amount": "250"}, headers=as_caller(ALICE))
        assert r.status_code == 200
        data = r.json()
        assert data["success"] is True
        assert data["from"] == ALICE
        assert data["balance"] == str(SUPPLY - 250)
        assert client.get(f"/balances/{BOB}").json()["balance"] == "250"

    def test_missing_caller_header(self, client):
        r = client.post("/transfer", json={"to": BOB, "amount": "1"})
        assert r.status_code == 401
        assert r.json()["detail"] == "Missing X-Caller header"

    def test_insufficient_balance(self, client):
        r = client.post("/transfer", json={"to": ALICE, "amount": "1"}, headers=as_caller(BOB))
        assert r.status_code == 400
        assert r.json()["detail"]["error"] == "InsufficientBalance"

    def test_null_recipient(self, client):
        r = client.post("/transfer", json={"to": NULL_ACCOUNT, "amount": "1"}, headers=as_caller(ALICE))
        assert r.status_code == 400
        assert r.json()["detail"]["error"] == "InvalidRecipient"

    @pytest.mark.parametrize("amount", ["-1", "1.5", "abc", str(2 ** 256)])
    def test_invalid_amount(self, client, amount):
        r = client.post("/transfer", json={"to": BOB, "amount": amount}, headers=as_caller(ALICE))
        assert r.status_code == 400
        assert r.json()["detail"]["error"] == "InvalidAmount"

    def test_approve_and_transfer_from(self, client):
        """Test the delegated transfer workflow end to end"""
        r = client.post("/approve", json={"spender": SPENDER, "amount": "100"}, headers=as_caller(ALICE))
        assert r.status_code == 200
        assert r.json()["allowance"] == "100"

        r = client.post(
            "/transfer-from",
            json={"from": ALICE, "to": CAROL, "amount": "60"},
            headers=as_caller(SPENDER)
        )
        assert r.status_code == 200
        data = r.json()
        assert data["spender"] == SPENDER
        assert data["remaining_allowance"] == "40"
        assert client.get(f"/balances/{CAROL}").json()["balance"] == "60"

        r = client.post(
            "/transfer-from",
            json={"from": ALICE, "to": CAROL, "amount": "41"},
            headers=as_caller(SPENDER)
        )
        assert r.status_code == 400
        assert r.json()["detail"]["error"] == "InsufficientAllowance"

    def test_increase_and_decrease_allowance(self, client):
        headers = as_caller(ALICE)
        client.post("/approve", json={"spender": SPENDER, "amount": "10"}, headers=headers)

        r = client.post("/allowances/increase", json={"spender": SPENDER, "amount": "5"}, headers=headers)
        assert r.json()["allowance"] == "15"

        r = client.post("/allowances/decrease", json={"spender": SPENDER, "amount": "15"}, headers=headers)
        assert r.json()["allowance"] == "0"

        r = client.post("/allowances/decrease", json={"spender": SPENDER, "amount": "1"}, headers=headers)
        assert r.status_code == 400


class TestJournalEndpoints:
    """Test the notification journal over HTTP"""

    def test_events_listing(self, client):
        client.post("/transfer", json={"to": BOB, "amount": "5"}, headers=as_caller(ALICE))
        client.post("/approve", json={"spender": SPENDER, "amount": "7"}, headers=as_caller(BOB))

        data = client.get("/events").json()
        assert data["count"] == 3
        assert data["events"][0]["data"] == {"from": NULL_ACCOUNT, "to": ALICE, "value": str(SUPPLY)}

        approvals = client.get("/events", params={"event_type": "Approval"}).json()
        assert approvals["count"] == 1
        assert approvals["events"][0]["data"]["owner"] == BOB

        assert client.get("/events", params={"account": BOB, "limit": 1}).json()["count"] == 1

    def test_unknown_event_type(self, client):
        r = client.get("/events", params={"event_type": "Mint"})
        assert r.status_code == 400

    def test_verify(self, client):
        client.post("/transfer", json={"to": BOB, "amount": "5"}, headers=as_caller(ALICE))
        assert client.get("/events/verify").json() == {"valid": True, "total_records": 2}

    def test_journal_disabled(self):
        test_client, system = make_client(enable_journal=False)
        assert test_client.get("/events").status_code == 404
        system.close()


class TestOwnershipEndpoints:
    """Test the optional owner role over HTTP"""

    def test_ownership_disabled_by_default(self, client):
        assert client.get("/ownership").status_code == 404

    def test_two_step_handover(self):
        test_client, system = make_client(enable_ownership=True)

        assert test_client.get("/ownership").json() == {"owner": ALICE, "pending_owner": None}

        r = test_client.post("/ownership/transfer", json={"new_owner": BOB}, headers=as_caller(BOB))
        assert r.status_code == 403
        assert r.json()["detail"]["error"] == "NotOwner"

        r = test_client.post("/ownership/transfer", json={"new_owner": BOB}, headers=as_caller(ALICE))
        assert r.json() == {"owner": ALICE, "pending_owner": BOB}

        r = test_client.post("/ownership/accept", headers=as_caller(BOB))
        assert r.json() == {"owner": BOB, "pending_owner": None}

        r = test_client.post("/ownership/renounce", headers=as_caller(BOB))
        assert r.json() == {"owner": None, "pending_owner": None}
        system.close()


class TestJWTAuth:
    """Test bearer token caller resolution"""

    def setup_method(self):
        self.client, self.system = make_client(auth_enabled=True)

    def teardown_method(self):
        self.system.close()

    def bearer(self, token):
        return {"Authorization": f"Bearer {token}"}

    def test_caller_from_token(self):
        token = issue_caller_token(ALICE, self.system.config)
        r = self.client.post("/transfer", json={"to": BOB, "amount": "3"}, headers=self.bearer(token))
        assert r.status_code == 200
        assert r.json()["from"] == ALICE

    def test_header_ignored_when_auth_enabled(self):
        r = self.client.post("/transfer", json={"to": BOB, "amount": "3"}, headers=as_caller(ALICE))
        assert r.status_code == 401
        assert r.json()["detail"] == "Not authenticated"

    def test_wrong_secret(self):
        token = issue_caller_token(ALICE, make_config(jwt_secret="other-secret"))
        r = self.client.post("/transfer", json={"to": BOB, "amount": "3"}, headers=self.bearer(token))
        assert r.status_code == 401
        assert r.json()["detail"] == "Invalid token"

    def test_expired_token(self):
        past = datetime.now(timezone.utc) - timedelta(hours=2)
        token = jwt.encode(
            {"sub": ALICE, "iat": past, "exp": past + timedelta(hours=1)},
            "test-secret", algorithm="HS256"
        )
        r = self.client.post("/transfer", json={"to": BOB, "amount": "3"}, headers=self.bearer(token))
        assert r.status_code == 401
        assert r.json()["detail"] == "Token expired"

    def test_reads_need_no_token(self):
        assert self.client.get(f"/balances/{ALICE}").status_code == 200
