"""HTTP tests for the rounds, account and admin routers (in-memory backing)."""

from collections.abc import AsyncGenerator
from unittest.mock import patch

import pytest
from httpx import AsyncClient

from config.settings import settings
from src.main import app
from src.pp_account.application.service import AccountApplicationService
from src.pp_admin.application.service import AdminService
from src.pp_common.database import get_db_session
from src.pp_common.enums import PrincipalRole
from src.pp_gateway.auth.jwt_handler import create_access_token
from src.pp_round.application.service import RoundApplicationService
from src.pp_round.engine.ledger import RoundLedger
from src.pp_settlement.infrastructure.transfer import AccountPayoutTransfer

START = 3_000_000_000_000
ALICE = "0x70997970c51812dc3a010c7d01b50e0d17dc79c8"
BOB = "0x3c44cdddb6a900fa2b585dd299e03d12fa4293bc"
MIN_BET = 5


def _auth(user_id: str, role: PrincipalRole = PrincipalRole.PARTICIPANT) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id, role=role)}"}


@pytest.fixture
def wired(db, rounds, accounts, clock):
    """Point every router at the in-memory repositories for one test.

    MIN_BET is above 1 so that a positive stake can still fail the
    minimum-bet rule rather than request validation.
    """

    async def _session() -> AsyncGenerator[object, None]:
        yield db

    ledger = RoundLedger(
        repo=rounds,
        accounts=accounts,
        transfer=AccountPayoutTransfer(accounts, house_account_id="HOUSE"),
        min_bet=MIN_BET,
        round_duration_seconds=300,
        clock=clock,
    )
    round_service = RoundApplicationService(repo=rounds, ledger=ledger)
    app.dependency_overrides[get_db_session] = _session
    with (
        patch("src.pp_round.api.router._service", round_service),
        patch("src.pp_account.api.router._service", AccountApplicationService(repo=accounts)),
        patch("src.pp_admin.api.router._service", AdminService(repo=rounds, rounds=round_service)),
    ):
        yield
    app.dependency_overrides.clear()


async def _bootstrap(client: AsyncClient) -> None:
    resp = await client.post(
        "/api/v1/admin/rounds/bootstrap",
        json={"start_price": START},
        headers=_auth(BOB, PrincipalRole.RESOLVER),
    )
    assert resp.status_code == 200


class TestReadEndpoints:
    async def test_health(self, client: AsyncClient) -> None:
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    async def test_no_current_round(self, client: AsyncClient, wired) -> None:
        resp = await client.get("/api/v1/rounds/current")
        assert resp.status_code == 404
        assert resp.json()["code"] == 3001

    async def test_current_round_after_bootstrap(self, client: AsyncClient, wired) -> None:
        await _bootstrap(client)
        resp = await client.get("/api/v1/rounds/current")
        body = resp.json()
        assert resp.status_code == 200
        assert body["code"] == 0
        assert body["data"]["round_id"] == 1
        assert body["data"]["status"] == "OPEN"

    async def test_config(self, client: AsyncClient, wired) -> None:
        resp = await client.get("/api/v1/rounds/config")
        assert resp.json()["data"]["round_duration_seconds"] == 300

    async def test_round_id_must_be_positive(self, client: AsyncClient, wired) -> None:
        resp = await client.get("/api/v1/rounds/0")
        assert resp.status_code == 422

    async def test_user_id_longer_than_column_rejected(self, client: AsyncClient, wired) -> None:
        resp = await client.get(f"/api/v1/rounds/users/{'a' * 65}")
        assert resp.status_code == 422


class TestBetting:
    async def test_bet_requires_token(self, client: AsyncClient, wired) -> None:
        resp = await client.post(
            "/api/v1/rounds/current/bets", json={"direction": "UP", "amount": 10}
        )
        assert resp.status_code == 401

    async def test_deposit_bet_and_read_back(self, client: AsyncClient, wired) -> None:
        await _bootstrap(client)
        dep = await client.post("/api/v1/account/deposit", json={"amount": 100}, headers=_auth(ALICE))
        assert dep.json()["data"]["balance"] == "100"

        resp = await client.post(
            "/api/v1/rounds/current/bets",
            json={"direction": "UP", "amount": 10},
            headers=_auth(ALICE),
        )
        assert resp.status_code == 201
        assert resp.json()["data"]["direction"] == "UP"

        bal = await client.get("/api/v1/account/balance", headers=_auth(ALICE))
        assert bal.json()["data"]["balance"] == "90"

        mine = await client.get("/api/v1/rounds/me", headers=_auth(ALICE))
        [item] = mine.json()["data"]["items"]
        assert item["round"]["round_id"] == 1
        assert item["won"] is None

        detail = await client.get("/api/v1/rounds/1")
        assert detail.json()["data"]["participants"] == [ALICE]

    async def test_second_bet_conflicts(self, client: AsyncClient, wired) -> None:
        await _bootstrap(client)
        await client.post("/api/v1/account/deposit", json={"amount": 100}, headers=_auth(ALICE))
        body = {"direction": "DOWN", "amount": 10}
        await client.post("/api/v1/rounds/current/bets", json=body, headers=_auth(ALICE))

        resp = await client.post("/api/v1/rounds/current/bets", json=body, headers=_auth(ALICE))

        assert resp.status_code == 409
        assert resp.json()["code"] == 4002

    async def test_invalid_direction_rejected(self, client: AsyncClient, wired) -> None:
        resp = await client.post(
            "/api/v1/rounds/current/bets",
            json={"direction": "SIDEWAYS", "amount": 10},
            headers=_auth(ALICE),
        )
        assert resp.status_code == 422

    async def test_bet_without_funds(self, client: AsyncClient, wired) -> None:
        await _bootstrap(client)
        resp = await client.post(
            "/api/v1/rounds/current/bets",
            json={"direction": "UP", "amount": 10},
            headers=_auth(ALICE),
        )
        assert resp.status_code == 404
        assert resp.json()["code"] == 2002

    async def test_stake_below_minimum_bet(self, client: AsyncClient, wired) -> None:
        await _bootstrap(client)
        await client.post("/api/v1/account/deposit", json={"amount": 100}, headers=_auth(ALICE))

        resp = await client.post(
            "/api/v1/rounds/current/bets",
            json={"direction": "UP", "amount": MIN_BET - 1},
            headers=_auth(ALICE),
        )

        assert resp.status_code == 422
        assert resp.json()["code"] == 4001
        bal = await client.get("/api/v1/account/balance", headers=_auth(ALICE))
        assert bal.json()["data"]["balance"] == "100"

    async def test_stake_wider_than_numeric_column_rejected(
        self, client: AsyncClient, wired
    ) -> None:
        resp = await client.post(
            "/api/v1/rounds/current/bets",
            json={"direction": "UP", "amount": 10**78},
            headers=_auth(ALICE),
        )
        assert resp.status_code == 422
        assert "code" not in resp.json()

    async def test_deposit_wider_than_numeric_column_rejected(
        self, client: AsyncClient, wired
    ) -> None:
        resp = await client.post(
            "/api/v1/account/deposit", json={"amount": 10**78}, headers=_auth(ALICE)
        )
        assert resp.status_code == 422

    async def test_token_subject_wider_than_user_id_column(
        self, client: AsyncClient, wired
    ) -> None:
        resp = await client.post(
            "/api/v1/account/deposit", json={"amount": 100}, headers=_auth("0x" + "a" * 63)
        )
        assert resp.status_code == 401


class TestResolution:
    async def test_resolve_before_end(self, client: AsyncClient, wired) -> None:
        await _bootstrap(client)
        resp = await client.post(
            "/api/v1/rounds/current/resolve",
            json={"end_price": START + 1, "next_start_price": START, "round_id": 1},
            headers=_auth(BOB),
        )
        assert resp.status_code == 409
        assert resp.json()["code"] == 3003

    async def test_resolve_then_already_resolved(self, client: AsyncClient, wired, clock) -> None:
        await _bootstrap(client)
        for user, side in ((ALICE, "UP"), (BOB, "DOWN")):
            await client.post("/api/v1/account/deposit", json={"amount": 100}, headers=_auth(user))
            await client.post(
                "/api/v1/rounds/current/bets",
                json={"direction": side, "amount": 10},
                headers=_auth(user),
            )
        clock.advance(300)
        body = {"end_price": START + 1, "next_start_price": START, "round_id": 1}

        first = await client.post("/api/v1/rounds/current/resolve", json=body, headers=_auth(BOB))
        second = await client.post("/api/v1/rounds/current/resolve", json=body, headers=_auth(BOB))

        data = first.json()["data"]
        assert first.status_code == 200
        assert data["up_won"] is True
        assert data["participants_processed"] == 2
        assert data["next_round"]["round_id"] == 2
        assert second.status_code == 409
        assert second.json()["code"] == 3004

        bal = await client.get("/api/v1/account/balance", headers=_auth(ALICE))
        assert bal.json()["data"]["balance"] == "110"

    async def test_resolve_requires_round_id(self, client: AsyncClient, wired, clock) -> None:
        await _bootstrap(client)
        clock.advance(300)

        resp = await client.post(
            "/api/v1/rounds/current/resolve",
            json={"end_price": START + 1, "next_start_price": START},
            headers=_auth(BOB),
        )

        assert resp.status_code == 422
        current = await client.get("/api/v1/rounds/current")
        assert current.json()["data"]["resolved"] is False

    async def test_tie_read_back_as_refund(self, client: AsyncClient, wired, clock) -> None:
        await _bootstrap(client)
        for user, side in ((ALICE, "DOWN"), (BOB, "UP")):
            await client.post("/api/v1/account/deposit", json={"amount": 100}, headers=_auth(user))
            await client.post(
                "/api/v1/rounds/current/bets",
                json={"direction": side, "amount": 10},
                headers=_auth(user),
            )
        clock.advance(300)
        await client.post(
            "/api/v1/rounds/current/resolve",
            json={"end_price": START, "next_start_price": START, "round_id": 1},
            headers=_auth(BOB),
        )

        resp = await client.get(f"/api/v1/rounds/users/{ALICE}")

        [item] = resp.json()["data"]["items"]
        assert item["won"] is None
        assert item["bet"]["outcome"] == "REFUND"
        assert item["bet"]["payout"] == "10"

    async def test_resolver_role_enforced_when_configured(self, client: AsyncClient, wired) -> None:
        await _bootstrap(client)
        with patch.object(settings, "RESOLVER_ROLE_REQUIRED", True):
            resp = await client.post(
                "/api/v1/rounds/current/resolve",
                json={"end_price": START, "next_start_price": START, "round_id": 1},
                headers=_auth(ALICE),
            )
        assert resp.status_code == 403
        assert resp.json()["code"] == 1006


class TestAdmin:
    async def test_bootstrap_requires_resolver(self, client: AsyncClient, wired) -> None:
        resp = await client.post(
            "/api/v1/admin/rounds/bootstrap", json={"start_price": START}, headers=_auth(ALICE)
        )
        assert resp.status_code == 403

    async def test_bootstrap_is_idempotent(self, client: AsyncClient, wired) -> None:
        await _bootstrap(client)
        resp = await client.post(
            "/api/v1/admin/rounds/bootstrap",
            json={"start_price": START + 100},
            headers=_auth(BOB, PrincipalRole.RESOLVER),
        )
        assert resp.json()["data"]["round_id"] == 1
        assert resp.json()["data"]["start_price"] == START
