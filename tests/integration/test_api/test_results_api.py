"""Integration tests for the results, audit and reconciliation endpoints."""

from unittest.mock import AsyncMock, patch

from httpx import AsyncClient

from election_api.core.config import Settings
from election_api.core.security import create_voter_token
from election_api.schemas.result import NullVoidReportResponse


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def _vote(
    client: AsyncClient, settings: Settings, voter_id: str, position_id: str, candidate_id: str
) -> None:
    response = await client.post(
        "/api/v1/votes",
        json={"position_id": position_id, "candidate_id": candidate_id},
        headers=_auth(create_voter_token(voter_id, settings.jwt_secret_key)),
    )
    assert response.status_code == 201


class TestWinners:
    async def test_scoped_winners(self, client: AsyncClient, settings) -> None:
        await _vote(client, settings, "V1", "MP", "B")
        await _vote(client, settings, "V2", "MP", "B")
        await _vote(client, settings, "V3", "MP", "F")
        await _vote(client, settings, "V4", "MP", "G")

        body = (await client.get("/api/v1/results/winners", params={"position_id": "MP"})).json()

        assert [(w["scope_key"], w["candidate_id"], w["vote_count"]) for w in body["items"]] == [
            ("constituency:C1", "B", 2),
            ("constituency:C2", "G", 1),
        ]
        assert body["tied_scope_keys"] == []

    async def test_tie_reported(self, client: AsyncClient, settings) -> None:
        await _vote(client, settings, "V1", "PRES", "A")
        await _vote(client, settings, "V4", "PRES", "E")

        body = (await client.get("/api/v1/results/winners")).json()

        assert {w["candidate_id"] for w in body["items"]} == {"A", "E"}
        assert body["tied_scope_keys"] == ["PRES/national"]

    async def test_unknown_position(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/results/winners", params={"position_id": "MAYOR"})
        assert response.status_code == 404

    async def test_tally_unknown_position(self, client: AsyncClient) -> None:
        assert (await client.get("/api/v1/results/positions/MAYOR/tally")).status_code == 404


class TestSummary:
    async def test_summary(self, client: AsyncClient, settings) -> None:
        await _vote(client, settings, "V1", "PRES", "A")

        body = (await client.get("/api/v1/results/summary")).json()

        assert body["registered_voters"] == 4
        assert body["voters_voted"] == 1
        assert body["turnout_percentage"] == 25.0


class TestNullVoidEndpoint:
    async def test_requires_admin(self, client: AsyncClient) -> None:
        assert (await client.get("/api/v1/results/null-void")).status_code == 401

    async def test_report(self, client: AsyncClient, sample_user, admin_token: str, import_ballot, registry) -> None:
        registry.add_all([import_ballot("V1", "PRES", "A", "S1"), import_ballot("V1", "PRES", "E", "S1")])
        await registry.commit()

        body = (await client.get("/api/v1/results/null-void", headers=_auth(admin_token))).json()

        assert body["total_void_ballots"] == 2
        assert body["total_void_events"] == 1
        assert body["wards"][0]["ward_id"] == "W1"

    async def test_filters_passed_through(self, client: AsyncClient, sample_user, admin_token: str) -> None:
        empty = NullVoidReportResponse(wards=[], total_void_ballots=0, total_void_events=0)
        with patch(
            "election_api.services.void_service.get_null_void_report", new_callable=AsyncMock, return_value=empty
        ) as mock_report:
            response = await client.get(
                "/api/v1/results/null-void",
                params={"ward_id": "W2", "date_from": "2026-08-09", "date_to": "2026-08-10"},
                headers=_auth(admin_token),
            )

        assert response.status_code == 200
        kwargs = mock_report.await_args.kwargs
        assert kwargs["ward_id"] == "W2"
        assert str(kwargs["date_from"]) == "2026-08-09"
        assert str(kwargs["date_to"]) == "2026-08-10"

    async def test_inverted_date_range(self, client: AsyncClient, sample_user, admin_token: str) -> None:
        response = await client.get(
            "/api/v1/results/null-void",
            params={"date_from": "2026-08-10", "date_to": "2026-08-09"},
            headers=_auth(admin_token),
        )
        assert response.status_code == 422


class TestReconcileEndpoints:
    async def test_reconcile_repairs_drift(
        self, client: AsyncClient, sample_user, admin_token: str, import_ballot, registry
    ) -> None:
        registry.add(import_ballot("V4", "COUNC", "K", "S3"))
        await registry.commit()

        before = (await client.get("/api/v1/results/consistency", headers=_auth(admin_token))).json()
        assert before["consistent"] is False

        report = await client.post("/api/v1/results/reconcile", headers=_auth(admin_token))
        assert report.status_code == 200
        assert report.json()["winners_written"] == 8

        after = (await client.get("/api/v1/results/consistency", headers=_auth(admin_token))).json()
        assert after["consistent"] is True
        winners = (await client.get("/api/v1/results/winners", params={"position_id": "COUNC"})).json()
        assert [(w["scope_key"], w["candidate_id"], w["is_tie"]) for w in winners["items"]] == [
            ("ward:W1", "D", True),
            ("ward:W1", "H", True),
            ("ward:W3", "K", False),
        ]

    async def test_reconcile_requires_admin(self, client: AsyncClient, settings) -> None:
        response = await client.post(
            "/api/v1/results/reconcile", headers=_auth(create_voter_token("V1", settings.jwt_secret_key))
        )
        assert response.status_code == 401
