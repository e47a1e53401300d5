"""Integration tests for registry, ballot import, voter and user CLI commands."""

import asyncio
import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from typer.testing import CliRunner

import election_api.models  # noqa: F401
from election_api.cli.app import app
from election_api.models.base import Base
from election_api.schemas.auth import TokenResponse
from election_api.schemas.ballot import BallotImportResult
from election_api.services.registry_service import VoterNotFoundError

runner = CliRunner()

REGISTRY = {
    "districts": [{"id": "D1", "name": "Central"}],
    "constituencies": [
        {"id": "C1", "name": "North", "district_id": "D1"},
        {"id": "C2", "name": "South", "district_id": "D1"},
    ],
    "wards": [
        {"id": "W1", "name": "Riverside", "constituency_id": "C1"},
        {"id": "W3", "name": "Harbour", "constituency_id": "C2"},
    ],
    "stations": [
        {"id": "S1", "name": "Riverside School", "ward_id": "W1"},
        {"id": "S3", "name": "Harbour Hall", "ward_id": "W3"},
    ],
    "positions": [
        {"id": "PRES", "title": "President", "kind": "national"},
        {"id": "MP", "title": "Member of Parliament", "kind": "constituency"},
    ],
    "candidates": [
        {"id": "A", "position_id": "PRES", "name": "Amina Otieno", "party": "Unity"},
        {"id": "E", "position_id": "PRES", "name": "Eli Mwangi"},
        {"id": "B", "position_id": "MP", "name": "Brian Kip", "constituency_id": "C1"},
        {"id": "G", "position_id": "MP", "name": "George Ochieng", "constituency_id": "C2"},
    ],
    "voters": [
        {"id": "V1", "national_id": "N001", "first_name": "Grace", "last_name": "Akinyi", "station_id": "S1"},
        {"id": "V2", "national_id": "N002", "first_name": "Peter", "last_name": "Omondi", "station_id": "S1"},
        {"id": "V4", "national_id": "N004", "first_name": "Mary", "last_name": "Chebet", "station_id": "S3"},
    ],
}

BALLOTS = (
    "voter_id|position_id|candidate_id|cast_at\n"
    "V1|PRES|A|2026-08-09T08:00:00Z\n"
    "V2|PRES|A|2026-08-09T08:30:00Z\n"
    "V4|PRES|E|2026-08-09T09:00:00Z\n"
    "V1|MP|B|2026-08-09T08:01:00Z\n"
    "V4|MP|G|2026-08-09T09:01:00Z\n"
    "V4|MP|G|2026-08-09T09:02:00Z\n"
    "V9|MP|G|\n"
)


@pytest.fixture
def mock_database():
    session = AsyncMock()
    opened = MagicMock()
    opened.return_value.__aenter__ = AsyncMock(return_value=session)
    opened.return_value.__aexit__ = AsyncMock(return_value=False)
    with (
        patch("election_api.core.database.init_engine"),
        patch("election_api.core.database.dispose_engine", new_callable=AsyncMock) as mock_dispose,
        patch("election_api.core.database.open_session", opened),
    ):
        yield mock_dispose


@pytest.fixture
def sqlite_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
    """File-backed database with the schema created, shared across CLI invocations."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'election.db'}"

    async def _create() -> None:
        engine = create_async_engine(url)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        await engine.dispose()

    asyncio.run(_create())
    monkeypatch.setenv("DATABASE_URL", url)
    return url


class TestRegistryLoad:
    def test_invalid_document(self, tmp_path: Path) -> None:
        path = tmp_path / "registry.json"
        path.write_text(json.dumps({"positions": [{"id": "PRES", "title": "President", "kind": "county"}]}))

        result = runner.invoke(app, ["registry", "load", str(path)])

        assert result.exit_code == 1
        assert "Invalid registry document" in result.output

    def test_missing_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["registry", "load", str(tmp_path / "absent.json")])
        assert result.exit_code != 0


class TestBallotsImport:
    def test_prints_summary_and_row_errors(self, mock_database, tmp_path: Path) -> None:
        path = tmp_path / "ballots.csv"
        path.write_text(BALLOTS)
        outcome = BallotImportResult(
            total_rows=7, imported=6, spoiled=0, rejected=1, errors=[{"row": 7, "error": "unknown voter 'V9'"}]
        )

        with patch(
            "election_api.services.import_service.import_ballots", new_callable=AsyncMock, return_value=outcome
        ) as mock_import:
            result = runner.invoke(app, ["ballots", "import", str(path), "--batch-size", "2", "--no-reconcile"])

        assert result.exit_code == 0
        assert "imported: 6" in result.output
        assert "row 7: unknown voter 'V9'" in result.output
        assert mock_import.await_args.args[2] == 2
        mock_database.assert_awaited_once()

    def test_unreadable_file_exits_1(self, mock_database, tmp_path: Path) -> None:
        path = tmp_path / "ballots.csv"
        path.write_text("nothing useful")

        with patch(
            "election_api.services.import_service.import_ballots",
            new_callable=AsyncMock,
            side_effect=ValueError("Cannot detect delimiter"),
        ):
            result = runner.invoke(app, ["ballots", "import", str(path)])

        assert result.exit_code == 1
        assert "Cannot detect delimiter" in result.output


class TestVoterToken:
    def test_prints_token(self, mock_database) -> None:
        with patch(
            "election_api.services.auth_service.issue_voter_token",
            new_callable=AsyncMock,
            return_value=TokenResponse(access_token="voter-session-token", expires_in=900),
        ):
            result = runner.invoke(app, ["voter", "token", "V1"])

        assert result.exit_code == 0
        assert "voter-session-token" in result.output
        assert "Expires in 15 minutes" in result.output

    def test_unknown_voter(self, mock_database) -> None:
        with patch(
            "election_api.services.auth_service.issue_voter_token",
            new_callable=AsyncMock,
            side_effect=VoterNotFoundError("Voter 'V99' not found"),
        ):
            result = runner.invoke(app, ["voter", "token", "V99"])

        assert result.exit_code == 1
        assert "V99" in result.output


class TestUserCreate:
    _ARGS = [
        "user",
        "create",
        "--username",
        "returning-officer",
        "--email",
        "ro@elections.org",
        "--password",
        "testpassword123",
        "--role",
        "admin",
    ]

    def test_created(self, mock_database) -> None:
        user = MagicMock(username="returning-officer", role="admin")
        with patch("election_api.services.auth_service.create_user", new_callable=AsyncMock, return_value=user):
            result = runner.invoke(app, self._ARGS)

        assert result.exit_code == 0
        assert "User 'returning-officer' created with role 'admin'" in result.output

    def test_existing_user_skipped_with_flag(self, mock_database) -> None:
        with patch(
            "election_api.services.auth_service.create_user",
            new_callable=AsyncMock,
            side_effect=ValueError("Username 'returning-officer' already exists"),
        ):
            result = runner.invoke(app, [*self._ARGS, "--if-not-exists"])

        assert result.exit_code == 0
        assert "skipping" in result.output

    def test_existing_user_fails_without_flag(self, mock_database) -> None:
        with patch(
            "election_api.services.auth_service.create_user",
            new_callable=AsyncMock,
            side_effect=ValueError("Username 'returning-officer' already exists"),
        ):
            result = runner.invoke(app, self._ARGS)

        assert result.exit_code == 1


class TestEndToEnd:
    def test_load_import_check_and_list(self, sqlite_file: str, tmp_path: Path) -> None:
        registry_path = tmp_path / "registry.json"
        registry_path.write_text(json.dumps(REGISTRY))
        ballots_path = tmp_path / "ballots.csv"
        ballots_path.write_text(BALLOTS)

        loaded = runner.invoke(app, ["registry", "load", str(registry_path)])
        assert loaded.exit_code == 0, loaded.output
        assert "candidates" in loaded.output

        before = runner.invoke(app, ["results", "check"])
        assert before.exit_code == 1

        imported = runner.invoke(app, ["ballots", "import", str(ballots_path)])
        assert imported.exit_code == 0, imported.output
        assert "imported: 6" in imported.output
        assert "rejected: 1" in imported.output

        after = runner.invoke(app, ["results", "check"])
        assert after.exit_code == 0, after.output
        assert "Consistent: 3 scope keys checked" in after.output

        winners = runner.invoke(app, ["results", "winners"])
        assert winners.exit_code == 0
        assert "Amina Otieno" in winners.output
        assert "Brian Kip" in winners.output
        # V4's second MP ballot voids both of their MP ballots, leaving G alone in C2 at zero
        [george] = [line for line in winners.output.splitlines() if "George Ochieng" in line]
        assert george.split()[-1] == "0"
