import json
import logging

import pytest
from sqlalchemy import text

from freelancehub.core.logging import setup_logging
from freelancehub.routers import health as health_module


@pytest.fixture
def migrated_engine(engine, monkeypatch):
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE alembic_version (version_num VARCHAR(32) NOT NULL)"))
        conn.execute(text("INSERT INTO alembic_version (version_num) VALUES ('20260101_0001')"))
    monkeypatch.setattr(health_module, "get_engine", lambda: engine)
    return engine


@pytest.mark.anyio
async def test_healthcheck_ok(monkeypatch, client, migrated_engine):
    monkeypatch.setattr(health_module, "_expected_migration_head", lambda: "20260101_0001")

    response = await client.get("/health")
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert payload["app"] == "freelancehub-backend"
    assert payload["env"] == "test"
    assert payload["db_status"] == "ok"
    assert payload["migrations_status"] == "up_to_date"
    assert payload["notification_append_attempts"] >= 1


@pytest.mark.anyio
async def test_health_reports_stale_schema(monkeypatch, client, migrated_engine):
    monkeypatch.setattr(health_module, "_expected_migration_head", lambda: "20270101_0002")

    payload = (await client.get("/health")).json()
    assert payload["status"] == "degraded"
    assert payload["migrations_ok"] is False
    assert payload["migrations_status"] == "out_of_date"


@pytest.mark.anyio
async def test_health_degrades_on_db_failure(monkeypatch, client):
    class BrokenEngine:
        def connect(self):  # pragma: no cover - simple stub
            raise RuntimeError("DB down")

    monkeypatch.setattr(health_module, "get_engine", lambda: BrokenEngine())

    response = await client.get("/health")
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "degraded"
    assert payload["db_status"] == "error"
    assert payload["db_ok"] is False
    assert payload["migrations_status"] == "unknown"


def test_setup_logging_emits_json(capsys):
    root = logging.getLogger()
    previous = list(root.handlers), root.level
    try:
        setup_logging("INFO")
        logging.getLogger("freelancehub.test").info("Escrow funded", extra={"escrow_id": 7})
        line = capsys.readouterr().err.strip().splitlines()[-1]
        record = json.loads(line)
        assert record["message"] == "Escrow funded"
        assert record["escrow_id"] == 7
        assert record["levelname"] == "INFO"
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
        for handler in previous[0]:
            root.addHandler(handler)
        root.setLevel(previous[1])
