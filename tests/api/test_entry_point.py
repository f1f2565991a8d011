"""
Tests for the process entry point (``membership_api.main``).
"""

from uuid import uuid4

from fastapi.testclient import TestClient
from sqlalchemy import inspect

from membership_api.main import create_app_from_config
from membership_config.schema import DatabaseSettings, KernelConfig, WorkflowSettings


def _config(tmp_path, **workflow) -> KernelConfig:
    return KernelConfig(
        database=DatabaseSettings(url=f"sqlite:///{tmp_path / 'entry.db'}"),
        workflow=WorkflowSettings(**workflow),
    )


def test_app_wired_from_config(tmp_path):
    app = create_app_from_config(_config(tmp_path, rejection_placeholder="n/a"))

    engine = app.state.workflow_engine
    assert engine._rejection_placeholder == "n/a"

    with TestClient(app) as client:
        r = client.get(
            "/applications",
            headers={"X-Actor-Id": str(uuid4()), "X-Actor-Role": "NATIONAL_SECRETARIAT"},
        )
    assert r.status_code == 200
    assert r.json() == {"items": [], "count": 0}


def test_startup_creates_schema(tmp_path):
    app = create_app_from_config(_config(tmp_path))
    db_engine = app.state.db_engine
    assert not inspect(db_engine).has_table("membership_applications")

    with TestClient(app):
        assert inspect(db_engine).has_table("membership_applications")
        assert inspect(db_engine).has_table("application_events")
