"""Tests for the assembled ASGI application."""

from __future__ import annotations

import json

import pytest
from starlette.testclient import TestClient

from graphql_hub.app import create_app
from graphql_hub.app_builder import AppBuilder


def write_config(tmp_path, projects_root, **provisioning) -> object:
    config = {
        "infrastructure": {"log_profiles": {"default": {"level": "info", "json_output": False}}},
        "projects": {"root": str(projects_root)},
        "provisioning": {"enabled": False, **provisioning},
    }
    path = tmp_path / "deployment.json"
    path.write_text(json.dumps(config))
    return path


@pytest.fixture
def app_client(tmp_path, projects_root, make_project):
    make_project("alpha", meta={"id": "a1", "name": "Alpha"})
    make_project("broken", type_defs="type Query {")
    app = create_app(write_config(tmp_path, projects_root))
    with TestClient(app) as client:
        yield client


@pytest.mark.unit
class TestAppEndpoints:
    def test_health_reports_loaded_and_failed_projects(self, app_client):
        payload = app_client.get("/health").json()

        assert payload["status"] == "degraded"
        assert payload["project_count"] == 1
        assert payload["projects"] == ["alpha"]
        assert set(payload["failed_projects"]) == {"broken"}
        assert payload["provisioning_enabled"] is False

    def test_metrics_endpoint(self, app_client):
        app_client.get("/alpha")
        response = app_client.get("/metrics")

        assert response.status_code == 200
        assert "hub_project_requests_total" in response.text

    def test_project_meta_and_graphql(self, app_client):
        assert app_client.get("/alpha").json() == {"id": "a1", "name": "Alpha"}
        response = app_client.post("/alpha/graphql", json={"query": "{ hello }"})
        assert response.json() == {"data": {"hello": "world"}}

    def test_broken_project_is_not_routable(self, app_client):
        response = app_client.get("/broken")

        assert response.status_code == 404
        assert response.json()["errors"][0]["messageCode"] == "projectDoesNotExist"

    def test_create_then_route(self, app_client, projects_root):
        mutation = 'mutation { createProject(input: {name: "Fresh Project"}) { alias graphqlUrl } }'

        created = app_client.post("/graphql", json={"query": mutation}).json()["data"]["createProject"]
        assert created == {"alias": "fresh-project", "graphqlUrl": "/fresh-project/graphql"}

        response = app_client.post(created["graphqlUrl"], json={"query": "{ customModels { name } }"})
        models = response.json()["data"]["customModels"]
        assert len(models) == 100
        assert models[0] == {"name": "Fresh Project 0"}
        assert (projects_root / "fresh-project").is_dir()

    def test_root_graphql_with_trailing_slash(self, app_client):
        response = app_client.post("/graphql/", json={"query": "{ projects { alias } }"})

        assert response.status_code == 200
        assert response.json() == {"data": {"projects": [{"alias": "alpha"}]}}

    def test_trace_id_header_is_accepted(self, app_client):
        response = app_client.get("/health", headers={"x-trace-id": "feedface"})

        assert response.status_code == 200


@pytest.mark.unit
class TestAppBuilder:
    def test_invalid_config_returns_none(self, tmp_path):
        path = tmp_path / "deployment.json"
        path.write_text(json.dumps({"infrastructure": {"log_profile": "missing"}}))

        assert AppBuilder(path).build() is None

    def test_env_driven_config(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PROJECTS_ROOT", str(tmp_path / "env-projects"))
        monkeypatch.setenv("PROVISIONING_ENABLED", "false")
        monkeypatch.setenv("JSON_LOGS", "false")
        builder = AppBuilder(tmp_path / "absent.json")

        app = builder.build()

        assert app is not None
        assert builder.env_driven_config is True
        assert builder.registry is not None
        assert builder.registry.projects_root == tmp_path / "env-projects"
        assert builder.registry.provisioner is None
        with TestClient(app) as client:
            assert client.get("/health").json()["status"] == "healthy"

    def test_provisioning_enabled_wires_worker(self, tmp_path, projects_root):
        builder = AppBuilder(
            write_config(tmp_path, projects_root, enabled=True, init_command=["echo"], timeout_seconds=30)
        )

        builder.build()

        assert builder.registry is not None
        worker = builder.registry.provisioner
        assert worker is not None
        assert worker.init_command == ["echo"]
        assert worker.timeout_seconds == 30
