"""Unit tests for the project domain model."""

from pathlib import Path

from pydantic import ValidationError
import pytest

from graphql_hub.domain.model import Project, ProjectInput, ProjectMeta
from graphql_hub.errors import ProjectNotFoundError, ProvisioningError, TenantArtifactError


@pytest.mark.unit
class TestProjectMeta:
    def test_missing_name_defaults_to_id(self):
        assert ProjectMeta(id="abc").name == "abc"

    def test_blank_name_defaults_to_id(self):
        assert ProjectMeta(id="abc", name="   ").name == "abc"

    def test_extra_keys_are_preserved(self):
        meta = ProjectMeta.model_validate({"id": "abc", "name": "Demo", "owner": "team-a"})
        assert meta.as_record() == {"id": "abc", "name": "Demo", "owner": "team-a"}

    def test_id_is_required(self):
        with pytest.raises(ValidationError):
            ProjectMeta.model_validate({"name": "Demo"})

    def test_empty_id_rejected(self):
        with pytest.raises(ValidationError):
            ProjectMeta(id="")


@pytest.mark.unit
def test_project_urls_and_dict():
    project = Project.from_meta("demo", ProjectMeta(id="abc", name="Demo"), Path("/tmp/demo"))

    assert project.as_dict() == {
        "id": "abc",
        "alias": "demo",
        "name": "Demo",
        "url": "/demo",
        "graphqlUrl": "/demo/graphql",
    }


@pytest.mark.unit
def test_project_input_defaults():
    project_input = ProjectInput.model_validate({"name": "Demo"})
    assert project_input.alias is None


@pytest.mark.unit
class TestErrors:
    def test_not_found_payload(self):
        assert ProjectNotFoundError("nope").to_dict() == {
            "message": "project does not exist",
            "messageCode": "projectDoesNotExist",
        }

    def test_artifact_error_names_the_project(self):
        error = TenantArtifactError("demo", "missing meta.json")
        assert str(error) == "[demo] missing meta.json"
        assert error.message_code == "artifactInvalid"

    def test_provisioning_error_keeps_output(self):
        error = ProvisioningError("init failed", output="boom", command=["npx"], returncode=2)
        assert (error.output, error.command, error.returncode) == ("boom", ["npx"], 2)
        assert error.message_code == "provisioningFailed"
