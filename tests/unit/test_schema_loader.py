"""Unit tests for project module loading and schema building."""

from ariadne import ScalarType
import pytest
from starlette.testclient import TestClient

from graphql_hub.errors import TenantArtifactError
from graphql_hub.project_module import FilesystemModuleLoader, ProjectModule
from graphql_hub.schema_loader import SchemaLoader, build_bindables, build_schema
from graphql_hub.store import ProjectDirectory


@pytest.mark.unit
class TestFilesystemModuleLoader:
    def test_loads_type_defs_and_resolvers(self, make_project, projects_root):
        make_project("demo")

        module = FilesystemModuleLoader().load(ProjectDirectory(projects_root, "demo"))

        assert "hello: String!" in module.type_defs
        assert set(module.resolvers["Query"]) == {"hello", "projectName"}

    def test_reexecutes_resolvers_on_every_load(self, make_project, projects_root):
        directory = make_project("demo")
        loader = FilesystemModuleLoader()
        first = loader.load(ProjectDirectory(projects_root, "demo"))

        (directory / "resolvers.py").write_text("resolvers = {'Query': {}}\n")
        second = loader.load(ProjectDirectory(projects_root, "demo"))

        assert first.resolvers != second.resolvers

    @pytest.mark.parametrize(
        ("overrides", "message"),
        [
            ({"type_defs": None}, "missing typeDefs.graphql"),
            ({"resolvers": None}, "missing resolvers.py"),
            ({"type_defs": "type Query {"}, "invalid typeDefs.graphql"),
            ({"resolvers": "raise RuntimeError('boom')\n"}, "error executing resolvers.py"),
            ({"resolvers": "import sys\nsys.exit(3)\n"}, "error executing resolvers.py: SystemExit"),
            ({"resolvers": "resolvers = 42\n"}, "must define a 'resolvers' mapping"),
        ],
    )
    def test_broken_artifacts(self, make_project, projects_root, overrides, message):
        make_project("broken", **overrides)

        with pytest.raises(TenantArtifactError, match=message):
            FilesystemModuleLoader().load(ProjectDirectory(projects_root, "broken"))


@pytest.mark.unit
class TestBuildSchema:
    def test_bindables_pass_through(self):
        scalar = ScalarType("Date")
        bindables = build_bindables("demo", {"Date": scalar, "Query": {"hello": lambda *_: "hi"}})

        assert bindables[0] is scalar
        assert bindables[1].name == "Query"

    def test_non_callable_resolver(self):
        with pytest.raises(TenantArtifactError, match="not callable"):
            build_bindables("demo", {"Query": {"hello": "hi"}})

    def test_non_mapping_type_entry(self):
        with pytest.raises(TenantArtifactError, match="must be a mapping"):
            build_bindables("demo", {"Query": ["hello"]})

    def test_resolver_for_unknown_type(self):
        module = ProjectModule(type_defs="type Query { hello: String }", resolvers={"Missing": {"x": len}})

        with pytest.raises(TenantArtifactError, match="schema does not match resolvers"):
            build_schema("demo", module)


@pytest.mark.unit
class TestSchemaLoader:
    def test_load_builds_routable_project(self, make_project, projects_root):
        make_project("demo", meta={"id": "abc", "name": "Demo"})

        loaded = SchemaLoader(projects_root).load("demo")

        assert loaded.alias == "demo"
        assert loaded.prefix == "/demo"
        assert loaded.graphql_path == "/demo/graphql"
        assert loaded.project.id == "abc"
        assert loaded.meta.name == "Demo"

    def test_project_app_serves_meta_and_graphql(self, make_project, projects_root):
        make_project("demo", meta={"id": "abc", "name": "Demo"})
        client = TestClient(SchemaLoader(projects_root).load("demo").app)

        assert client.get("/").json() == {"id": "abc", "name": "Demo"}
        response = client.post("/graphql", json={"query": "{ hello projectName }"})
        assert response.json() == {"data": {"hello": "world", "projectName": "Demo"}}

    def test_missing_directory(self, projects_root):
        with pytest.raises(TenantArtifactError, match="project directory not found"):
            SchemaLoader(projects_root).load("ghost")

    def test_custom_module_loader(self, make_project, projects_root):
        make_project("demo", type_defs=None, resolvers=None)

        class StaticLoader:
            def load(self, directory):
                return ProjectModule(type_defs="type Query { ping: String }", resolvers={"Query": {"ping": lambda *_: "pong"}})

        loaded = SchemaLoader(projects_root, StaticLoader()).load("demo")
        response = TestClient(loaded.app).post("/graphql", json={"query": "{ ping }"})

        assert response.json() == {"data": {"ping": "pong"}}
