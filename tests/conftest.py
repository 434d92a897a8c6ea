"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Sequence
import json
from pathlib import Path

import pytest

from graphql_hub.provisioning import CommandResult


HELLO_TYPE_DEFS = """
type Query {
  hello: String!
  projectName: String!
}
"""

HELLO_RESOLVERS = """
def resolve_hello(*_):
    return "world"


def resolve_project_name(_, info):
    return info.context["meta"].name


resolvers = {
    "Query": {
        "hello": resolve_hello,
        "projectName": resolve_project_name,
    },
}
"""


def write_project(
    root: Path,
    alias: str,
    *,
    meta: dict | None = None,
    type_defs: str | None = HELLO_TYPE_DEFS,
    resolvers: str | None = HELLO_RESOLVERS,
) -> Path:
    """Create ``root/alias`` with the given artifacts; ``None`` skips a file."""
    directory = root / alias
    directory.mkdir(parents=True, exist_ok=True)
    if meta is not None:
        (directory / "meta.json").write_text(json.dumps(meta), encoding="utf-8")
    if type_defs is not None:
        (directory / "typeDefs.graphql").write_text(type_defs, encoding="utf-8")
    if resolvers is not None:
        (directory / "resolvers.py").write_text(resolvers, encoding="utf-8")
    return directory


class FakeRunner:
    """Command runner recording invocations and replaying canned results."""

    def __init__(self, results: Sequence[CommandResult] | None = None, exc: Exception | None = None) -> None:
        self.results = list(results or [])
        self.exc = exc
        self.calls: list[tuple[list[str], Path, float | None]] = []

    async def run(self, command: Sequence[str], *, cwd: Path, timeout: float | None) -> CommandResult:
        self.calls.append((list(command), cwd, timeout))
        if self.exc is not None:
            raise self.exc
        if self.results:
            return self.results.pop(0)
        return CommandResult(returncode=0, output="ok")


@pytest.fixture
def projects_root(tmp_path: Path) -> Path:
    root = tmp_path / "projects"
    root.mkdir()
    return root


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def make_project(projects_root: Path):
    """Factory writing a project directory under ``projects_root``."""

    def factory(alias: str, **kwargs) -> Path:
        kwargs.setdefault("meta", {"id": f"id-{alias}", "name": alias.title()})
        return write_project(projects_root, alias, **kwargs)

    return factory


@pytest.fixture
def runner_factory():
    return FakeRunner
