"""Domain model for projects served by the hub.

- ``ProjectMeta`` mirrors ``meta.json`` on disk
- ``Project`` is the identity of a project (id, alias, name, directory)
- ``LoadedProject`` is a project whose schema and resolvers are ready to serve
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


if TYPE_CHECKING:
    from starlette.types import ASGIApp


class ProjectMeta(BaseModel):
    """Contents of ``<root>/<alias>/meta.json``."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(min_length=1)
    name: str | None = None

    @model_validator(mode="after")
    def _default_name(self) -> ProjectMeta:
        if not self.name or not self.name.strip():
            self.name = self.id
        return self

    def as_record(self) -> dict[str, Any]:
        """JSON-serializable record, as written to disk."""
        return self.model_dump(mode="json")


class ProjectInput(BaseModel):
    """Request to create a project; alias is derived from name when omitted."""

    name: str = ""
    alias: str | None = None


@dataclass(frozen=True)
class Project:
    id: str
    alias: str
    name: str
    directory: Path

    @property
    def url(self) -> str:
        return f"/{self.alias}"

    @property
    def graphql_url(self) -> str:
        return f"/{self.alias}/graphql"

    @classmethod
    def from_meta(cls, alias: str, meta: ProjectMeta, directory: Path) -> Project:
        return cls(id=meta.id, alias=alias, name=meta.name or meta.id, directory=directory)

    def as_dict(self) -> dict[str, str]:
        return {
            "id": self.id,
            "alias": self.alias,
            "name": self.name,
            "url": self.url,
            "graphqlUrl": self.graphql_url,
        }


@dataclass(frozen=True)
class LoadedProject:
    """A project bound to its request handler.

    ``app`` is an ASGI application expecting paths relative to ``prefix``.
    """

    project: Project
    meta: ProjectMeta
    app: ASGIApp
    prefix: str
    graphql_path: str

    @property
    def alias(self) -> str:
        return self.project.alias
