"""Directory-backed project storage.

Layout under the projects root::

    <root>/<alias>/meta.json          {"id": ..., "name": ...}
    <root>/<alias>/typeDefs.graphql   GraphQL SDL
    <root>/<alias>/resolvers.py       module exposing ``resolvers``

Directories whose names start with ``.`` or ``__`` are never treated as
projects; new projects are assembled in ``.staging-*`` directories and renamed
into place once complete.
"""

from __future__ import annotations

import logging
from pathlib import Path
import shutil

from pydantic import ValidationError

from graphql_hub.domain.model import ProjectMeta
from graphql_hub.errors import TenantArtifactError


logger = logging.getLogger(__name__)

META_FILENAME = "meta.json"
TYPE_DEFS_FILENAME = "typeDefs.graphql"
RESOLVERS_FILENAME = "resolvers.py"
STAGING_PREFIX = ".staging-"
IGNORED_DIR_PREFIXES: tuple[str, ...] = (".", "__")

DEFAULT_TYPE_DEFS = '''type CustomModel {
  name: String
}

type Query {
  customModels: [CustomModel!]!
}

schema {
  query: Query
}
'''

DEFAULT_RESOLVERS_TEMPLATE = '''PROJECT_NAME = {name!r}


def resolve_custom_models(*_):
    return [{{"name": f"{{PROJECT_NAME}} {{index}}"}} for index in range(100)]


resolvers = {{
    "Query": {{
        "customModels": resolve_custom_models,
    }},
}}
'''


def scan_aliases(root: Path) -> list[str]:
    """Return alias candidates: visible subdirectories of ``root``, sorted."""
    if not root.exists():
        return []
    return sorted(
        entry.name
        for entry in root.iterdir()
        if entry.is_dir() and not entry.name.startswith(IGNORED_DIR_PREFIXES)
    )


class ProjectDirectory:
    """Paths and file access for a single project directory."""

    def __init__(self, root: Path, alias: str, *, path: Path | None = None) -> None:
        self.root = root
        self.alias = alias
        self.path = path or root / alias

    @property
    def meta_path(self) -> Path:
        return self.path / META_FILENAME

    @property
    def type_defs_path(self) -> Path:
        return self.path / TYPE_DEFS_FILENAME

    @property
    def resolvers_path(self) -> Path:
        return self.path / RESOLVERS_FILENAME

    def exists(self) -> bool:
        return self.path.exists()

    def read_meta(self) -> ProjectMeta:
        """Parse ``meta.json``.

        Raises:
            TenantArtifactError: if the file is missing, unreadable or invalid.
        """
        if not self.meta_path.is_file():
            raise TenantArtifactError(self.alias, f"missing {META_FILENAME}")
        try:
            raw = self.meta_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise TenantArtifactError(self.alias, f"cannot read {META_FILENAME}: {exc}") from exc
        try:
            return ProjectMeta.model_validate_json(raw)
        except ValidationError as exc:
            raise TenantArtifactError(self.alias, f"invalid {META_FILENAME}: {exc}") from exc

    def write_artifacts(self, meta: ProjectMeta, *, type_defs: str | None = None, resolvers: str | None = None) -> None:
        """Write the starter artifacts of a freshly created project."""
        self.path.mkdir(parents=True, exist_ok=True)
        self.meta_path.write_text(meta.model_dump_json(indent=2) + "\n", encoding="utf-8")
        self.type_defs_path.write_text(type_defs or DEFAULT_TYPE_DEFS, encoding="utf-8")
        self.resolvers_path.write_text(
            resolvers or DEFAULT_RESOLVERS_TEMPLATE.format(name=meta.name),
            encoding="utf-8",
        )


def staging_directory(root: Path, alias: str, project_id: str) -> ProjectDirectory:
    """Hidden working directory used while a project is being provisioned."""
    return ProjectDirectory(root, alias, path=root / f"{STAGING_PREFIX}{alias}-{project_id}")


def promote(staging: ProjectDirectory, target: ProjectDirectory) -> None:
    """Move a completed staging directory into its final location."""
    if target.exists():
        raise FileExistsError(f"Project directory already exists: {target.path}")
    staging.path.rename(target.path)
    logger.debug("Promoted %s -> %s", staging.path, target.path)


def discard(staging: ProjectDirectory) -> None:
    if staging.path.exists():
        shutil.rmtree(staging.path)
        logger.debug("Removed staging directory %s", staging.path)
