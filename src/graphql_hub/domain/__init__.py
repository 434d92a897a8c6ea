"""Domain layer: project entities and alias rules."""

from graphql_hub.domain.alias import MIN_ALIAS_LENGTH, RESERVED_ALIASES, derive_alias, normalize_alias
from graphql_hub.domain.model import LoadedProject, Project, ProjectInput, ProjectMeta


__all__ = [
    "MIN_ALIAS_LENGTH",
    "RESERVED_ALIASES",
    "LoadedProject",
    "Project",
    "ProjectInput",
    "ProjectMeta",
    "derive_alias",
    "normalize_alias",
]
