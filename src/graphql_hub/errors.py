"""Error taxonomy shared by the registry, loaders, provisioning and router."""

from __future__ import annotations


class ProjectError(Exception):
    """Base class for project lifecycle errors.

    ``message_code`` is a stable machine-readable identifier surfaced to API
    clients next to the human-readable message.
    """

    message_code = "projectError"

    def __init__(self, message: str, *, message_code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if message_code is not None:
            self.message_code = message_code

    def to_dict(self) -> dict[str, str]:
        return {"message": self.message, "messageCode": self.message_code}


class InvalidAliasError(ProjectError):
    """Requested alias is malformed, too short, or reserved."""

    message_code = "aliasIllegal"


class AliasTakenError(ProjectError):
    """Alias already maps to a live project or an existing directory."""

    message_code = "projectExists"


class TenantArtifactError(ProjectError):
    """A project's on-disk artifacts are missing or malformed."""

    message_code = "artifactInvalid"

    def __init__(self, alias: str, message: str) -> None:
        super().__init__(f"[{alias}] {message}")
        self.alias = alias


class ProvisioningError(ProjectError):
    """External datastore initialization or migration failed."""

    message_code = "provisioningFailed"

    def __init__(
        self,
        message: str,
        *,
        output: str = "",
        command: list[str] | None = None,
        returncode: int | None = None,
    ) -> None:
        super().__init__(message)
        self.output = output
        self.command = command or []
        self.returncode = returncode


class ProjectNotFoundError(ProjectError):
    """No project is registered under the requested alias."""

    message_code = "projectDoesNotExist"

    def __init__(self, alias: str) -> None:
        super().__init__("project does not exist")
        self.alias = alias
