"""Root GraphQL surface for managing projects (served at ``/graphql``)."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any

from ariadne import MutationType, QueryType, ScalarType, make_executable_schema
from ariadne.asgi import GraphQL
from graphql import GraphQLError, GraphQLSchema, StringValueNode

from graphql_hub.domain.model import ProjectInput
from graphql_hub.errors import ProjectError, ProvisioningError


if TYPE_CHECKING:
    from graphql import GraphQLResolveInfo
    from starlette.requests import Request

    from graphql_hub.domain.model import LoadedProject
    from graphql_hub.registry import ProjectRegistry


logger = logging.getLogger(__name__)

TYPE_DEFS = '''
type Project {
  id: ID!
  alias: String!
  name: String!
  url: String!
  graphqlUrl: String!
}

type Query {
  projects: [Project!]!
  reloadProjects: [Project!]!
}

"""
Url-safe string. Can only contain [A-Za-z0-9_-].
"""
scalar UrlString

input ProjectInput {
  name: String!
  """
  Used for folders & urls. Will be generated based on name and id if omitted.
  """
  alias: UrlString
}

type Mutation {
  createProject(input: ProjectInput!): Project!
}

schema {
  query: Query
  mutation: Mutation
}
'''

_FORBIDDEN = re.compile(r"[^A-Za-z0-9_-]")

url_string = ScalarType("UrlString")
query = QueryType()
mutation = MutationType()


@url_string.serializer
def serialize_url_string(value: Any) -> Any:
    return value


@url_string.value_parser
def parse_url_string(value: Any) -> str:
    if not isinstance(value, str):
        raise GraphQLError("Value is not a string.", extensions={"messageCode": "requiresString"})
    forbidden = _FORBIDDEN.findall(value)
    if forbidden:
        raise GraphQLError(
            "String contains forbidden characters.",
            extensions={"messageCode": "forbiddenCharacters", "characters": forbidden},
        )
    return value


@url_string.literal_parser
def parse_url_string_literal(ast: Any, _variables: Any = None) -> str:
    if not isinstance(ast, StringValueNode):
        raise GraphQLError("Value is not a string.", extensions={"messageCode": "requiresString"})
    return parse_url_string(ast.value)


def _project_records(projects: list[LoadedProject]) -> list[dict[str, str]]:
    return [loaded.project.as_dict() for loaded in projects]


@query.field("projects")
def resolve_projects(_: Any, info: GraphQLResolveInfo) -> list[dict[str, str]]:
    registry: ProjectRegistry = info.context["registry"]
    return _project_records(registry.list_projects())


@query.field("reloadProjects")
async def resolve_reload_projects(_: Any, info: GraphQLResolveInfo) -> list[dict[str, str]]:
    registry: ProjectRegistry = info.context["registry"]
    await registry.reload()
    return _project_records(registry.list_projects())


@mutation.field("createProject")
async def resolve_create_project(_: Any, info: GraphQLResolveInfo, input: dict[str, Any]) -> dict[str, str]:
    registry: ProjectRegistry = info.context["registry"]
    try:
        project = await registry.create_project(ProjectInput.model_validate(input))
    except ProjectError as exc:
        extensions: dict[str, Any] = {"messageCode": exc.message_code}
        if isinstance(exc, ProvisioningError):
            extensions["output"] = exc.output
        logger.info("createProject rejected (%s): %s", exc.message_code, exc.message)
        raise GraphQLError(exc.message, extensions=extensions) from exc
    return project.as_dict()


def build_root_schema() -> GraphQLSchema:
    return make_executable_schema(TYPE_DEFS, query, mutation, url_string)


def create_root_graphql_app(registry: ProjectRegistry, *, debug: bool = False) -> GraphQL:
    """ASGI GraphQL app whose resolvers operate on ``registry``."""

    def context_factory(request: Request, _data: Any = None) -> dict[str, Any]:
        return {"request": request, "registry": registry}

    return GraphQL(build_root_schema(), context_value=context_factory, debug=debug)
