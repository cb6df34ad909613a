"""
IndexMeNow tool catalog.

Every tool is a uniform shim: validate arguments, resolve the session's
API key from the vault, call one IndexMeNow endpoint and return the JSON
response as text. Missing credentials and API failures are returned as
``isError`` results so the connection stays usable.
"""
import logging
from typing import Any
from dataclasses import dataclass
from collections.abc import Awaitable, Callable

import orjson
from pydantic import BaseModel, Field
from mcp.types import CallToolResult, TextContent, Tool

from .client import IndexMeNowClient
from .exceptions import ApiError, StoreError, ToolNotFound

logger = logging.getLogger("navigator.relay")

CREDENTIAL_NOT_FOUND = "IndexMeNow API key not found"
CREDENTIAL_UNAVAILABLE = "IndexMeNow API key could not be loaded, try again later"

CredentialResolver = Callable[[str | None], Awaitable[str | None]]


# ---------------------------------------------------------------------------
# Tool parameters
# ---------------------------------------------------------------------------

class NoParams(BaseModel):
    pass


class CheckProjectNameExistsParams(BaseModel):
    project_name: str = Field(description="Project name.")


class AddNewProjectParams(BaseModel):
    project_name: str = Field(
        description="The name of the project. It must be unique."
    )
    urls: list[str] = Field(
        description="An array of urls to be processed within the project."
    )


class AddNewUrlsToExistingProjectParams(BaseModel):
    project_id: int = Field(
        strict=True, description="The unique identifier of the project."
    )
    urls: list[str] = Field(description="An array of urls.")


class GetProjectUrlsStatusParams(BaseModel):
    project_id: int = Field(
        strict=True, description="The unique identifier of the project."
    )
    urls: list[str] | None = Field(default=None, description="An array of urls.")


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ToolSpec:
    """A tool and the API request it maps to."""

    name: str
    description: str
    params: type[BaseModel]
    # params -> (method, endpoint, body)
    build: Callable[[Any], tuple[str, str, dict[str, Any]]]

    def definition(self) -> Tool:
        return Tool(
            name=self.name,
            description=self.description,
            inputSchema=self.params.model_json_schema(),
        )


TOOLS: tuple[ToolSpec, ...] = (
    ToolSpec(
        name="get_credits_count",
        description=(
            "This tool allows you to retrieve the number of credits "
            "available in your account."
        ),
        params=NoParams,
        build=lambda p: ("GET", "/user/credits", {}),
    ),
    ToolSpec(
        name="get_all_projects",
        description=(
            "This tool allows you to retrieve a list of all the projects "
            "created by the user."
        ),
        params=NoParams,
        build=lambda p: ("GET", "/project/list", {}),
    ),
    ToolSpec(
        name="check_project_name_exists",
        description=(
            "This tool checks if a project with the given name exists for "
            "the current user, and returns its ID if found."
        ),
        params=CheckProjectNameExistsParams,
        build=lambda p: ("POST", "/project/exists", p.model_dump()),
    ),
    ToolSpec(
        name="add_new_project",
        description=(
            "This tool allows you to add a new project to IndexMeNow.com "
            "with urls."
        ),
        params=AddNewProjectParams,
        build=lambda p: ("POST", "/project/add", p.model_dump()),
    ),
    ToolSpec(
        name="add_new_urls_to_existing_project",
        description=(
            "This tool allows you to add new urls to an existing project, "
            "or to index completed urls again."
        ),
        params=AddNewUrlsToExistingProjectParams,
        build=lambda p: (
            "POST", f"/project/{p.project_id}/addurls", {"urls": p.urls},
        ),
    ),
    ToolSpec(
        name="get_project_urls_status",
        description="This tool allows you to get project urls status.",
        params=GetProjectUrlsStatusParams,
        build=lambda p: ("POST", f"/project/{p.project_id}", {"urls": p.urls}),
    ),
)


def text_result(text: str, is_error: bool = False) -> CallToolResult:
    return CallToolResult(
        content=[TextContent(type="text", text=text)],
        isError=is_error,
    )


class ToolCatalog:
    """Registered tools bound to a credential resolver and an API client."""

    def __init__(
        self,
        resolve_credential: CredentialResolver,
        client: IndexMeNowClient,
        tools: tuple[ToolSpec, ...] = TOOLS,
    ):
        self._resolve = resolve_credential
        self._client = client
        self._tools = {tool.name: tool for tool in tools}

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def list_tools(self) -> list[Tool]:
        return [tool.definition() for tool in self._tools.values()]

    def get(self, name: str) -> ToolSpec:
        try:
            return self._tools[name]
        except KeyError:
            raise ToolNotFound(name) from None

    async def call(
        self,
        name: str,
        arguments: dict[str, Any] | None,
        session_id: str | None,
    ) -> CallToolResult:
        """Run a tool on behalf of a session.

        Raises:
            ToolNotFound: If the tool is not registered.
            pydantic.ValidationError: If the arguments are invalid.
        """
        tool = self.get(name)
        params = tool.params.model_validate(arguments or {})
        try:
            api_key = await self._resolve(session_id)
        except StoreError as err:
            logger.error(
                "Credential lookup failed for tool=%s session=%s: %s",
                name, session_id, err,
            )
            return text_result(CREDENTIAL_UNAVAILABLE, is_error=True)
        if not api_key:
            return text_result(CREDENTIAL_NOT_FOUND, is_error=True)

        method, endpoint, body = tool.build(params)
        try:
            data = await self._client.request(endpoint, body, method, api_key)
        except ApiError as err:
            return text_result(f"Error: {err}", is_error=True)
        return text_result(orjson.dumps(data, option=orjson.OPT_INDENT_2).decode())
