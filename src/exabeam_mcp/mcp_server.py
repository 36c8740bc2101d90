import logging
import sys
from typing import Annotated, Literal, Optional

import anyio
from fastmcp import FastMCP
from fastmcp.exceptions import NotFoundError, ToolError
from fastmcp.server.middleware import Middleware, MiddlewareContext
from fastmcp.tools.tool import ToolResult
from mcp.types import TextContent
from pydantic import Field, ValidationError

from exabeam_mcp import exabeam_client
from exabeam_mcp.config import ExabeamConfig, ServerSettings, configure_logging
from exabeam_mcp.errors import ConfigError, ExabeamError

logger = logging.getLogger(__name__)

SERVER_NAME = "exabeam-mcp-server"


def _arguments(**kwargs):
    # Unset optional parameters are left out so the handler defaults apply.
    return {key: value for key, value in kwargs.items() if value is not None}


async def _call_tool_in_thread(config: ExabeamConfig, name: str, arguments: dict) -> str:
    # requests blocks; overlapping tool calls each get a worker thread.
    return await anyio.to_thread.run_sync(exabeam_client.call_tool, config, name, arguments)


class PassThroughMiddleware(Middleware):
    """
    FastMCP answers unknown tool names and arguments that fail the declared
    types with a protocol error. Those calls are handed to
    exabeam_client.call_tool with the raw arguments instead, so every
    result is one text block.
    """

    def __init__(self, config: ExabeamConfig):
        self.config = config

    async def on_call_tool(self, context: MiddlewareContext, call_next):
        try:
            return await call_next(context)
        except (NotFoundError, ToolError, ValidationError) as e:
            name = context.message.name
            logger.info("Passing %s through with raw arguments: %s", name, e)
            text = await _call_tool_in_thread(self.config, name, context.message.arguments or {})
            return ToolResult(content=[TextContent(type="text", text=text)])


def create_server(config: ExabeamConfig) -> FastMCP:
    """
    Build the MCP server with the five Exabeam tools registered.
    Parameter names are camelCase to match what MCP clients already send.
    """
    mcp = FastMCP(SERVER_NAME)
    mcp.add_middleware(PassThroughMiddleware(config))
    registered = []

    def tool(name, description):
        registered.append(name)
        return mcp.tool(name=name, description=description)

    @tool(
        name="search_events",
        description="Search for security events in Exabeam SIEM",
    )
    async def search_events(
        query: Annotated[str, Field(description='Search query (e.g., "user:john.doe AND action:login")')],
        startTime: Annotated[
            Optional[str], Field(description='Start time in ISO format (e.g., "2024-01-01T00:00:00Z")')
        ] = None,
        endTime: Annotated[
            Optional[str], Field(description='End time in ISO format (e.g., "2024-01-02T00:00:00Z")')
        ] = None,
        limit: Annotated[float, Field(description="Maximum number of results (default: 100)")] = 100,
    ):
        return await _call_tool_in_thread(
            config,
            "search_events",
            _arguments(query=query, startTime=startTime, endTime=endTime, limit=limit),
        )

    @tool(
        name="get_user_timeline",
        description="Get timeline of activities for a specific user",
    )
    async def get_user_timeline(
        username: Annotated[str, Field(description="Username to investigate")],
        days: Annotated[float, Field(description="Number of days to look back (default: 7)")] = 7,
    ):
        return await _call_tool_in_thread(
            config, "get_user_timeline", _arguments(username=username, days=days)
        )

    @tool(
        name="get_notable_events",
        description="Retrieve notable/high-risk events",
    )
    async def get_notable_events(
        severity: Annotated[
            Literal["low", "medium", "high", "critical"],
            Field(description="Minimum severity level (low, medium, high, critical)"),
        ] = "medium",
        hours: Annotated[float, Field(description="Look back period in hours (default: 24)")] = 24,
    ):
        return await _call_tool_in_thread(
            config, "get_notable_events", _arguments(severity=severity, hours=hours)
        )

    @tool(
        name="get_user_risk_score",
        description="Get risk score and risk factors for a user",
    )
    async def get_user_risk_score(
        username: Annotated[str, Field(description="Username to check risk score")],
    ):
        return await _call_tool_in_thread(config, "get_user_risk_score", _arguments(username=username))

    @tool(
        name="search_assets",
        description="Search for assets/devices in Exabeam",
    )
    async def search_assets(
        query: Annotated[str, Field(description="Asset search query (hostname, IP, etc.)")],
        assetType: Annotated[
            Literal["server", "workstation", "network_device", "all"],
            Field(description="Type of asset (server, workstation, network_device)"),
        ] = "all",
    ):
        return await _call_tool_in_thread(
            config, "search_assets", _arguments(query=query, assetType=assetType)
        )

    if sorted(registered) != sorted(exabeam_client.TOOL_HANDLERS):
        raise ExabeamError(
            f"Registered tools {sorted(registered)} do not match handlers "
            f"{sorted(exabeam_client.TOOL_HANDLERS)}"
        )

    return mcp


def main():
    try:
        settings = ServerSettings.from_env()
        configure_logging(settings.log_level)
        config = ExabeamConfig.from_env()
    except ConfigError as e:
        configure_logging()
        logger.critical("Configuration error: %s", e)
        sys.exit(1)

    mcp = create_server(config)

    if settings.transport == "stdio":
        logger.info("Exabeam MCP server running on stdio")
        mcp.run()
    else:
        logger.info(
            "Exabeam MCP server running on %s://%s:%s", settings.transport, settings.host, settings.port
        )
        mcp.run(
            transport=settings.transport,
            host=settings.host,
            port=settings.port,
            log_level=settings.log_level,
        )


if __name__ == "__main__":
    main()
