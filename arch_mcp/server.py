import json
import logging
import math
from typing import Annotated, Any, Awaitable, List, Literal, Optional

import fastmcp
from pydantic import Field

from . import blum, coins, lunarcrush, tokenterminal
from .config import Settings, load_settings

logger = logging.getLogger(__name__)

BlumNetwork = Literal["solana", "bnb", "ton"]

INSTRUCTIONS = """This server provides read-only search tools over crypto market and social data.
Available tools:
- lunarcrush_tokens_search(query: str, limit: int = 10): Tokens from the LunarCrush coins listing.
- lunarcrush_topics_search(query: str = None, limit: int = 10): Social topics ranked by LunarCrush.
- lunarcrush_general_search(query: str, limit: int = 5): Tokens and topics matching one query.
- lunarcrush_topic_details(topic: str): Breakdown of a single topic.
- lunarcrush_topic_posts(topic: str, limit: int = 10, startTime: str = None): Top posts for a topic.
- token_terminal_projects_search(query: str, limit: int = 5): Token Terminal projects with metric availability.
- token_terminal_projects_search_multiple(queries: List[str]): Up to 5 project searches at once.
- token_terminal_metric_availability(project_id: str): Metric availability for one project.
- blum_tokens_search(query: str, network: str = None, limit: int = 10): Local Blum token listings.
- blum_tokens_search_multiple(queries: List[str], network: str = None, limit: int = 5): Up to 5 Blum searches at once.
"""


# --- Helpers ---
def _log_request(tool_name: str, **params) -> None:
    param_str = ", ".join(f"{k}={v!r}" for k, v in params.items())
    logger.info(f"{tool_name} called with: {param_str}")


def _json_safe(value: Any) -> Any:
    # NaN and infinities are not JSON, they are rendered as null
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {key: _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(item) for item in value]
    return value


async def _respond(tool_name: str, error_prefix: str, call: Awaitable[Any]) -> str:
    """Awaits a client call and renders the result, or the error, as tool text."""
    try:
        result = await call
    except Exception as e:
        logger.exception(f"Error in {tool_name} tool: {e}")
        return f"{error_prefix}: {e}"
    return json.dumps(_json_safe(result), indent=2, ensure_ascii=False, allow_nan=False)


def create_server(settings: Settings) -> fastmcp.FastMCP:
    """Builds the MCP server with every search tool bound to the given settings."""
    mcp = fastmcp.FastMCP(name="ARCH AI MCP Server", instructions=INSTRUCTIONS)

    lc_key = settings.lunarcrush_api_key or ""
    tt_key = settings.token_terminal_api_key or ""
    timeout = settings.timeout_ms

    # --- LunarCrush Tools ---
    @mcp.tool(
        name="lunarcrush_tokens_search",
        description="Search and filter cryptocurrency tokens from LunarCrush API",
    )
    async def lunarcrush_tokens_search(
        query: Annotated[str, Field(description="Search query to filter tokens (case insensitive, partial match on symbol, name, or topic)")],
        limit: Annotated[int, Field(ge=0, description="Maximum number of results to return (default: 10)")] = 10,
    ) -> str:
        _log_request("lunarcrush_tokens_search", query=query, limit=limit)
        return await _respond(
            "lunarcrush_tokens_search",
            "Error searching LunarCrush tokens",
            coins.search_tokens(lc_key, timeout, query, limit),
        )

    @mcp.tool(
        name="lunarcrush_topics_search",
        description="Search social topics ranked by LunarCrush, optionally filtered by topic or title",
    )
    async def lunarcrush_topics_search(
        query: Annotated[Optional[str], Field(description="Optional search query to filter topics (case insensitive, partial match on topic or title)")] = None,
        limit: Annotated[int, Field(ge=0, description="Maximum number of results to return (default: 10)")] = 10,
    ) -> str:
        _log_request("lunarcrush_topics_search", query=query, limit=limit)
        return await _respond(
            "lunarcrush_topics_search",
            "Error searching LunarCrush topics",
            lunarcrush.search_topics(lc_key, timeout, query, limit),
        )

    @mcp.tool(
        name="lunarcrush_general_search",
        description="Search LunarCrush tokens and topics at the same time",
    )
    async def lunarcrush_general_search(
        query: Annotated[str, Field(description="Search query to filter both tokens and topics (case insensitive, partial match)")],
        limit: Annotated[int, Field(ge=0, description="Maximum number of results to return per type (default: 5)")] = 5,
    ) -> str:
        _log_request("lunarcrush_general_search", query=query, limit=limit)
        return await _respond(
            "lunarcrush_general_search",
            "Error performing LunarCrush search",
            lunarcrush.general_search(lc_key, timeout, query, limit),
        )

    @mcp.tool(
        name="lunarcrush_topic_details",
        description="Get detailed LunarCrush metrics for a single topic",
    )
    async def lunarcrush_topic_details(
        topic: Annotated[str, Field(description="Topic identifier to get detailed information about (e.g. 'bitcoin')")],
    ) -> str:
        _log_request("lunarcrush_topic_details", topic=topic)
        return await _respond(
            "lunarcrush_topic_details",
            "Error fetching LunarCrush topic details",
            lunarcrush.get_topic_details(lc_key, timeout, topic),
        )

    @mcp.tool(
        name="lunarcrush_topic_posts",
        description="Get the top social posts for a LunarCrush topic",
    )
    async def lunarcrush_topic_posts(
        topic: Annotated[str, Field(description="Topic identifier to get top posts for (e.g. 'bitcoin')")],
        limit: Annotated[int, Field(ge=0, description="Maximum number of posts to return (default: 10)")] = 10,
        startTime: Annotated[Optional[str], Field(description="Optional start time as ISO timestamp (e.g. '2023-04-01T00:00:00Z'). If provided, returns top posts for the time range. If not provided, returns top posts from the last 24 hours")] = None,
    ) -> str:
        _log_request("lunarcrush_topic_posts", topic=topic, limit=limit, startTime=startTime)
        return await _respond(
            "lunarcrush_topic_posts",
            "Error fetching LunarCrush topic posts",
            lunarcrush.get_topic_posts(lc_key, timeout, topic, limit, startTime),
        )

    # --- Token Terminal Tools ---
    @mcp.tool(
        name="token_terminal_projects_search",
        description="Search Token Terminal projects and include their metric availability",
    )
    async def token_terminal_projects_search(
        query: Annotated[str, Field(description="Search query to filter projects (case insensitive, partial match on name, project_id or coingecko_id)")],
        limit: Annotated[int, Field(ge=0, le=tokenterminal.MAX_PROJECTS, description="Maximum number of results to return (default: 5, max: 10)")] = 5,
    ) -> str:
        _log_request("token_terminal_projects_search", query=query, limit=limit)
        return await _respond(
            "token_terminal_projects_search",
            "Error searching Token Terminal projects",
            tokenterminal.search_projects(tt_key, timeout, query, limit),
        )

    @mcp.tool(
        name="token_terminal_projects_search_multiple",
        description="Run several Token Terminal project searches at once (first 5 queries only)",
    )
    async def token_terminal_projects_search_multiple(
        queries: Annotated[List[str], Field(description="Array of search queries to filter projects (maximum 5 queries processed)")],
    ) -> str:
        _log_request("token_terminal_projects_search_multiple", queries=queries)
        return await _respond(
            "token_terminal_projects_search_multiple",
            "Error searching Token Terminal projects",
            tokenterminal.search_projects_multiple(tt_key, timeout, queries),
        )

    @mcp.tool(
        name="token_terminal_metric_availability",
        description="Get the metrics, chains and sources Token Terminal tracks for a project",
    )
    async def token_terminal_metric_availability(
        project_id: Annotated[str, Field(description="Token Terminal project identifier (e.g. 'aave')")],
    ) -> str:
        _log_request("token_terminal_metric_availability", project_id=project_id)
        return await _respond(
            "token_terminal_metric_availability",
            "Error fetching project metric availability",
            tokenterminal.get_project_metric_availability(tt_key, timeout, project_id),
        )

    # --- Blum Tools ---
    @mcp.tool(
        name="blum_tokens_search",
        description="Search local Blum token listings by name or symbol",
    )
    async def blum_tokens_search(
        query: Annotated[str, Field(description="Search query to filter tokens (case insensitive, partial match on symbol or name)")],
        network: Annotated[Optional[BlumNetwork], Field(description="Optional network name to search in (e.g., 'solana', 'bnb', 'ton'). If not provided, searches in all networks.")] = None,
        limit: Annotated[int, Field(ge=0, description="Maximum number of results to return (default: 10)")] = 10,
    ) -> str:
        _log_request("blum_tokens_search", query=query, network=network, limit=limit)
        return await _respond(
            "blum_tokens_search",
            "Error searching Blum tokens",
            blum.search_blum_tokens(query, network, limit, settings.blum_data_dir),
        )

    @mcp.tool(
        name="blum_tokens_search_multiple",
        description="Run several Blum token searches at once (first 5 queries only)",
    )
    async def blum_tokens_search_multiple(
        queries: Annotated[List[str], Field(description="Array of search queries to filter tokens (case insensitive, partial match on symbol or name)")],
        network: Annotated[Optional[BlumNetwork], Field(description="Optional network name to search in (e.g., 'solana', 'bnb', 'ton'). If not provided, searches in all networks.")] = None,
        limit: Annotated[int, Field(ge=0, description="Maximum number of results to return per query (default: 5)")] = 5,
    ) -> str:
        _log_request("blum_tokens_search_multiple", queries=queries, network=network, limit=limit)
        return await _respond(
            "blum_tokens_search_multiple",
            "Error searching Blum tokens",
            blum.search_blum_tokens_multiple(queries, network, limit, settings.blum_data_dir),
        )

    return mcp


# --- Main Execution ---
def main() -> None:
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    settings = load_settings()
    logger.info("Starting FastMCP server for ARCH AI search tools...")
    create_server(settings).run()
