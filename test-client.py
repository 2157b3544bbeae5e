import asyncio
import logging
import pprint
from typing import Any

from fastmcp import Client

from arch_mcp.config import load_settings
from arch_mcp.server import create_server

# --- Configuration ---
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


# --- Helper for printing results ---
def print_result(tool_name: str, result: Any):
    """Helper to log and pretty print results or errors."""
    logger.info(f"--- Result for {tool_name} ---")
    for block in result.content:
        pprint.pprint(getattr(block, "text", block))
    print("-" * 20 + "\n")


# Each entry is (tool name, arguments)
SMOKE_CALLS = [
    ("lunarcrush_tokens_search", {"query": "btc", "limit": 3}),
    ("lunarcrush_topics_search", {"limit": 5}),
    ("lunarcrush_general_search", {"query": "solana", "limit": 3}),
    ("lunarcrush_topic_details", {"topic": "bitcoin"}),
    ("lunarcrush_topic_posts", {"topic": "bitcoin", "limit": 3}),
    ("token_terminal_projects_search", {"query": "aave", "limit": 2}),
    ("token_terminal_projects_search_multiple", {"queries": ["uniswap", "gmx"]}),
    ("token_terminal_metric_availability", {"project_id": "aave"}),
    ("blum_tokens_search", {"query": "usd"}),
    ("blum_tokens_search_multiple", {"queries": ["sol", "usdt"], "network": "solana"}),
]


async def main():
    server = create_server(load_settings())
    async with Client(server) as client:
        tools = await client.list_tools()
        logger.info(f"Available tools: {[tool.name for tool in tools]}")

        for tool_name, arguments in SMOKE_CALLS:
            logger.info(f"--- Testing {tool_name} ---")
            try:
                result = await client.call_tool(tool_name, arguments)
                print_result(tool_name, result)
            except Exception as e:
                logger.error(f"Error calling {tool_name}: {e}", exc_info=True)


if __name__ == "__main__":
    # Needs LUNARCRUSH_API_KEY and TOKEN_TERMINAL_API_KEY in the environment or a .env file
    asyncio.run(main())
