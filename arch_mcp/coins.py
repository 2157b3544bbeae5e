import httpx
import logging
from typing import Dict, Any, List

from .errors import ArchMcpError, RemoteError, FormatError

logger = logging.getLogger(__name__)

COINS_LIST_URL = "https://lunarcrush.com/api4/public/coins/list/v2"

TOKEN_FIELDS = (
    "id",
    "symbol",
    "name",
    "price",
    "price_btc",
    "volume_24h",
    "market_cap",
    "market_cap_rank",
    "percent_change_1h",
    "percent_change_24h",
    "percent_change_7d",
    "percent_change_30d",
    "galaxy_score",
    "sentiment",
    "social_volume_24h",
    "social_dominance",
    "market_dominance",
    "topic",
    "categories",
    "logo",
)


def _matches(token: Dict[str, Any], query_lower: str) -> bool:
    for field in ("symbol", "name", "topic"):
        value = token.get(field)
        if isinstance(value, str) and query_lower in value.lower():
            return True
    return False


async def search_tokens(api_key: str, timeout: int, query: str, limit: int = 10) -> List[Dict[str, Any]]:
    """
    Searches the LunarCrush coins listing for tokens whose symbol, name or topic contains the query.
    Args:
        api_key (str): LunarCrush bearer key.
        timeout (int): Request timeout in milliseconds.
        query (str): Case insensitive substring to look for.
        limit (int): Maximum number of tokens to return. Defaults to 10.
    Returns:
        List[Dict[str, Any]]: Matching tokens, restricted to TOKEN_FIELDS.
    """
    headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}
    try:
        async with httpx.AsyncClient(timeout=timeout / 1000) as client:
            logger.debug(f"Making LunarCrush request: GET {COINS_LIST_URL}")
            resp = await client.get(COINS_LIST_URL, headers=headers)

        if not 200 <= resp.status_code < 300:
            raise RemoteError(f"LunarCrush API error: {resp.status_code} {resp.reason_phrase}")

        try:
            payload = resp.json()
        except ValueError as e:
            raise FormatError("Invalid response format from LunarCrush API") from e

        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, list):
            raise FormatError("Invalid response format from LunarCrush API")

        query_lower = query.lower()
        matched = [token for token in data if isinstance(token, dict) and _matches(token, query_lower)]
        logger.info(f"LunarCrush coins list: {len(matched)} of {len(data)} tokens match '{query}'")

        return [{field: token.get(field) for field in TOKEN_FIELDS} for token in matched[:limit]]
    except ArchMcpError:
        raise
    except httpx.HTTPError as e:
        logger.error(f"Request Error for GET {COINS_LIST_URL}: {e}")
        raise RemoteError(f"Could not connect to LunarCrush API: {e}") from e
