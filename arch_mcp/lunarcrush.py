import httpx
import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional
from urllib.parse import quote

from .errors import RemoteError, FormatError, InvalidInputError

logger = logging.getLogger(__name__)

API_BASE_URL = "https://lunarcrush.com/api4/public"

TOKEN_FIELDS = (
    "id", "symbol", "name", "price", "price_btc", "volume_24h", "market_cap",
    "market_cap_rank", "percent_change_1h", "percent_change_24h", "percent_change_7d",
    "percent_change_30d", "galaxy_score", "sentiment", "social_volume_24h",
    "social_dominance", "market_dominance", "topic", "categories", "logo",
)

TOPIC_FIELDS = (
    "topic", "title", "topic_rank", "topic_rank_1h_previous", "topic_rank_24h_previous",
    "num_contributors", "num_posts", "interactions_24h",
)

TOPIC_DETAIL_FIELDS = (
    "topic", "title", "topic_rank", "related_topics", "types_count", "types_interactions",
    "types_sentiment", "types_sentiment_detail", "interactions_24h", "num_contributors",
    "num_posts", "categories", "trend",
)

TOPIC_POST_FIELDS = (
    "id", "post_type", "post_title", "post_link", "post_image", "post_created",
    "post_sentiment", "creator_id", "creator_name", "creator_display_name",
    "creator_followers", "creator_avatar", "interactions_24h", "interactions_total",
)

TRENDS = ("up", "down", "flat")


# --- Helper Function for API Requests ---
async def _make_lunarcrush_request(
    api_key: str,
    timeout: int,
    endpoint: str,
    params: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Makes an authenticated GET against the LunarCrush API and returns the decoded body."""
    headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}
    url = f"{API_BASE_URL}{endpoint}"
    try:
        async with httpx.AsyncClient(timeout=timeout / 1000) as client:
            logger.debug(f"Making LunarCrush API Request: GET {url} params={params}")
            resp = await client.get(url, headers=headers, params=params)
    except httpx.HTTPError as e:
        logger.error(f"Request Error for GET {url}: {e}")
        raise RemoteError(f"Could not connect to LunarCrush API: {e}") from e

    logger.debug(f"LunarCrush API Response Status: {resp.status_code} for GET {url}")
    if not 200 <= resp.status_code < 300:
        raise RemoteError(f"LunarCrush API error: {resp.status_code} {resp.reason_phrase}")

    try:
        payload = resp.json()
    except ValueError as e:
        raise FormatError("Invalid response format from LunarCrush API") from e
    if not isinstance(payload, dict):
        raise FormatError("Invalid response format from LunarCrush API")
    return payload


def _list_data(payload: Dict[str, Any]) -> List[Dict[str, Any]]:
    data = payload.get("data")
    if not isinstance(data, list):
        raise FormatError("Invalid response format from LunarCrush API")
    return [item for item in data if isinstance(item, dict)]


def _contains(record: Dict[str, Any], fields, query_lower: str) -> bool:
    for field in fields:
        value = record.get(field)
        if isinstance(value, str) and query_lower in value.lower():
            return True
    return False


def _pick(record: Dict[str, Any], fields) -> Dict[str, Any]:
    return {field: record.get(field) for field in fields}


def _to_epoch_seconds(start_time: str) -> int:
    try:
        parsed = datetime.fromisoformat(start_time.strip().replace("Z", "+00:00"))
    except ValueError as e:
        raise InvalidInputError(f"startTime '{start_time}' is not an ISO-8601 timestamp") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())


# --- Tokens ---
async def search_tokens(api_key: str, timeout: int, query: str, limit: int = 10) -> List[Dict[str, Any]]:
    """
    Searches LunarCrush tokens by symbol, name or topic (case insensitive, partial match).
    Args:
        api_key (str): LunarCrush bearer key.
        timeout (int): Request timeout in milliseconds.
        query (str): Substring to match.
        limit (int): Maximum number of results. Defaults to 10.
    Returns:
        List[Dict[str, Any]]: Token records.
    """
    tokens = _list_data(await _make_lunarcrush_request(api_key, timeout, "/coins/list/v2"))

    query_lower = query.lower()
    matched = [token for token in tokens if _contains(token, ("symbol", "name", "topic"), query_lower)]
    return [_pick(token, TOKEN_FIELDS) for token in matched[:limit]]


# --- Topics ---
async def search_topics(
    api_key: str,
    timeout: int,
    query: Optional[str] = None,
    limit: int = 10
) -> List[Dict[str, Any]]:
    """
    Lists LunarCrush topics, optionally filtered by topic key or title.
    Without a query only the limit is applied.
    """
    topics = _list_data(await _make_lunarcrush_request(api_key, timeout, "/topics/list/v1"))

    if query:
        query_lower = query.lower()
        topics = [topic for topic in topics if _contains(topic, ("topic", "title"), query_lower)]
    return [_pick(topic, TOPIC_FIELDS) for topic in topics[:limit]]


async def general_search(api_key: str, timeout: int, query: str, limit: int = 5) -> Dict[str, Any]:
    """
    Searches tokens and topics concurrently with the same query.
    A failing side is reported next to the results of the other one.
    """
    tokens, topics = await asyncio.gather(
        search_tokens(api_key, timeout, query, limit),
        search_topics(api_key, timeout, query, limit),
        return_exceptions=True,
    )

    if isinstance(tokens, BaseException) and isinstance(topics, BaseException):
        raise tokens

    result: Dict[str, Any] = {"query": query, "tokens": [], "topics": []}
    for key, outcome in (("tokens", tokens), ("topics", topics)):
        if isinstance(outcome, BaseException):
            logger.warning(f"General search for '{query}': {key} lookup failed: {outcome}")
            result[f"{key}_error"] = str(outcome)
        else:
            result[key] = outcome
    return result


async def get_topic_details(api_key: str, timeout: int, topic: str) -> Dict[str, Any]:
    """Fetches the detail record for a single topic (e.g. 'bitcoin')."""
    payload = await _make_lunarcrush_request(api_key, timeout, f"/topic/{quote(topic, safe='')}/v1")
    data = payload.get("data")
    if not isinstance(data, dict):
        raise FormatError("Invalid response format from LunarCrush API")

    details = _pick(data, TOPIC_DETAIL_FIELDS)
    if details["trend"] is not None and details["trend"] not in TRENDS:
        logger.warning(f"Topic '{topic}' has unexpected trend value: {details['trend']!r}")
    return details


async def get_topic_posts(
    api_key: str,
    timeout: int,
    topic: str,
    limit: int = 10,
    start_time: Optional[str] = None
) -> List[Dict[str, Any]]:
    """
    Fetches the top posts for a topic.
    Args:
        topic (str): Topic identifier (e.g. 'bitcoin').
        limit (int): Maximum number of posts to return, applied client side. Defaults to 10.
        start_time (Optional[str]): ISO timestamp for the start of the window. When omitted the
            API returns the top posts of the last 24 hours.
    Returns:
        List[Dict[str, Any]]: Topic post records.
    """
    params = None
    if start_time:
        params = {"start": _to_epoch_seconds(start_time)}

    payload = await _make_lunarcrush_request(
        api_key, timeout, f"/topic/{quote(topic, safe='')}/posts/v1", params=params
    )
    posts = _list_data(payload)
    return [_pick(post, TOPIC_POST_FIELDS) for post in posts[:limit]]
