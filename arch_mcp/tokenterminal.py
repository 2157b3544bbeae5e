import httpx
import asyncio
import logging
from typing import Dict, Any, List
from urllib.parse import quote

from .errors import RemoteError, FormatError

logger = logging.getLogger(__name__)

TT_API_BASE_URL = "https://api.tokenterminal.com/v2"

MAX_PROJECTS = 10
MAX_QUERIES = 5

PROJECT_FIELDS = (
    "project_id", "name", "slug", "blockchain", "category", "subcategory", "description",
    "coingecko_id", "terminal_id", "ethereum_contract_addresses", "l2_scaling_solution",
)

PRODUCT_FIELDS = ("product_id", "product_name", "symbol", "ethereum_contract_address")

METRIC_AVAILABILITY_FIELDS = (
    "name", "project_id", "symbol", "description", "market_sectors", "chains", "links",
    "aggregate_by_options", "metric_availability", "metric_definitions", "metric_sources",
)

# Identifying fields always come from the project listing when merging
_PROJECT_IDENTITY = ("project_id", "name")


# --- Helper Function for API Requests ---
async def _make_tt_api_request(api_key: str, timeout: int, endpoint: str) -> Any:
    """Makes an authenticated GET against the Token Terminal API and returns its 'data' payload."""
    headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}
    url = f"{TT_API_BASE_URL}{endpoint}"
    try:
        async with httpx.AsyncClient(timeout=timeout / 1000) as client:
            logger.debug(f"Making Token Terminal API Request: GET {url}")
            resp = await client.get(url, headers=headers)
    except httpx.HTTPError as e:
        logger.error(f"Token Terminal Request Error for GET {url}: {e}")
        raise RemoteError(f"Could not connect to Token Terminal API: {e}") from e

    logger.debug(f"Token Terminal API Response Status: {resp.status_code} for GET {url}")
    if not 200 <= resp.status_code < 300:
        raise RemoteError(f"Token Terminal API error: {resp.status_code} {resp.reason_phrase}")

    try:
        payload = resp.json()
    except ValueError as e:
        raise FormatError("Invalid response format from Token Terminal API") from e
    if not isinstance(payload, dict):
        raise FormatError("Invalid response format from Token Terminal API")
    return payload.get("data")


def _project_record(raw: Dict[str, Any]) -> Dict[str, Any]:
    record = {field: raw.get(field) for field in PROJECT_FIELDS}
    products = raw.get("products")
    if isinstance(products, list):
        record["products"] = [
            {field: product.get(field) for field in PRODUCT_FIELDS}
            for product in products if isinstance(product, dict)
        ]
    else:
        record["products"] = []
    return record


def _matches(project: Dict[str, Any], query_lower: str) -> bool:
    for field in ("name", "project_id", "coingecko_id"):
        value = project.get(field)
        if isinstance(value, str) and query_lower in value.lower():
            return True
    return False


async def get_project_metric_availability(api_key: str, timeout: int, project_id: str) -> Dict[str, Any]:
    """
    Fetches which metrics, chains and sources Token Terminal has for a project.
    Args:
        api_key (str): Token Terminal bearer key.
        timeout (int): Request timeout in milliseconds.
        project_id (str): Token Terminal project identifier (e.g. 'aave').
    Returns:
        Dict[str, Any]: The metric availability record.
    """
    data = await _make_tt_api_request(api_key, timeout, f"/projects/{quote(project_id, safe='')}")
    if not isinstance(data, dict):
        raise FormatError("Invalid response format from Token Terminal API")
    return {field: data.get(field) for field in METRIC_AVAILABILITY_FIELDS}


async def _merge_metric_availability(api_key: str, timeout: int, project: Dict[str, Any]) -> Dict[str, Any]:
    """Overlays metric availability on a project; on failure the bare project is returned."""
    try:
        metrics = await get_project_metric_availability(api_key, timeout, project["project_id"])
    except Exception as e:
        logger.warning(f"Error fetching metrics for {project.get('project_id')}: {e}")
        return project

    merged = dict(project)
    merged.update({key: value for key, value in metrics.items() if key not in _PROJECT_IDENTITY})
    return merged


async def search_projects(api_key: str, timeout: int, query: str, limit: int = 5) -> List[Dict[str, Any]]:
    """
    Searches Token Terminal projects by name, project_id or coingecko_id and enriches each
    match with its metric availability. At most MAX_PROJECTS projects are returned.
    """
    actual_limit = min(limit, MAX_PROJECTS)

    data = await _make_tt_api_request(api_key, timeout, "/projects")
    if not isinstance(data, list):
        raise FormatError("Invalid response format from Token Terminal API")

    query_lower = query.lower()
    matched = [project for project in data if isinstance(project, dict) and _matches(project, query_lower)]
    projects = [_project_record(project) for project in matched[:actual_limit]]
    logger.info(f"Token Terminal: {len(matched)} projects match '{query}', merging metrics for {len(projects)}")

    # gather keeps the filtered order regardless of completion order
    return list(await asyncio.gather(
        *(_merge_metric_availability(api_key, timeout, project) for project in projects)
    ))


async def _search_one(api_key: str, timeout: int, query: str, limit: int) -> Dict[str, Any]:
    try:
        projects = await search_projects(api_key, timeout, query, limit)
        return {"query": query, "projects": projects, "success": True}
    except Exception as e:
        logger.warning(f"Token Terminal query '{query}' failed: {e}")
        return {"query": query, "projects": [], "success": False, "error": str(e) or type(e).__name__}


async def search_projects_multiple(
    api_key: str,
    timeout: int,
    queries: List[str],
    limit: int = 5
) -> List[Dict[str, Any]]:
    """Runs search_projects for up to MAX_QUERIES queries concurrently, one result entry per query."""
    return list(await asyncio.gather(
        *(_search_one(api_key, timeout, query, limit) for query in queries[:MAX_QUERIES])
    ))
