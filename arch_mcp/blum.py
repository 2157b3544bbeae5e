import asyncio
import logging
import math
from pathlib import Path
from typing import Dict, Any, List, Optional, Union

import pandas as pd

logger = logging.getLogger(__name__)

BLUM_NETWORKS = {
    "solana": "solana1000.csv",
    "bnb": "bnb1000.csv",
    "ton": "ton1000.csv",
}

DEFAULT_DATA_DIR = Path(__file__).parent / "data" / "blum"

MAX_QUERIES = 5


def _parse_decimals(value: Any) -> Union[int, float]:
    # Non-numeric input stays NaN instead of rejecting the row
    number = pd.to_numeric(value, errors="coerce")
    if pd.isna(number) or not math.isfinite(number):
        return math.nan
    return int(number)


def _load_csv(file_path: Path) -> List[Dict[str, Any]]:
    frame = pd.read_csv(file_path, dtype=str, keep_default_na=False, skip_blank_lines=True)
    return frame.to_dict(orient="records")


async def read_csv_file(file_path: Union[str, Path], network_name: str) -> List[Dict[str, Any]]:
    """
    Loads one network's token listing. Each row is tagged with the network it came from.
    A file that cannot be read yields an empty list.
    """
    try:
        rows = await asyncio.to_thread(_load_csv, Path(file_path))
    except (OSError, ValueError) as e:
        logger.warning(f"Could not read token file for network {network_name} ({file_path}): {e}")
        return []

    tokens = []
    for row in rows:
        token = dict(row)
        token["decimals"] = _parse_decimals(row.get("decimals"))
        token["logo_uri"] = row.get("logo_uri") or None
        token["network"] = network_name
        tokens.append(token)
    logger.debug(f"Loaded {len(tokens)} tokens for network {network_name}")
    return tokens


async def read_all_csv_files(data_dir: Union[str, Path, None] = None) -> List[Dict[str, Any]]:
    """Loads every known network's listing, skipping the ones that are missing."""
    base_dir = Path(data_dir) if data_dir else DEFAULT_DATA_DIR
    tokens: List[Dict[str, Any]] = []
    for network_name, file_name in BLUM_NETWORKS.items():
        tokens.extend(await read_csv_file(base_dir / file_name, network_name))
    return tokens


def _matches(token: Dict[str, Any], query_lower: str) -> bool:
    for field in ("name", "symbol"):
        value = token.get(field)
        if isinstance(value, str) and query_lower in value.lower():
            return True
    return False


async def search_blum_tokens(
    query: str,
    network: Optional[str] = None,
    limit: int = 10,
    data_dir: Union[str, Path, None] = None
) -> List[Dict[str, Any]]:
    """
    Searches the local Blum token listings by name or symbol (case insensitive, partial match).
    Args:
        query (str): Substring to match.
        network (Optional[str]): One of BLUM_NETWORKS. When omitted every network is searched.
        limit (int): Maximum number of tokens to return. Defaults to 10.
        data_dir: Directory holding the CSV files. Defaults to the bundled listings.
    Returns:
        List[Dict[str, Any]]: Matching tokens, each tagged with its network.
    """
    if network is not None:
        if network not in BLUM_NETWORKS:
            raise ValueError(f"Unsupported network '{network}'. Expected one of: {', '.join(BLUM_NETWORKS)}")
        base_dir = Path(data_dir) if data_dir else DEFAULT_DATA_DIR
        tokens = await read_csv_file(base_dir / BLUM_NETWORKS[network], network)
    else:
        tokens = await read_all_csv_files(data_dir)

    query_lower = query.lower()
    matched = [token for token in tokens if _matches(token, query_lower)]
    return matched[:limit]


async def _search_one(
    query: str,
    network: Optional[str],
    limit: int,
    data_dir: Union[str, Path, None]
) -> Dict[str, Any]:
    try:
        tokens = await search_blum_tokens(query, network, limit, data_dir)
        return {"query": query, "tokens": tokens, "success": True}
    except Exception as e:
        logger.warning(f"Blum token query '{query}' failed: {e}")
        return {"query": query, "tokens": [], "success": False, "error": str(e) or type(e).__name__}


async def search_blum_tokens_multiple(
    queries: List[str],
    network: Optional[str] = None,
    limit: int = 5,
    data_dir: Union[str, Path, None] = None
) -> List[Dict[str, Any]]:
    """Runs up to MAX_QUERIES searches concurrently. A failing query is reported in its own entry."""
    return list(await asyncio.gather(
        *(_search_one(query, network, limit, data_dir) for query in queries[:MAX_QUERIES])
    ))
