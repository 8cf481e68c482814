"""
Package discovery through the GitHub repository search API.

Results are restricted to the configured language and ordered by stars, so
the first hits are the packages most projects already depend on.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

import requests

from opm.config.settings import Settings
from opm.core.exceptions import SearchError

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
REQUEST_TIMEOUT = 10


@dataclass
class SearchResult:
    """A repository returned by the search."""

    full_name: str
    description: Optional[str]
    stars: int

    @property
    def specifier(self) -> str:
        """Specifier that adds this repository with ``opm add``."""
        return self.full_name

    @staticmethod
    def from_dict(data: dict) -> "SearchResult":
        return SearchResult(
            full_name=data["full_name"],
            description=data.get("description") or None,
            stars=int(data.get("stargazers_count") or 0),
        )


def search_packages(
    query: str,
    settings: Optional[Settings] = None,
    session: Optional[requests.Session] = None,
    limit: int = DEFAULT_LIMIT,
) -> List[SearchResult]:
    """
    Search GitHub for packages matching ``query``.

    Args:
        query: Free-text search terms
        settings: Settings providing the API URL and language filter
        session: Optional requests session (a new request is made without one)
        limit: Maximum number of results

    Returns:
        Matching repositories, most starred first

    Raises:
        SearchError: If the query is empty or the API request fails
    """
    if not query or not query.strip():
        raise SearchError("Search query must not be empty")

    settings = settings or Settings()
    url = f"{settings.github_api_url}/search/repositories"
    params = {
        "q": f"{query.strip()} language:{settings.search_language}",
        "sort": "stars",
        "per_page": limit,
    }
    headers = {
        "Accept": "application/vnd.github.v3+json",
        "User-Agent": "opm",
    }

    logger.debug(f"Searching {url} with q={params['q']!r}")
    http = session or requests
    try:
        response = http.get(url, params=params, headers=headers, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
        data = response.json()
    except requests.HTTPError as e:
        raise SearchError(f"GitHub API error: {e}") from e
    except requests.RequestException as e:
        raise SearchError(f"Failed to query GitHub: {e}") from e
    except ValueError as e:
        raise SearchError(f"Invalid response from GitHub: {e}") from e

    try:
        items = data["items"]
        return [SearchResult.from_dict(item) for item in items[:limit]]
    except (KeyError, TypeError) as e:
        raise SearchError(f"Unexpected response from GitHub: {e}") from e
