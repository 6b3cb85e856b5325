"""
GitHub REST API client used by the poller and the approval submitter.
"""

import base64
import re
from typing import Any, Dict, List, Optional

import httpx
import structlog
from httpx import AsyncClient

from ..config import settings
from ..exceptions import GitHubAPIError

logger = structlog.get_logger(__name__)

LAST_PAGE_PATTERN = re.compile(r'page=(\d+)>; rel="last"')


class GitHubService:
    """Async client for the handful of GitHub endpoints the dashboard reads and writes."""

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the client.

        Args:
            token: Bearer token; reads work without one, writes do not
            base_url: API root, defaults to the configured GitHub API
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport, used to stub the network
        """
        self.token = token
        self.base_url = (base_url or settings.github_api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self.transport = transport

    @property
    def headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/vnd.github.v3+json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(
        self,
        method: str,
        url: str,
        params: Optional[Dict] = None,
        json: Optional[Dict] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> httpx.Response:
        """Make an HTTP request and return the raw response."""
        async with AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.request(
                method=method,
                url=url,
                headers=self.headers if headers is None else headers,
                params=params,
                json=json
            )

        logger.debug("GitHub API response",
                     method=method,
                     url=url,
                     status_code=response.status_code)
        return response

    def _api_url(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    @staticmethod
    def _check_response(response: httpx.Response) -> None:
        """Raise GitHubAPIError for non-success responses, keeping GitHub's message."""
        if response.is_success:
            return

        message = None
        try:
            data = response.json()
            if isinstance(data, dict):
                message = data.get("message")
        except ValueError:
            pass
        raise GitHubAPIError(response.status_code, message)

    async def _get_json(self, endpoint: str, params: Optional[Dict] = None) -> Any:
        response = await self._request("GET", self._api_url(endpoint), params=params)
        self._check_response(response)
        return response.json()

    async def list_open_issues(self, owner: str, repo: str, per_page: int = 100) -> List[Dict[str, Any]]:
        """Open issues, including pull requests (those carry a ``pull_request`` key)."""
        return await self._get_json(
            f"/repos/{owner}/{repo}/issues",
            params={"state": "open", "per_page": per_page}
        )

    async def get_repository(self, owner: str, repo: str) -> Dict[str, Any]:
        return await self._get_json(f"/repos/{owner}/{repo}")

    async def get_readme(self, owner: str, repo: str) -> str:
        """Fetch and decode the repository README."""
        data = await self._get_json(f"/repos/{owner}/{repo}/readme")
        return base64.b64decode(data.get("content") or "").decode("utf-8", errors="replace")

    async def list_workflow_runs(self, owner: str, repo: str, per_page: int = 5) -> List[Dict[str, Any]]:
        data = await self._get_json(
            f"/repos/{owner}/{repo}/actions/runs",
            params={"per_page": per_page}
        )
        return data.get("workflow_runs", [])

    async def list_commits(self, owner: str, repo: str, per_page: int = 3) -> List[Dict[str, Any]]:
        return await self._get_json(
            f"/repos/{owner}/{repo}/commits",
            params={"per_page": per_page}
        )

    async def count_branches(self, owner: str, repo: str) -> int:
        """
        Count branches without listing them all.

        With one branch per page, the ``last`` page number in the Link header is
        the total. Without a Link header everything fit on the single page.
        """
        response = await self._request(
            "GET",
            self._api_url(f"/repos/{owner}/{repo}/branches"),
            params={"per_page": 1}
        )
        self._check_response(response)

        link = response.headers.get("Link")
        if link:
            match = LAST_PAGE_PATTERN.search(link)
            return int(match.group(1)) if match else 1
        return len(response.json())

    async def get_issue(self, owner: str, repo: str, issue_number: int) -> Dict[str, Any]:
        return await self._get_json(f"/repos/{owner}/{repo}/issues/{issue_number}")

    async def update_issue_body(
        self,
        owner: str,
        repo: str,
        issue_number: int,
        body: str
    ) -> Dict[str, Any]:
        """Replace an issue body."""
        response = await self._request(
            "PATCH",
            self._api_url(f"/repos/{owner}/{repo}/issues/{issue_number}"),
            json={"body": body}
        )
        self._check_response(response)

        logger.info("Updated issue body",
                    repository=f"{owner}/{repo}",
                    issue_number=issue_number)
        return response.json()

    async def fetch_coverage_badge(self, pages_url: str) -> Dict[str, Any]:
        """Fetch the coverage badge JSON published on the repository's pages site."""
        response = await self._request("GET", f"{pages_url}tests/coverage-badge.json", headers={})
        self._check_response(response)
        return response.json()
