"""Test configuration and fixtures."""

import base64
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest

from repo_monitor.services.github_service import GitHubService

DASHBOARD_BODY = "\n".join([
    "This issue lists Renovate updates and detected dependencies.",
    "",
    "## Pending Approval",
    "",
    "These branches will be created by Renovate only once you click their checkbox below.",
    "",
    " - [ ] <!-- approve-branch=renovate/foo -->Update foo to v2",
    " - [x] <!-- approve-branch=renovate/bar -->Update bar to v3",
    " - [ ] <!-- approve-all-pending-prs -->**Create all pending approval PRs at once**",
    "",
    "## Awaiting Schedule",
    "",
    " - [ ] <!-- unschedule-branch=renovate/lock-file-maintenance -->chore(deps): lock file maintenance",
    "",
    "## Detected dependencies",
    "",
    " - [ ] not an approval",
])

README_WITH_BADGE = (
    "# hello\n\n"
    "[![CodeFactor](https://www.codefactor.io/repository/github/octo/hello/badge)]"
    "(https://www.codefactor.io/repository/github/octo/hello)\n"
)


class FakeGitHub:
    """Route table behind an httpx.MockTransport, recording every request."""

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Tuple[int, Any, Dict[str, str]]] = {}
        self.unreachable: List[str] = []
        self.requests: List[httpx.Request] = []

    def add(
        self,
        method: str,
        path: str,
        status_code: int = 200,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None
    ) -> None:
        self.routes[(method, path)] = (status_code, json, headers or {})

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if any(path.startswith(prefix) for prefix in self.unreachable):
            raise httpx.ConnectError("Connection refused", request=request)

        route = self.routes.get((request.method, path))
        if route is None:
            return httpx.Response(404, json={"message": "Not Found"})

        status_code, body, headers = route
        return httpx.Response(status_code, json=body, headers=headers)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def factory(self, token: Optional[str]) -> GitHubService:
        return GitHubService(token=token, transport=self.transport)

    def requests_for(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]


def make_issue(number: int, title: str, body: str = "", pull_request: bool = False) -> Dict[str, Any]:
    issue = {
        "number": number,
        "title": title,
        "body": body,
        "html_url": f"https://github.com/octo/hello/issues/{number}",
        "updated_at": "2024-05-01T12:00:00Z",
    }
    if pull_request:
        issue["pull_request"] = {"url": "https://api.github.com/pulls/1"}
    return issue


def register_repo(
    fake: FakeGitHub,
    owner: str,
    repo: str,
    dashboard_body: Optional[str] = DASHBOARD_BODY,
    has_pages: bool = True
) -> None:
    """Register a fully healthy repository."""
    prefix = f"/repos/{owner}/{repo}"

    issues = [
        make_issue(1, "Bug report"),
        make_issue(2, "Add feature", pull_request=True),
        make_issue(3, "Another PR", pull_request=True),
    ]
    if dashboard_body is not None:
        issues.append(make_issue(4, "Dependency Dashboard", dashboard_body))
    fake.add("GET", f"{prefix}/issues", json=issues)

    fake.add("GET", prefix, json={"name": repo, "has_pages": has_pages})
    fake.add("GET", f"/{repo}/tests/coverage-badge.json", json={"message": "87.5%"})
    fake.add("GET", f"{prefix}/readme", json={
        "content": base64.b64encode(README_WITH_BADGE.encode()).decode()
    })
    fake.add("GET", f"{prefix}/actions/runs", json={"workflow_runs": [{
        "id": 11,
        "name": "CI",
        "status": "completed",
        "conclusion": "success",
        "head_branch": "main",
        "created_at": "2024-05-01T10:00:00Z",
        "updated_at": "2024-05-01T10:05:00Z",
        "html_url": f"https://github.com/{owner}/{repo}/actions/runs/11",
        "event": "push",
    }]})
    fake.add("GET", f"{prefix}/commits", json=[{
        "sha": "0123456789abcdef0123456789abcdef01234567",
        "html_url": f"https://github.com/{owner}/{repo}/commit/0123456",
        "commit": {
            "message": "Fix the thing\n\nLonger description",
            "author": {"name": "Octo Cat", "date": "2024-05-01T09:00:00Z"},
        },
    }])
    fake.add("GET", f"{prefix}/branches", json=[{"name": "main"}], headers={
        "Link": (
            f'<https://api.github.com/repositories/1/branches?per_page=1&page=2>; rel="next", '
            f'<https://api.github.com/repositories/1/branches?per_page=1&page=7>; rel="last"'
        )
    })


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def dashboard_body() -> str:
    return DASHBOARD_BODY
