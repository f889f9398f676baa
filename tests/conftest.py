"""Shared fixtures: sample usage records and an in-process fake metrics API."""

import json
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer


def make_record(
    user_login: str,
    day: str,
    interactions: int = 0,
    generations: int = 0,
    acceptances: int = 0,
    **extra: Any
) -> Dict[str, Any]:
    """Build a raw usage record as it appears in the report feed."""
    record = {
        "report_start_day": "2024-01-01",
        "report_end_day": "2024-01-28",
        "day": day,
        "user_login": user_login,
        "user_initiated_interaction_count": interactions,
        "code_generation_activity_count": generations,
        "code_acceptance_activity_count": acceptances,
        "loc_suggested_to_add_sum": 0,
        "loc_suggested_to_delete_sum": 0,
        "loc_added_sum": 0,
        "loc_deleted_sum": 0,
    }
    record.update(extra)
    return record


def to_ndjson(records: List[Dict[str, Any]]) -> str:
    return "\n".join(json.dumps(r) for r in records) + "\n"


@pytest.fixture
def sample_records() -> List[Dict[str, Any]]:
    return [
        make_record(
            "alice", "2024-01-02", interactions=3, generations=1, acceptances=1,
            loc_added_sum=10,
            totals_by_ide=[{"ide": "vscode", "user_initiated_interaction_count": 3,
                            "code_generation_activity_count": 1, "code_acceptance_activity_count": 1}],
            totals_by_language_feature=[{"language": "python", "feature": "chat",
                                         "code_generation_activity_count": 1,
                                         "code_acceptance_activity_count": 1}],
        ),
        make_record(
            "alice", "2024-01-01", interactions=5, generations=2, acceptances=1,
            loc_added_sum=5,
            totals_by_ide=[{"ide": "vscode", "user_initiated_interaction_count": 5,
                            "code_generation_activity_count": 2, "code_acceptance_activity_count": 1}],
            totals_by_language_model=[{"language": "python", "model": "default",
                                       "code_generation_activity_count": 2,
                                       "code_acceptance_activity_count": 0}],
        ),
        make_record("bob", "2024-01-01", interactions=2, generations=2, acceptances=2),
    ]


class FakeMetricsApi:
    """Controls and inspects the fake reporting API."""

    def __init__(self) -> None:
        self.server: Optional[TestServer] = None
        self.requests: List[web.Request] = []
        self.links_status = 200
        self.links: Optional[List[str]] = None
        self.report_status = 200
        self.report_body = ""
        self.report_bytes: Optional[bytes] = None
        self.links_body: Optional[str] = None

    @property
    def base_url(self) -> str:
        return str(self.server.make_url("/"))

    def report_url(self) -> str:
        return str(self.server.make_url("/downloads/report.ndjson"))

    async def handle_links(self, request: web.Request) -> web.Response:
        self.requests.append(request)
        if self.links_status != 200:
            return web.Response(status=self.links_status, text="nope")
        if self.links_body is not None:
            return web.Response(text=self.links_body, content_type="application/json")
        links = self.links if self.links is not None else [self.report_url()]
        payload: Dict[str, Any] = {"download_links": links}
        if request.path.endswith("users-1-day"):
            payload["report_day"] = request.query.get("day")
        else:
            payload["report_start_day"] = "2024-01-01"
            payload["report_end_day"] = "2024-01-28"
        return web.json_response(payload)

    async def handle_report(self, request: web.Request) -> web.Response:
        self.requests.append(request)
        if self.report_status != 200:
            return web.Response(status=self.report_status)
        if self.report_bytes is not None:
            return web.Response(body=self.report_bytes, content_type="application/x-ndjson", charset="utf-8")
        return web.Response(text=self.report_body, content_type="application/x-ndjson")


@pytest_asyncio.fixture
async def metrics_api():
    api = FakeMetricsApi()
    app = web.Application()
    for prefix in ("/orgs/{org}", "/enterprises/{enterprise}"):
        app.router.add_get(f"{prefix}/copilot/metrics/reports/users-1-day", api.handle_links)
        app.router.add_get(f"{prefix}/copilot/metrics/reports/users-28-day/latest", api.handle_links)
    app.router.add_get("/downloads/report.ndjson", api.handle_report)

    api.server = TestServer(app)
    await api.server.start_server()
    yield api
    await api.server.close()
