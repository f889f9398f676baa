"""Tests for the dashboard state, chart rows and CLI."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from copilot_metrics_sdk import PerUserSeries, UsageSeries, aggregate_usage, parse_usage_ndjson
from copilot_metrics_sdk.responses import format_response_error, ok_response

import generate_usage_dashboard
from generate_usage_dashboard import UsageDashboard, build_environ, parse_args

from conftest import make_record, to_ndjson


@pytest.fixture
def series(sample_records):
    return aggregate_usage(parse_usage_ndjson(to_ndjson(sample_records)))


def mock_client(result):
    client = MagicMock()
    client.get_usage_series = AsyncMock(return_value=result)
    return client


class TestLoadPerUserMetrics:
    """Test refreshing the dashboard state."""

    async def test_selects_first_user_after_load(self, series):
        dashboard = UsageDashboard()
        assert dashboard.selected_user_series is None

        await dashboard.load_per_user_metrics(mock_client(ok_response(UsageSeries(series=series))))

        assert dashboard.selected_user_login == "alice"
        assert dashboard.selected_user_series.total_interactions == 8
        assert dashboard.per_user_error is None
        assert dashboard.is_loading is False

    async def test_keeps_existing_selection(self, series):
        dashboard = UsageDashboard()
        dashboard.select_user("bob")

        await dashboard.load_per_user_metrics(mock_client(ok_response(UsageSeries(series=series))))

        assert dashboard.selected_user_login == "bob"

    async def test_error_message_shown_verbatim(self, series):
        dashboard = UsageDashboard()
        dashboard.per_user_series = series

        await dashboard.load_per_user_metrics(mock_client(format_response_error("my-org", 401, "Unauthorized")))

        assert dashboard.per_user_error == "Error fetching my-org: 401 Unauthorized"
        assert dashboard.per_user_series == series
        assert dashboard.is_loading is False

    async def test_empty_series_clears_selection(self):
        dashboard = UsageDashboard()
        dashboard.select_user("gone")

        await dashboard.load_per_user_metrics(mock_client(ok_response(UsageSeries(series=[]))))

        assert dashboard.selected_user_login is None
        assert dashboard.per_user_series == []


class TestChartRows:
    """Test re-shaping aggregated series for charts."""

    def test_daily_rows(self, series):
        rows = UsageDashboard.daily_chart_rows(series[0])

        assert rows == [
            {"day": "2024-01-01", "interactions": 5, "generations": 2, "acceptances": 1},
            {"day": "2024-01-02", "interactions": 3, "generations": 1, "acceptances": 1},
        ]

    def test_ide_rows(self, series):
        assert UsageDashboard.ide_chart_rows(series[0]) == [
            {"ide": "vscode", "interactions": 8, "generations": 3, "acceptances": 2},
        ]

    def test_language_rows_merge_both_breakdowns(self, series):
        assert UsageDashboard.language_chart_rows(series[0]) == [
            {"language": "python", "generations": 3, "acceptances": 1},
        ]

    def test_language_rows_keep_first_seen_order(self):
        lf = lambda lang, gen: {"language": lang, "feature": "chat", "code_generation_activity_count": gen}
        lm = lambda lang, acc: {"language": lang, "model": "gpt", "code_acceptance_activity_count": acc}
        user = aggregate_usage(parse_usage_ndjson(to_ndjson([
            make_record(
                "alice", "2024-01-01",
                totals_by_language_feature=[lf("rust", 1), lf("go", 2)],
                totals_by_language_model=[lm("go", 1), lm("c", 4)],
            ),
        ])))[0]

        assert UsageDashboard.language_chart_rows(user) == [
            {"language": "rust", "generations": 1, "acceptances": 0},
            {"language": "go", "generations": 2, "acceptances": 1},
            {"language": "c", "generations": 0, "acceptances": 4},
        ]

    def test_model_rows_sum_across_features(self):
        mf = lambda model, feature, n: {"model": model, "feature": feature,
                                        "user_initiated_interaction_count": n}
        user = aggregate_usage(parse_usage_ndjson(to_ndjson([
            make_record("alice", "2024-01-01",
                        totals_by_model_feature=[mf("gpt", "chat", 1), mf("gpt", "agent", 2), mf("claude", "chat", 4)]),
        ])))[0]

        assert UsageDashboard.model_chart_rows(user) == [
            {"model": "gpt", "interactions": 3, "generations": 0, "acceptances": 0},
            {"model": "claude", "interactions": 4, "generations": 0, "acceptances": 0},
        ]

    def test_rows_for_missing_or_bare_series(self):
        bare = PerUserSeries(user_login="nobody")

        for rows in (UsageDashboard.daily_chart_rows, UsageDashboard.ide_chart_rows,
                     UsageDashboard.feature_chart_rows, UsageDashboard.language_chart_rows,
                     UsageDashboard.model_chart_rows):
            assert rows(None) == []
            assert rows(bare) == []

    def test_users_table_order(self, series):
        dashboard = UsageDashboard()
        dashboard.per_user_series = series

        table = dashboard.users_table()

        assert list(table.columns) == ["user_login", "total_interactions", "total_generations", "total_acceptances"]
        assert table["user_login"].tolist() == ["alice", "bob"]
        assert table["total_interactions"].tolist() == [8, 2]


class TestGenerateHtml:
    """Test the embedded dashboard data."""

    def test_data_is_embedded(self, series):
        dashboard = UsageDashboard()
        dashboard.per_user_series = series
        dashboard.select_user("bob")

        html = dashboard.generate_html()

        start = html.index("const dashboardData = ") + len("const dashboardData = ")
        end = html.index(";\n", start)
        data = json.loads(html[start:end])
        assert data["selectedUser"] == "bob"
        assert [u["user_login"] for u in data["users"]] == ["alice", "bob"]
        assert data["charts"]["alice"]["language"] == [{"language": "python", "generations": 3, "acceptances": 1}]
        assert "__DASHBOARD_DATA__" not in html

    def test_script_close_tag_is_escaped(self):
        dashboard = UsageDashboard()
        dashboard.per_user_error = "</script><b>oops</b>"

        html = dashboard.generate_html()

        assert "</script><b>" not in html


class TestCli:
    """Test argument handling and the main entry point."""

    def test_arguments_override_environment(self):
        args = parse_args(["--token", "arg-token", "-o", "arg-org", "--scope", "enterprise"])
        with patch.dict("os.environ", {"GITHUB_TOKEN": "env-token", "GITHUB_ORGANIZATION": "env-org"}, clear=True):
            environ = build_environ(args)

        assert environ["GITHUB_TOKEN"] == "arg-token"
        assert environ["GITHUB_ORGANIZATION"] == "arg-org"
        assert environ["GITHUB_API_SCOPE"] == "enterprise"
        assert "GITHUB_ENTERPRISE" not in environ

    async def test_missing_token_exits_with_error(self, capsys):
        with patch.dict("os.environ", {}, clear=True):
            code = await generate_usage_dashboard.main([])

        assert code == 1
        assert "GITHUB_TOKEN" in capsys.readouterr().out

    async def test_writes_report(self, metrics_api, sample_records, tmp_path, capsys):
        metrics_api.report_body = to_ndjson(sample_records)
        output = tmp_path / "out" / "report.html"
        argv = ["--token", "tok", "-o", "my-org", "-u", "bob", "--output", str(output)]

        with patch.dict("os.environ", {"GITHUB_API_URL": metrics_api.base_url}, clear=True):
            code = await generate_usage_dashboard.main(argv)

        assert code == 0
        html = output.read_text(encoding="utf-8")
        assert '"selectedUser": "bob"' in html
        assert "Users: 2" in capsys.readouterr().out

    async def test_fetch_error_exits_with_error(self, metrics_api, tmp_path, capsys):
        metrics_api.links_status = 404
        output = tmp_path / "report.html"
        argv = ["--token", "tok", "-o", "missing-org", "--output", str(output)]

        with patch.dict("os.environ", {"GITHUB_API_URL": metrics_api.base_url}, clear=True):
            code = await generate_usage_dashboard.main(argv)

        assert code == 1
        assert not output.exists()
        assert "Error fetching missing-org: 404" in capsys.readouterr().out
