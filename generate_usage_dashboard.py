#!/usr/bin/env python3
"""Generate an HTML per-user usage dashboard from GitHub Copilot metrics.

Configuration Options (Command line arguments take precedence over environment variables):
    --token: GitHub token with access to Copilot metrics
    --organization, -o: Organization login
    --enterprise, -e: Enterprise slug
    --scope: "organization" (default) or "enterprise"
    --user, -u: User login to preselect in the charts
    --output: Output HTML file (default: reports/copilot_usage_<timestamp>.html)
    --verbose, -v: Enable debug logging

Environment Variables (used if command line arguments not provided):
    GITHUB_TOKEN: GitHub token
    GITHUB_ORGANIZATION: Organization login
    GITHUB_ENTERPRISE: Enterprise slug
    GITHUB_API_SCOPE: "enterprise" to query enterprise reports
    GITHUB_API_VERSION: API version header (default: 2022-11-28)
    GITHUB_API_URL: API root override (default: https://api.github.com)

Usage:
    # Latest 28-day report for the configured organization
    uv run python generate_usage_dashboard.py

    # Enterprise report, preselecting a user
    uv run python generate_usage_dashboard.py --scope enterprise -e my-enterprise -u octocat

    # Custom output file
    uv run python generate_usage_dashboard.py -o my-org --output reports/usage.html
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd
import pytz

from copilot_metrics_sdk import (
    CopilotMetricsClient,
    PerUserMetricsFilter,
    PerUserSeries,
    ensure_github_env_config,
)

ACTIVITY_COLUMNS = ["interactions", "generations", "acceptances"]
LANGUAGE_COLUMNS = ["generations", "acceptances"]
USER_TABLE_COLUMNS = ["user_login", "total_interactions", "total_generations", "total_acceptances"]


def _records(frame: pd.DataFrame) -> List[Dict[str, Any]]:
    """Convert a frame to JSON-safe row dicts."""
    if frame.empty:
        return []
    return json.loads(frame.to_json(orient="records"))


class UsageDashboard:
    """Holds the per-user series and derives chart-ready rows from them."""

    def __init__(self) -> None:
        self.per_user_series: List[PerUserSeries] = []
        self.selected_user_login: Optional[str] = None
        self.per_user_error: Optional[str] = None
        self.is_loading = False

    async def load_per_user_metrics(
        self,
        client: CopilotMetricsClient,
        filter: Optional[PerUserMetricsFilter] = None
    ) -> None:
        """Fetch the latest 28-day series and refresh the dashboard state.

        On error the previous series are kept and the error message is
        stored verbatim.
        """
        self.is_loading = True
        self.per_user_error = None
        try:
            result = await client.get_usage_series(filter or PerUserMetricsFilter())
        finally:
            self.is_loading = False

        if not result.ok:
            self.per_user_error = result.error_message
            return

        self.per_user_series = result.response.series

        logins = [series.user_login for series in self.per_user_series]
        if self.selected_user_login not in logins:
            self.selected_user_login = logins[0] if logins else None

    def select_user(self, user_login: str) -> None:
        self.selected_user_login = user_login

    @property
    def selected_user_series(self) -> Optional[PerUserSeries]:
        for series in self.per_user_series:
            if series.user_login == self.selected_user_login:
                return series
        return None

    def users_table(self) -> pd.DataFrame:
        """One row per user, in the same order as the series."""
        return pd.DataFrame(
            [series.model_dump(include=set(USER_TABLE_COLUMNS)) for series in self.per_user_series],
            columns=USER_TABLE_COLUMNS,
        )

    @staticmethod
    def daily_chart_rows(series: Optional[PerUserSeries]) -> List[Dict[str, Any]]:
        if series is None:
            return []
        frame = pd.DataFrame([day.model_dump() for day in series.daily])
        if frame.empty:
            return []
        frame = frame.rename(columns={
            "user_initiated_interaction_count": "interactions",
            "code_generation_activity_count": "generations",
            "code_acceptance_activity_count": "acceptances",
        })
        return _records(frame[["day"] + ACTIVITY_COLUMNS])

    @staticmethod
    def ide_chart_rows(series: Optional[PerUserSeries]) -> List[Dict[str, Any]]:
        if series is None:
            return []
        frame = pd.DataFrame([item.model_dump() for item in series.by_ide], columns=["ide"] + ACTIVITY_COLUMNS)
        return _records(frame)

    @staticmethod
    def feature_chart_rows(series: Optional[PerUserSeries]) -> List[Dict[str, Any]]:
        if series is None:
            return []
        frame = pd.DataFrame([item.model_dump() for item in series.by_feature], columns=["feature"] + ACTIVITY_COLUMNS)
        return _records(frame)

    @staticmethod
    def language_chart_rows(series: Optional[PerUserSeries]) -> List[Dict[str, Any]]:
        """Per-language generations/acceptances.

        Language by feature and language by model entries are summed into one
        row per language, in first-seen order.
        """
        if series is None:
            return []
        items = series.by_language_feature + series.by_language_model
        frame = pd.DataFrame([item.model_dump() for item in items], columns=["language"] + LANGUAGE_COLUMNS)
        if frame.empty:
            return []
        rollup = frame.groupby("language", sort=False)[LANGUAGE_COLUMNS].sum().reset_index()
        return _records(rollup)

    @staticmethod
    def model_chart_rows(series: Optional[PerUserSeries]) -> List[Dict[str, Any]]:
        """Per-model activity, summed across features."""
        if series is None:
            return []
        frame = pd.DataFrame([item.model_dump() for item in series.by_model_feature], columns=["model"] + ACTIVITY_COLUMNS)
        if frame.empty:
            return []
        rollup = frame.groupby("model", sort=False)[ACTIVITY_COLUMNS].sum().reset_index()
        return _records(rollup)

    def chart_data(self, series: Optional[PerUserSeries]) -> Dict[str, List[Dict[str, Any]]]:
        return {
            "daily": self.daily_chart_rows(series),
            "ide": self.ide_chart_rows(series),
            "feature": self.feature_chart_rows(series),
            "language": self.language_chart_rows(series),
            "model": self.model_chart_rows(series),
        }

    def dashboard_data(self) -> Dict[str, Any]:
        """Everything the HTML template needs, keyed for the embedded script."""
        return {
            "generatedAt": datetime.now(pytz.UTC).strftime("%Y-%m-%d %H:%M UTC"),
            "error": self.per_user_error,
            "selectedUser": self.selected_user_login,
            "users": _records(self.users_table()),
            "charts": {series.user_login: self.chart_data(series) for series in self.per_user_series},
        }

    def generate_html(self) -> str:
        """Generate the HTML dashboard with the data embedded."""
        data_json = json.dumps(self.dashboard_data(), indent=2)
        # Keep the embedded JSON from closing the script tag
        data_json = data_json.replace("</", "<\\/")
        return HTML_TEMPLATE.replace("__DASHBOARD_DATA__", data_json)


HTML_TEMPLATE = '''<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Copilot Usage per User (28-day)</title>
    <script src="https://cdn.jsdelivr.net/npm/chart.js"></script>
    <style>
        body {
            font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif;
            margin: 0;
            padding: 20px;
            background-color: #f5f5f5;
        }
        .container {
            max-width: 1400px;
            margin: 0 auto;
            background: white;
            border-radius: 10px;
            box-shadow: 0 2px 10px rgba(0,0,0,0.1);
            padding: 30px;
        }
        h1 { margin: 0; font-weight: 300; }
        .muted { color: #6c757d; font-size: 0.9em; }
        .error { color: #dc2626; }
        table { border-collapse: collapse; width: 100%; margin-top: 20px; }
        th, td { text-align: left; padding: 8px 16px; border-bottom: 1px solid #e9ecef; }
        tbody tr { cursor: pointer; }
        tbody tr:hover, tbody tr.selected { background: #f1f3f5; }
        .charts { display: grid; grid-template-columns: 1fr 1fr; gap: 24px; margin-top: 30px; }
        .chart-card.wide { grid-column: span 2; }
    </style>
</head>
<body>
    <div class="container">
        <h1>Usage per user (28-day)</h1>
        <p class="muted">Per-user interactions, generations, and acceptances over the latest 28 days.
            Click a row to see the daily trend for that user.</p>
        <p class="muted" id="generated"></p>
        <p class="error" id="error"></p>
        <table>
            <thead>
                <tr><th>User</th><th>Interactions</th><th>Generations</th><th>Acceptances</th></tr>
            </thead>
            <tbody id="users"></tbody>
        </table>
        <div class="charts">
            <div class="chart-card wide"><canvas id="dailyChart"></canvas></div>
            <div class="chart-card"><canvas id="ideChart"></canvas></div>
            <div class="chart-card"><canvas id="featureChart"></canvas></div>
            <div class="chart-card"><canvas id="languageChart"></canvas></div>
            <div class="chart-card"><canvas id="modelChart"></canvas></div>
        </div>
    </div>
    <script>
        const dashboardData = __DASHBOARD_DATA__;
        const charts = {};
        const colors = { interactions: '#36A2EB', generations: '#FF9F40', acceptances: '#4BC0C0' };

        function renderChart(id, type, rows, labelKey, metrics, title) {
            if (charts[id]) { charts[id].destroy(); }
            charts[id] = new Chart(document.getElementById(id), {
                type: type,
                data: {
                    labels: rows.map(r => r[labelKey]),
                    datasets: metrics.map(m => ({
                        label: m,
                        data: rows.map(r => r[m]),
                        borderColor: colors[m],
                        backgroundColor: colors[m] + (type === 'line' ? '40' : ''),
                        fill: type === 'line'
                    }))
                },
                options: { plugins: { title: { display: true, text: title } } }
            });
        }

        function selectUser(login) {
            dashboardData.selectedUser = login;
            document.querySelectorAll('#users tr').forEach(tr => {
                tr.classList.toggle('selected', tr.dataset.login === login);
            });
            const c = dashboardData.charts[login];
            if (!c) { return; }
            const all = ['interactions', 'generations', 'acceptances'];
            renderChart('dailyChart', 'line', c.daily, 'day', all, 'Daily activity: ' + login);
            renderChart('ideChart', 'bar', c.ide, 'ide', all, 'By IDE');
            renderChart('featureChart', 'bar', c.feature, 'feature', all, 'By feature');
            renderChart('languageChart', 'bar', c.language, 'language', ['generations', 'acceptances'], 'By language');
            renderChart('modelChart', 'bar', c.model, 'model', all, 'By model');
        }

        function initDashboard() {
            document.getElementById('generated').textContent = 'Generated ' + dashboardData.generatedAt;
            if (dashboardData.error) {
                document.getElementById('error').textContent = dashboardData.error;
            }
            const tbody = document.getElementById('users');
            dashboardData.users.forEach(u => {
                const tr = document.createElement('tr');
                tr.dataset.login = u.user_login;
                [u.user_login, u.total_interactions, u.total_generations, u.total_acceptances].forEach(v => {
                    const td = document.createElement('td');
                    td.textContent = v;
                    tr.appendChild(td);
                });
                tr.addEventListener('click', () => selectUser(u.user_login));
                tbody.appendChild(tr);
            });
            if (dashboardData.selectedUser) { selectUser(dashboardData.selectedUser); }
        }

        document.addEventListener('DOMContentLoaded', initDashboard);
    </script>
</body>
</html>'''


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Generate Copilot per-user usage dashboard')
    parser.add_argument('--token', type=str, help='GitHub token (overrides GITHUB_TOKEN env var)')
    parser.add_argument('--organization', '-o', type=str, help='Organization login (overrides GITHUB_ORGANIZATION env var)')
    parser.add_argument('--enterprise', '-e', type=str, help='Enterprise slug (overrides GITHUB_ENTERPRISE env var)')
    parser.add_argument('--scope', type=str, choices=['organization', 'enterprise'],
                        help='Report scope (overrides GITHUB_API_SCOPE env var)')
    parser.add_argument('--user', '-u', type=str, help='User login to preselect in the charts')
    parser.add_argument('--output', type=str, help='Output HTML file (default: reports/copilot_usage_<timestamp>.html)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging')
    return parser.parse_args(argv)


def build_environ(args: argparse.Namespace) -> Dict[str, str]:
    """Overlay command line arguments on the process environment."""
    environ = dict(os.environ)
    overrides = {
        "GITHUB_TOKEN": args.token,
        "GITHUB_ORGANIZATION": args.organization,
        "GITHUB_ENTERPRISE": args.enterprise,
        "GITHUB_API_SCOPE": args.scope,
    }
    for key, value in overrides.items():
        if value:
            environ[key] = value
    return environ


async def main(argv: Optional[Sequence[str]] = None) -> int:
    """Generate the usage dashboard."""
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    env = ensure_github_env_config(build_environ(args))
    if not env.ok:
        print(f"❌ Error: {env.error_message}")
        print("\n🔧 Setup options:")
        print("1. Command line: --token 'your_token_here'")
        print("2. Environment variable: GITHUB_TOKEN='your_token_here'")
        return 1

    config = env.response
    entity = config.enterprise if config.scope == "enterprise" else config.organization
    print("🚀 Generating Copilot usage dashboard...")
    print(f"📅 Latest 28-day report for {config.scope} '{entity}'")

    dashboard = UsageDashboard()
    async with CopilotMetricsClient.from_config(config) as client:
        await dashboard.load_per_user_metrics(client)

    if dashboard.per_user_error:
        print(f"❌ {dashboard.per_user_error}")
        return 1

    if args.user:
        dashboard.select_user(args.user)

    if args.output:
        filename = args.output
    else:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M")
        filename = f"reports/copilot_usage_{timestamp}.html"

    directory = os.path.dirname(filename)
    if directory:
        os.makedirs(directory, exist_ok=True)

    with open(filename, 'w', encoding='utf-8') as f:
        f.write(dashboard.generate_html())

    users = dashboard.per_user_series
    print(f"\n✅ Dashboard created: {filename}")
    print(f"📊 Data summary:")
    print(f"   • Users: {len(users)}")
    print(f"   • Total interactions: {sum(s.total_interactions for s in users):,}")
    print(f"   • Total generations: {sum(s.total_generations for s in users):,}")
    print(f"   • Total acceptances: {sum(s.total_acceptances for s in users):,}")
    if users:
        print(f"   • Most active: {users[0].user_login} ({users[0].total_interactions:,} interactions)")
    print(f"\n🌐 Open {filename} in your browser to view the dashboard!")
    return 0


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
