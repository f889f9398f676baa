"""GitHub Copilot Metrics Python SDK for fetching and aggregating per-user usage."""

from copilot_metrics_sdk.client import CopilotMetricsClient, build_users_report_url
from copilot_metrics_sdk.aggregator import UsageAggregator, aggregate_usage, parse_usage_ndjson
from copilot_metrics_sdk.config import (
    GitHubEnvConfig,
    ensure_github_env_config,
    load_github_env_config,
)
from copilot_metrics_sdk.models import (
    UsageRecord,
    IdeTotals,
    FeatureTotals,
    LanguageFeatureTotals,
    LanguageModelTotals,
    ModelFeatureTotals,
    PerUserDailyUsage,
    PerUserIdeSummary,
    PerUserFeatureSummary,
    PerUserLanguageFeatureSummary,
    PerUserLanguageModelSummary,
    PerUserModelFeatureSummary,
    PerUserSeries,
    DailyReportLinks,
    PeriodReportLinks,
    UsageSeries,
    PerUserMetricsFilter,
)
from copilot_metrics_sdk.responses import (
    ResponseError,
    ServerActionResponse,
    format_response_error,
    unknown_response_error,
)
from copilot_metrics_sdk.exceptions import (
    CopilotSDKError,
    CopilotAPIError,
    CopilotAuthError,
    CopilotConfigError,
    CopilotNetworkError,
    CopilotNotFoundError,
    CopilotServerError,
    CopilotTimeoutError,
    CopilotValidationError,
)

__version__ = "0.1.0"
__all__ = [
    "CopilotMetricsClient",
    "build_users_report_url",
    "UsageAggregator",
    "aggregate_usage",
    "parse_usage_ndjson",
    "GitHubEnvConfig",
    "ensure_github_env_config",
    "load_github_env_config",
    "UsageRecord",
    "IdeTotals",
    "FeatureTotals",
    "LanguageFeatureTotals",
    "LanguageModelTotals",
    "ModelFeatureTotals",
    "PerUserDailyUsage",
    "PerUserIdeSummary",
    "PerUserFeatureSummary",
    "PerUserLanguageFeatureSummary",
    "PerUserLanguageModelSummary",
    "PerUserModelFeatureSummary",
    "PerUserSeries",
    "DailyReportLinks",
    "PeriodReportLinks",
    "UsageSeries",
    "PerUserMetricsFilter",
    "ResponseError",
    "ServerActionResponse",
    "format_response_error",
    "unknown_response_error",
    "CopilotSDKError",
    "CopilotAPIError",
    "CopilotAuthError",
    "CopilotConfigError",
    "CopilotNetworkError",
    "CopilotNotFoundError",
    "CopilotServerError",
    "CopilotTimeoutError",
    "CopilotValidationError",
]
