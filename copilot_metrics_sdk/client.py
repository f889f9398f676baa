"""GitHub Copilot Metrics API Client implementation."""

import asyncio
import json
import logging
from datetime import date, datetime
from typing import Any, Dict, Literal, Optional
import aiohttp
import pytz
from yarl import URL

from copilot_metrics_sdk.aggregator import aggregate_usage, parse_usage_ndjson
from copilot_metrics_sdk.config import DEFAULT_API_VERSION, GitHubEnvConfig, Scope
from copilot_metrics_sdk.models import (
    DailyReportLinks,
    PeriodReportLinks,
    PerUserMetricsFilter,
    UsageSeries,
)
from copilot_metrics_sdk.exceptions import (
    CopilotAPIError,
    CopilotAuthError,
    CopilotNetworkError,
    CopilotNotFoundError,
    CopilotSDKError,
    CopilotServerError,
    CopilotTimeoutError,
    CopilotValidationError,
)
from copilot_metrics_sdk.responses import (
    ServerActionResponse,
    format_response_error,
    ok_response,
    unknown_response_error,
)

logger = logging.getLogger(__name__)

ReportPath = Literal["users-1-day", "users-28-day/latest"]

DAILY_REPORT_PATH: ReportPath = "users-1-day"
LATEST_PERIOD_REPORT_PATH: ReportPath = "users-28-day/latest"


def build_users_report_url(
    base_url: URL,
    scope: Scope,
    path: ReportPath,
    enterprise: str,
    organization: str,
    day: Optional[str] = None
) -> URL:
    """Build the URL of a per-user metrics report.

    Args:
        base_url: API root, e.g. https://api.github.com
        scope: "enterprise" or "organization"
        path: Report path below ``copilot/metrics/reports``
        enterprise: Enterprise slug (used in enterprise scope)
        organization: Organization login (used in organization scope)
        day: YYYY-MM-DD, only sent for the users-1-day report

    Returns:
        Absolute report URL

    Raises:
        CopilotValidationError: If the identifier for the scope is empty
    """
    if scope == "enterprise":
        if not enterprise:
            raise CopilotValidationError("Enterprise must be set for enterprise scope")
        url = base_url / "enterprises" / enterprise
    else:
        if not organization:
            raise CopilotValidationError("Organization must be set for organization scope")
        url = base_url / "orgs" / organization

    url = url / "copilot" / "metrics" / "reports"
    for segment in path.split("/"):
        url = url / segment

    if path == DAILY_REPORT_PATH and day:
        url = url.with_query(day=day)

    return url


class CopilotMetricsClient:
    """Async client for the GitHub Copilot usage metrics reports.

    Every public method returns a ServerActionResponse instead of raising, so
    callers only need to check ``status``. Uses bearer token authentication
    and supports the async context manager pattern.
    """

    BASE_URL = "https://api.github.com"

    def __init__(
        self,
        token: str,
        enterprise: str = "",
        organization: str = "",
        scope: Scope = "organization",
        api_version: str = DEFAULT_API_VERSION,
        base_url: Optional[str] = None,
        timeout: Optional[int] = None
    ) -> None:
        """Initialize the Copilot metrics client.

        Args:
            token: GitHub token with access to Copilot metrics
            enterprise: Default enterprise slug
            organization: Default organization login
            scope: Which report family to query ("enterprise" or "organization")
            api_version: Value of the X-GitHub-Api-Version header
            base_url: Optional base URL override (defaults to https://api.github.com)
            timeout: Total request timeout in seconds (aiohttp default if omitted)
        """
        self.token = token
        self.enterprise = enterprise
        self.organization = organization
        self.scope = scope
        self.api_version = api_version
        self.base_url = URL(base_url or self.BASE_URL)
        self.timeout = aiohttp.ClientTimeout(total=timeout) if timeout else None
        self._session: Optional[aiohttp.ClientSession] = None

    @classmethod
    def from_config(cls, config: GitHubEnvConfig, **kwargs: Any) -> "CopilotMetricsClient":
        """Create a client from environment configuration."""
        return cls(
            token=config.token,
            enterprise=config.enterprise,
            organization=config.organization,
            scope=config.scope,
            api_version=config.version,
            base_url=config.base_url,
            **kwargs
        )

    async def __aenter__(self) -> "CopilotMetricsClient":
        """Enter async context manager, creating the aiohttp session."""
        session_kwargs: Dict[str, Any] = {
            "headers": {"User-Agent": "copilot-metrics-sdk/0.1.0"},
            "raise_for_status": False,  # Handle status codes manually
        }
        if self.timeout is not None:
            session_kwargs["timeout"] = self.timeout

        self._session = aiohttp.ClientSession(**session_kwargs)
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager, closing the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    def _api_headers(self) -> Dict[str, str]:
        return {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self.token}",
            "X-GitHub-Api-Version": self.api_version,
        }

    def _effective_entities(self, filter: PerUserMetricsFilter) -> Dict[str, str]:
        """Resolve filter identifiers against the configured defaults."""
        enterprise = filter.enterprise or self.enterprise
        organization = filter.organization or self.organization
        return {
            "enterprise": enterprise,
            "organization": organization,
            "entity_name": enterprise if self.scope == "enterprise" else organization,
        }

    async def _make_request(self, url: URL, entity_name: str, headers: Optional[Dict[str, str]] = None) -> str:
        """Make a GET request and return the response body.

        Args:
            url: Absolute URL to fetch
            entity_name: Enterprise or organization reported on error
            headers: Extra request headers

        Returns:
            Response body as text

        Raises:
            CopilotValidationError: If session is not initialized
            Various CopilotSDK exceptions based on error type
        """
        if not self._session:
            raise CopilotValidationError("Client must be used as an async context manager")

        try:
            async with self._session.get(url, headers=headers) as response:
                if response.status >= 400:
                    reason = response.reason or ""
                    message = f"Error fetching {entity_name}: {response.status} {reason}".rstrip()
                    logger.error(message)

                    if response.status in (401, 403):
                        raise CopilotAuthError(message, response.status, entity_name, reason, response)
                    elif response.status == 404:
                        raise CopilotNotFoundError(message, response.status, entity_name, reason, response)
                    elif response.status >= 500:
                        raise CopilotServerError(message, response.status, entity_name, reason, response)
                    raise CopilotAPIError(message, response.status, entity_name, reason, response)

                # Undecodable bytes become U+FFFD and the parser skips the damaged line
                return await response.text(errors="replace")

        except asyncio.TimeoutError as e:
            logger.error(f"Timeout error for GET {url}")
            raise CopilotTimeoutError("Request timed out") from e

        except aiohttp.ClientConnectorError as e:
            logger.error(f"Connection error: {e}")
            raise CopilotNetworkError(f"Connection failed: {e}") from e

        except aiohttp.ClientError as e:
            logger.error(f"Client error: {e}")
            raise CopilotNetworkError(f"HTTP client error: {e}") from e

    async def _fetch_report_links(self, url: URL, entity_name: str) -> Dict[str, Any]:
        body = await self._make_request(url, entity_name, headers=self._api_headers())
        return json.loads(body)

    async def get_daily_report_links(
        self, filter: PerUserMetricsFilter
    ) -> ServerActionResponse:
        """Fetch download links for a single day's per-user report.

        Args:
            filter: Day (defaults to today, UTC) and enterprise/organization overrides

        Returns:
            Envelope with DailyReportLinks, or an error envelope
        """
        entities = self._effective_entities(filter)
        day: date = filter.day or datetime.now(pytz.UTC).date()

        try:
            url = build_users_report_url(
                self.base_url,
                self.scope,
                DAILY_REPORT_PATH,
                entities["enterprise"],
                entities["organization"],
                day.isoformat()
            )
            data = await self._fetch_report_links(url, entities["entity_name"])
            return ok_response(DailyReportLinks.model_validate(data))

        except CopilotAPIError as e:
            return format_response_error(e.entity_name, e.status_code, e.reason)
        except (CopilotSDKError, ValueError) as e:
            return unknown_response_error(e)

    async def get_latest_period_report_links(
        self, filter: PerUserMetricsFilter
    ) -> ServerActionResponse:
        """Fetch download links for the latest 28-day per-user report.

        Args:
            filter: Enterprise/organization overrides (day is ignored)

        Returns:
            Envelope with PeriodReportLinks, or an error envelope
        """
        entities = self._effective_entities(filter)

        try:
            url = build_users_report_url(
                self.base_url,
                self.scope,
                LATEST_PERIOD_REPORT_PATH,
                entities["enterprise"],
                entities["organization"]
            )
            data = await self._fetch_report_links(url, entities["entity_name"])
            return ok_response(PeriodReportLinks.model_validate(data))

        except CopilotAPIError as e:
            return format_response_error(e.entity_name, e.status_code, e.reason)
        except (CopilotSDKError, ValueError) as e:
            return unknown_response_error(e)

    async def get_usage_series(
        self, filter: PerUserMetricsFilter
    ) -> ServerActionResponse:
        """Fetch the latest 28-day report and aggregate it per user.

        An empty link list is a successful, empty result. Only the first
        download link is read.

        Args:
            filter: Enterprise/organization overrides

        Returns:
            Envelope with UsageSeries, or the error from any fetch step
        """
        links_result = await self.get_latest_period_report_links(filter)
        if not links_result.ok:
            return links_result

        links = links_result.response.download_links
        if not links:
            logger.info("Latest period report has no download links")
            return ok_response(UsageSeries(series=[]))

        entity_name = self._effective_entities(filter)["entity_name"]

        try:
            # Download links are pre-signed; API auth headers are not sent
            text = await self._make_request(URL(links[0], encoded=True), entity_name)
        except CopilotAPIError as e:
            return format_response_error(e.entity_name, e.status_code, e.reason)
        except (CopilotSDKError, ValueError) as e:
            return unknown_response_error(e)

        records = parse_usage_ndjson(text)
        logger.debug(f"Parsed {len(records)} usage records from {links[0]}")

        return ok_response(UsageSeries(series=aggregate_usage(records)))
