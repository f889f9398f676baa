"""Environment configuration for the GitHub Copilot metrics API."""

import os
from typing import Literal, Mapping, Optional
from pydantic import BaseModel, Field

from copilot_metrics_sdk.exceptions import CopilotConfigError
from copilot_metrics_sdk.responses import (
    ResponseError,
    ServerActionResponse,
    ok_response,
)

DEFAULT_API_VERSION = "2022-11-28"

Scope = Literal["enterprise", "organization"]


class GitHubEnvConfig(BaseModel):
    """Settings read from GITHUB_* environment variables."""

    token: str
    enterprise: str = ""
    organization: str = ""
    version: str = DEFAULT_API_VERSION
    scope: Scope = "organization"
    base_url: Optional[str] = Field(default=None)


def load_github_env_config(environ: Optional[Mapping[str, str]] = None) -> GitHubEnvConfig:
    """Load configuration from the environment.

    Args:
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        GitHubEnvConfig with defaults applied

    Raises:
        CopilotConfigError: If GITHUB_TOKEN is not set
    """
    env = os.environ if environ is None else environ

    token = env.get("GITHUB_TOKEN", "").strip()
    if not token:
        raise CopilotConfigError("Missing required environment variable: GITHUB_TOKEN")

    # Anything other than "enterprise" means organization scope
    scope = "enterprise" if env.get("GITHUB_API_SCOPE", "").strip() == "enterprise" else "organization"

    return GitHubEnvConfig(
        token=token,
        enterprise=env.get("GITHUB_ENTERPRISE", "").strip(),
        organization=env.get("GITHUB_ORGANIZATION", "").strip(),
        version=env.get("GITHUB_API_VERSION", "").strip() or DEFAULT_API_VERSION,
        scope=scope,
        base_url=env.get("GITHUB_API_URL", "").strip() or None,
    )


def ensure_github_env_config(environ: Optional[Mapping[str, str]] = None) -> ServerActionResponse:
    """Load configuration, wrapping the result in a response envelope."""
    try:
        return ok_response(load_github_env_config(environ))
    except CopilotConfigError as e:
        return ServerActionResponse(status="ERROR", errors=[ResponseError(message=e.message)])
