"""Pydantic models for Copilot usage metrics reports."""

from datetime import date
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict, ValidationError, field_validator


LOC_FIELDS = (
    "loc_suggested_to_add_sum",
    "loc_suggested_to_delete_sum",
    "loc_added_sum",
    "loc_deleted_sum",
)


class LocTotals(BaseModel):
    """Lines-of-code counters shared by records and breakdown items."""

    loc_suggested_to_add_sum: int = 0
    loc_suggested_to_delete_sum: int = 0
    loc_added_sum: int = 0
    loc_deleted_sum: int = 0

    model_config = ConfigDict(extra="ignore")

    @field_validator(*LOC_FIELDS, mode="before")
    @classmethod
    def none_loc_as_zero(cls, v):
        """Treat null counters as zero contributions."""
        return 0 if v is None else v


class GenerationTotals(LocTotals):
    """Generation and acceptance counters (language-keyed breakdowns)."""

    code_generation_activity_count: int = 0
    code_acceptance_activity_count: int = 0

    @field_validator("code_generation_activity_count", "code_acceptance_activity_count", mode="before")
    @classmethod
    def none_activity_as_zero(cls, v):
        return 0 if v is None else v


class ActivityTotals(GenerationTotals):
    """Full activity counters including user-initiated interactions."""

    user_initiated_interaction_count: int = 0

    @field_validator("user_initiated_interaction_count", mode="before")
    @classmethod
    def none_interactions_as_zero(cls, v):
        return 0 if v is None else v


UNKNOWN_CATEGORY = "unknown"


def _category_or_unknown(v):
    return UNKNOWN_CATEGORY if v is None or v == "" else v


class IdeTotals(ActivityTotals):
    """Per-IDE breakdown entry in a usage record."""

    ide: str = UNKNOWN_CATEGORY

    @field_validator("ide", mode="before")
    @classmethod
    def missing_ide(cls, v):
        return _category_or_unknown(v)


class FeatureTotals(ActivityTotals):
    """Per-feature breakdown entry in a usage record."""

    feature: str = UNKNOWN_CATEGORY

    @field_validator("feature", mode="before")
    @classmethod
    def missing_feature(cls, v):
        return _category_or_unknown(v)


class LanguageFeatureTotals(GenerationTotals):
    """Language by feature breakdown entry in a usage record."""

    language: str = UNKNOWN_CATEGORY
    feature: str = UNKNOWN_CATEGORY

    @field_validator("language", "feature", mode="before")
    @classmethod
    def missing_category(cls, v):
        return _category_or_unknown(v)


class LanguageModelTotals(GenerationTotals):
    """Language by model breakdown entry in a usage record."""

    language: str = UNKNOWN_CATEGORY
    model: str = UNKNOWN_CATEGORY

    @field_validator("language", "model", mode="before")
    @classmethod
    def missing_category(cls, v):
        return _category_or_unknown(v)


class ModelFeatureTotals(ActivityTotals):
    """Model by feature breakdown entry in a usage record."""

    model: str = UNKNOWN_CATEGORY
    feature: str = UNKNOWN_CATEGORY

    @field_validator("model", "feature", mode="before")
    @classmethod
    def missing_category(cls, v):
        return _category_or_unknown(v)


class UsageRecord(ActivityTotals):
    """One user's activity for one day, as delivered in the report feed."""

    day: str
    user_login: str
    report_start_day: Optional[str] = None
    report_end_day: Optional[str] = None
    totals_by_ide: List[IdeTotals] = Field(default_factory=list)
    totals_by_feature: List[FeatureTotals] = Field(default_factory=list)
    totals_by_language_feature: List[LanguageFeatureTotals] = Field(default_factory=list)
    totals_by_language_model: List[LanguageModelTotals] = Field(default_factory=list)
    totals_by_model_feature: List[ModelFeatureTotals] = Field(default_factory=list)

    @field_validator(
        "totals_by_ide",
        "totals_by_feature",
        "totals_by_language_feature",
        "totals_by_language_model",
        "totals_by_model_feature",
        mode="wrap",
    )
    @classmethod
    def lenient_breakdown(cls, v, handler):
        """Keep the valid breakdown items and drop the rest.

        A missing, null or non-list breakdown contributes nothing, and a bad
        item never rejects the record's own counters.
        """
        if not isinstance(v, list):
            return []

        items = []
        for item in v:
            try:
                items.extend(handler([item]))
            except ValidationError:
                continue
        return items


class PerUserDailyUsage(BaseModel):
    """Daily activity snapshot for a single user."""

    day: str
    user_login: str
    user_initiated_interaction_count: int = 0
    code_generation_activity_count: int = 0
    code_acceptance_activity_count: int = 0


class SummaryCounters(BaseModel):
    """Summed generation, acceptance and LOC counters for one category."""

    generations: int = 0
    acceptances: int = 0
    loc_suggested_to_add_sum: int = 0
    loc_suggested_to_delete_sum: int = 0
    loc_added_sum: int = 0
    loc_deleted_sum: int = 0

    def add(self, item: GenerationTotals) -> None:
        self.generations += item.code_generation_activity_count
        self.acceptances += item.code_acceptance_activity_count
        self.loc_suggested_to_add_sum += item.loc_suggested_to_add_sum
        self.loc_suggested_to_delete_sum += item.loc_suggested_to_delete_sum
        self.loc_added_sum += item.loc_added_sum
        self.loc_deleted_sum += item.loc_deleted_sum


class InteractionSummaryCounters(SummaryCounters):
    """Summary counters that also track user-initiated interactions."""

    interactions: int = 0

    def add(self, item: ActivityTotals) -> None:
        super().add(item)
        self.interactions += item.user_initiated_interaction_count


class PerUserIdeSummary(InteractionSummaryCounters):
    ide: str


class PerUserFeatureSummary(InteractionSummaryCounters):
    feature: str


class PerUserLanguageFeatureSummary(SummaryCounters):
    language: str
    feature: str


class PerUserLanguageModelSummary(SummaryCounters):
    language: str
    model: str


class PerUserModelFeatureSummary(InteractionSummaryCounters):
    model: str
    feature: str


class PerUserSeries(BaseModel):
    """Aggregated usage for one user across the whole report period."""

    user_login: str
    total_interactions: int = 0
    total_generations: int = 0
    total_acceptances: int = 0
    total_loc_suggested_to_add: int = 0
    total_loc_suggested_to_delete: int = 0
    total_loc_added: int = 0
    total_loc_deleted: int = 0
    daily: List[PerUserDailyUsage] = Field(default_factory=list)
    by_ide: List[PerUserIdeSummary] = Field(default_factory=list)
    by_feature: List[PerUserFeatureSummary] = Field(default_factory=list)
    by_language_feature: List[PerUserLanguageFeatureSummary] = Field(default_factory=list)
    by_language_model: List[PerUserLanguageModelSummary] = Field(default_factory=list)
    by_model_feature: List[PerUserModelFeatureSummary] = Field(default_factory=list)


class DailyReportLinks(BaseModel):
    """Response from the users-1-day report endpoint."""

    download_links: List[str] = Field(default_factory=list)
    report_day: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class PeriodReportLinks(BaseModel):
    """Response from the users-28-day/latest report endpoint."""

    download_links: List[str] = Field(default_factory=list)
    report_start_day: Optional[str] = None
    report_end_day: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class UsageSeries(BaseModel):
    """Per-user series for the latest rolling period."""

    series: List[PerUserSeries] = Field(default_factory=list)


class PerUserMetricsFilter(BaseModel):
    """Which day and which enterprise/organization to report on.

    Empty identifiers fall back to the client's configured defaults.
    """

    day: Optional[date] = None
    enterprise: str = ""
    organization: str = ""
