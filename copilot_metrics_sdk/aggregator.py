"""Per-user aggregation of newline-delimited Copilot usage records."""

import json
import logging
from typing import Dict, Iterable, List, Tuple, Union
from pydantic import ValidationError

from copilot_metrics_sdk.models import (
    UsageRecord,
    PerUserSeries,
    PerUserDailyUsage,
    PerUserIdeSummary,
    PerUserFeatureSummary,
    PerUserLanguageFeatureSummary,
    PerUserLanguageModelSummary,
    PerUserModelFeatureSummary,
)

logger = logging.getLogger(__name__)

CategoryKey = Union[str, Tuple[str, str]]


def parse_usage_ndjson(text: str) -> List[UsageRecord]:
    """Parse a newline-delimited JSON report into usage records.

    Lines that are not JSON objects, lack a ``user_login`` or ``day``, or
    carry top-level counters of the wrong type are skipped. Invalid breakdown
    entries are dropped without losing the rest of the line.

    Args:
        text: Raw report body

    Returns:
        Parsed records in feed order
    """
    records: List[UsageRecord] = []
    skipped = 0

    for line in text.split("\n"):
        if not line.strip():
            continue

        try:
            parsed = json.loads(line)
        except ValueError:
            skipped += 1
            continue

        if not isinstance(parsed, dict) or not parsed.get("user_login") or not parsed.get("day"):
            skipped += 1
            continue

        try:
            records.append(UsageRecord.model_validate(parsed))
        except ValidationError:
            skipped += 1

    if skipped:
        logger.debug(f"Skipped {skipped} malformed usage lines")

    return records


class UsageAggregator:
    """Folds usage records into one PerUserSeries per user.

    Records may arrive in any order. Call ``results()`` once all records have
    been added; it does not consume the accumulated state.
    """

    def __init__(self) -> None:
        self._by_user: Dict[str, PerUserSeries] = {}
        self._by_ide: Dict[str, Dict[CategoryKey, PerUserIdeSummary]] = {}
        self._by_feature: Dict[str, Dict[CategoryKey, PerUserFeatureSummary]] = {}
        self._by_language_feature: Dict[str, Dict[CategoryKey, PerUserLanguageFeatureSummary]] = {}
        self._by_language_model: Dict[str, Dict[CategoryKey, PerUserLanguageModelSummary]] = {}
        self._by_model_feature: Dict[str, Dict[CategoryKey, PerUserModelFeatureSummary]] = {}

    def add(self, record: UsageRecord) -> None:
        """Add a single record's counters and breakdowns."""
        user = record.user_login
        series = self._by_user.get(user)
        if series is None:
            series = PerUserSeries(user_login=user)
            self._by_user[user] = series

        series.total_interactions += record.user_initiated_interaction_count
        series.total_generations += record.code_generation_activity_count
        series.total_acceptances += record.code_acceptance_activity_count
        series.total_loc_suggested_to_add += record.loc_suggested_to_add_sum
        series.total_loc_suggested_to_delete += record.loc_suggested_to_delete_sum
        series.total_loc_added += record.loc_added_sum
        series.total_loc_deleted += record.loc_deleted_sum

        # Same-day records are appended, not merged
        series.daily.append(PerUserDailyUsage(
            day=record.day,
            user_login=user,
            user_initiated_interaction_count=record.user_initiated_interaction_count,
            code_generation_activity_count=record.code_generation_activity_count,
            code_acceptance_activity_count=record.code_acceptance_activity_count,
        ))

        for item in record.totals_by_ide:
            summaries = self._by_ide.setdefault(user, {})
            if item.ide not in summaries:
                summaries[item.ide] = PerUserIdeSummary(ide=item.ide)
            summaries[item.ide].add(item)

        for item in record.totals_by_feature:
            summaries = self._by_feature.setdefault(user, {})
            if item.feature not in summaries:
                summaries[item.feature] = PerUserFeatureSummary(feature=item.feature)
            summaries[item.feature].add(item)

        for item in record.totals_by_language_feature:
            summaries = self._by_language_feature.setdefault(user, {})
            key = (item.language, item.feature)
            if key not in summaries:
                summaries[key] = PerUserLanguageFeatureSummary(language=item.language, feature=item.feature)
            summaries[key].add(item)

        for item in record.totals_by_language_model:
            summaries = self._by_language_model.setdefault(user, {})
            key = (item.language, item.model)
            if key not in summaries:
                summaries[key] = PerUserLanguageModelSummary(language=item.language, model=item.model)
            summaries[key].add(item)

        for item in record.totals_by_model_feature:
            summaries = self._by_model_feature.setdefault(user, {})
            key = (item.model, item.feature)
            if key not in summaries:
                summaries[key] = PerUserModelFeatureSummary(model=item.model, feature=item.feature)
            summaries[key].add(item)

    def add_all(self, records: Iterable[UsageRecord]) -> "UsageAggregator":
        for record in records:
            self.add(record)
        return self

    def results(self) -> List[PerUserSeries]:
        """Finish aggregation.

        Returns:
            One series per user, sorted by total interactions descending and
            then by user login ascending
        """
        finished = []
        for user, series in self._by_user.items():
            finished.append(series.model_copy(update={
                "daily": sorted((d.model_copy() for d in series.daily), key=lambda d: d.day),
                "by_ide": [s.model_copy() for s in self._by_ide.get(user, {}).values()],
                "by_feature": [s.model_copy() for s in self._by_feature.get(user, {}).values()],
                "by_language_feature": [s.model_copy() for s in self._by_language_feature.get(user, {}).values()],
                "by_language_model": [s.model_copy() for s in self._by_language_model.get(user, {}).values()],
                "by_model_feature": [s.model_copy() for s in self._by_model_feature.get(user, {}).values()],
            }))

        return sorted(finished, key=lambda s: (-s.total_interactions, s.user_login))


def aggregate_usage(records: Iterable[UsageRecord]) -> List[PerUserSeries]:
    """Aggregate records into per-user series in one call."""
    return UsageAggregator().add_all(records).results()
