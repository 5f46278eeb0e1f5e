"""
Voilà Dashboard - Dashboard Resource

This module provides the reads behind the main dashboard and the KPI page:
headline stats, the daily chart, the call list, call summaries, regions,
booking counts, breakdowns and trends.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import List, Optional, Sequence, Union

from voila_dashboard import aggregation
from voila_dashboard.config import (
    ADDITIONAL_STATS_DAYS,
    ALL_REGION,
    DEFAULT_CHART_DAYS,
    TREND_DAYS,
    Limits,
    Tables,
)
from voila_dashboard.exceptions import NotFoundError, VoilaError
from voila_dashboard.models import (
    AdditionalStats,
    CallItem,
    CallListResponse,
    CallOutcomeStats,
    CallSummary,
    ChartPoint,
    DashboardStats,
    Pagination,
    Region,
    TrendResponse,
)
from voila_dashboard.query import (
    Query,
    apply_call_type,
    apply_date_range,
    apply_meaningful,
    apply_region,
    quote_value,
)
from voila_dashboard.resources.base import BaseResource

logger = logging.getLogger("voila_dashboard.dashboard")

CALL_LIST_COLUMNS = (
    "id_stat, started_at, call_id, interaction_id, phone_number, "
    "duration_seconds, action, sentiment, motivazione, esito_chiamata"
)
SUMMARY_COLUMNS = (
    "call_id, started_at, ended_at, patient_intent, esito_chiamata, motivazione, summary, transcript"
)

# Tie-breaker that keeps paged aggregate reads stable
STATS_KEY = "id_stat"

CallType = Union[str, Sequence[str], None]


class DashboardResource(BaseResource):
    """
    Resource for the call-center dashboard.

    Every read takes an optional ``region`` (``"All Region"`` or None for
    every region) and an optional ISO date range. The date range is applied
    only when both ends are given.

    Reads degrade instead of raising: a failed query is logged and an empty
    result is returned, so one broken widget does not blank the page. Call
    summaries are the exception and raise ``NotFoundError``.

    Example:
        >>> stats = client.dashboard.get_stats(region="Piemonte")
        >>> print(f"{stats.total_calls} calls, {stats.total_revenue} EUR")
    """

    def _stats_query(self, columns: str, count: Optional[str] = None) -> Query:
        return self._table(Tables.STATS).select(columns, count=count)

    def get_booking_count(
        self,
        region: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> int:
        """
        Count calls that produced a booking code.

        Unlike the other reads, All Region does not drop rows with an
        unknown region here.

        Returns:
            Number of bookings, or 0 when the query fails
        """
        try:
            query = self._stats_query("booking_code", count="exact").not_null("booking_code")
            if region and region != ALL_REGION:
                query.eq("region", region)
            apply_date_range(query, start_date, end_date)

            result = query.execute()
            if result.count is not None:
                return result.count
            return len(result.rows)

        except VoilaError as e:
            logger.error(f"Error loading booking count: {e}")
            return 0

    def get_stats(
        self,
        region: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        call_type: CallType = None,
    ) -> DashboardStats:
        """
        Get headline stats and the daily chart.

        Args:
            region: Region filter
            start_date: First day (``YYYY-MM-DD``)
            end_date: Last day (``YYYY-MM-DD``)
            call_type: ``info``, ``booking``, ``booking_incomplete`` or a list of them

        Returns:
            DashboardStats; zeroed when the query fails
        """
        try:
            query = self._stats_query("duration_seconds, started_at", count="exact").not_null("started_at")
            apply_region(query, region)
            apply_call_type(query, call_type)
            apply_date_range(query, start_date, end_date)

            result = query.execute_all(key=STATS_KEY)
            totals = aggregation.summarize_durations(result.rows, result.count or 0)

        except (VoilaError, ValueError) as e:
            logger.error(f"Error loading dashboard stats: {e}")
            return DashboardStats()

        return DashboardStats(
            total_minutes=totals["total_minutes"],
            total_revenue=totals["total_revenue"],
            total_calls=totals["total_calls"],
            chart_data=self.get_chart_data(region=region, start_date=start_date, end_date=end_date),
            avg_duration_minutes=totals["avg_duration_minutes"],
        )

    def get_chart_data(
        self,
        region: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> List[ChartPoint]:
        """
        Calls, minutes and revenue per day.

        Without a date range the chart covers the last seven days, today
        included. Every day of the range has a point.
        """
        try:
            if start_date and end_date:
                first = date.fromisoformat(start_date)
                last = date.fromisoformat(end_date)
            else:
                last = aggregation.today_utc()
                first = last - timedelta(days=DEFAULT_CHART_DAYS - 1)

            query = self._stats_query("started_at, duration_seconds").not_null("started_at")
            apply_date_range(query, first.isoformat(), last.isoformat())
            apply_region(query, region)

            result = query.execute_all(key=STATS_KEY)
            grouped = aggregation.group_by_day(result.rows)
            return aggregation.fill_date_range(grouped, first, last)

        except (VoilaError, ValueError) as e:
            logger.error(f"Error loading chart data: {e}")
            return []

    def get_calls(
        self,
        limit: int = Limits.DEFAULT_CALL_LIMIT,
        offset: int = 0,
        region: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        search_query: Optional[str] = None,
        sentiment: Optional[Sequence[str]] = None,
        esito: Optional[Sequence[str]] = None,
        motivazione: Optional[Sequence[str]] = None,
    ) -> CallListResponse:
        """
        Get a page of calls, newest first.

        Args:
            limit: Page size
            offset: Rows to skip
            region: Region filter
            start_date: First day (``YYYY-MM-DD``)
            end_date: Last day (``YYYY-MM-DD``)
            search_query: Substring of the phone number or call id
            sentiment: Sentiment values to keep
            esito: Outcome values to keep
            motivazione: Reason values to keep

        Returns:
            CallListResponse with pagination
        """
        limit = limit or Limits.DEFAULT_CALL_LIMIT
        offset = offset or 0

        try:
            query = (
                self._stats_query(CALL_LIST_COLUMNS, count="exact")
                .not_null("started_at")
                .order("started_at", ascending=False)
                .range(offset, offset + limit - 1)
            )
            apply_region(query, region)
            apply_date_range(query, start_date, end_date)

            if search_query and search_query.strip():
                pattern = quote_value(f"*{search_query.strip()}*")
                query.or_(f"phone_number.ilike.{pattern},call_id.ilike.{pattern}")
            if sentiment:
                query.in_("sentiment", sentiment)
            if esito:
                query.in_("esito_chiamata", esito)
            if motivazione:
                query.in_("motivazione", motivazione)

            result = query.execute()

        except VoilaError as e:
            logger.error(f"Error loading calls: {e}")
            return CallListResponse(
                calls=[],
                pagination=Pagination(
                    total_calls=0,
                    total_pages=0,
                    current_page=1,
                    has_next=False,
                    has_previous=False,
                    limit=limit,
                    offset=offset,
                ),
            )

        calls = [CallItem.from_row(row) for row in result.rows]
        return CallListResponse(
            calls=calls,
            pagination=aggregation.paginate(result.count or 0, limit, offset),
        )

    def get_call_summary(self, call_id: str) -> CallSummary:
        """
        Get the summary and transcript of a call.

        Raises:
            NotFoundError: If the call does not exist or cannot be read
        """
        try:
            result = self._stats_query(SUMMARY_COLUMNS).eq("call_id", call_id).single().execute()
        except VoilaError as e:
            logger.error(f"Error loading call summary: {e}")
            raise NotFoundError("Chiamata non trovata", resource_type="call") from e

        row = result.data or {}
        if not isinstance(row, dict) or not row:
            raise NotFoundError("Chiamata non trovata", resource_type="call")

        defaults = CallSummary(call_id=call_id)
        return CallSummary(
            call_id=call_id,
            success=True,
            summary=row.get("summary") or defaults.summary,
            transcript=row.get("transcript") or defaults.transcript,
            started_at=row.get("started_at"),
            ended_at=row.get("ended_at"),
            patient_intent=row.get("patient_intent"),
            esito_chiamata=row.get("esito_chiamata"),
            motivazione=row.get("motivazione"),
            has_analysis=bool(row.get("patient_intent")),
            has_transcript=bool(row.get("transcript")),
        )

    def get_regions(self) -> List[Region]:
        """Distinct regions, ascending, with All Region first."""
        try:
            result = self._stats_query("region").not_null("region").order("region").execute_all(key=STATS_KEY)
        except VoilaError as e:
            logger.error(f"Error loading regions: {e}")
            return [Region(value=ALL_REGION, label=ALL_REGION)]

        return aggregation.unique_regions(result.rows)

    @staticmethod
    def ensure_region(regions: List[Region], region: str) -> List[Region]:
        """Append ``region`` when the list does not already offer it."""
        if any(r.value == region for r in regions):
            return regions
        return regions + [Region(value=region, label=region)]

    def get_additional_stats(
        self,
        region: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> AdditionalStats:
        """
        Sentiment, action and hour-of-day breakdowns.

        Without a date range the last 27 days are used.
        """
        try:
            query = self._stats_query("sentiment, action, duration_seconds, started_at").not_null("started_at")
            apply_region(query, region)
            if not apply_date_range(query, start_date, end_date):
                query.gte("started_at", aggregation.days_ago(ADDITIONAL_STATS_DAYS))

            rows = query.execute_all(key=STATS_KEY).rows
            return AdditionalStats(
                sentiment_stats=aggregation.sentiment_counts(rows),
                action_stats=aggregation.action_stats(rows),
                hourly_stats=aggregation.hourly_counts(rows),
            )

        except (VoilaError, ValueError) as e:
            logger.error(f"Error loading additional stats: {e}")
            return AdditionalStats()

    def _trend(
        self,
        field: str,
        region: Optional[str],
        start_date: Optional[str],
        end_date: Optional[str],
    ) -> TrendResponse:
        try:
            query = apply_meaningful(self._stats_query(f"started_at, {field}"), field)
            apply_region(query, region)
            if not apply_date_range(query, start_date, end_date):
                query.gte("started_at", aggregation.days_ago(TREND_DAYS))

            rows = query.execute_all(key=STATS_KEY).rows
            return TrendResponse(data=aggregation.trend_by_day(rows, field), field_name=field)

        except (VoilaError, ValueError) as e:
            logger.error(f"Error loading {field} trend: {e}")
            return TrendResponse(field_name=field)

    def get_call_outcome_trend(
        self,
        region: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> TrendResponse:
        """Per-day outcome counts, newest day first (last 30 days by default)."""
        return self._trend("esito_chiamata", region, start_date, end_date)

    def get_sentiment_trend(
        self,
        region: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> TrendResponse:
        """Per-day sentiment counts, newest day first (last 30 days by default)."""
        return self._trend("sentiment", region, start_date, end_date)

    def get_call_outcome_stats(
        self,
        region: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> CallOutcomeStats:
        """Outcome, reason and outcome-by-reason counts."""
        try:
            query = apply_meaningful(self._stats_query("esito_chiamata, motivazione"), "esito_chiamata")
            apply_region(query, region)
            apply_date_range(query, start_date, end_date)

            rows = query.execute_all(key=STATS_KEY).rows
            return aggregation.outcome_breakdown(rows)

        except (VoilaError, ValueError) as e:
            logger.error(f"Error loading call outcome stats: {e}")
            return CallOutcomeStats()
