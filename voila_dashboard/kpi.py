"""
Voilà Dashboard - KPI Charts

This module shapes dashboard reads into chart view models: coloured pie
slices, per-day line series and the four outcome-by-reason charts. It also
holds the filter options of the call table columns.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Sequence

from voila_dashboard.models import (
    BaseModel,
    CombinedStat,
    OutcomeStat,
    SentimentStat,
    TrendEntry,
)

if TYPE_CHECKING:
    from voila_dashboard.resources.dashboard import DashboardResource

logger = logging.getLogger("voila_dashboard.kpi")

FALLBACK_COLOR = "#6b7280"

SENTIMENT_COLORS = {
    "positive": "#10b981",
    "neutral": "#3b82f6",
    "negative": "#ef4444",
}

ESITO_COLORS = {
    "COMPLETATA": "#10b981",
    "TRASFERITA": "#f59e0b",
    "NON COMPLETATA": "#ef4444",
    "RIAGGANCIATO": "#6b7280",
}

OUTCOME_SERIES = ("COMPLETATA", "TRASFERITA", "NON COMPLETATA")
SENTIMENT_SERIES = ("positive", "neutral", "negative")


# =============================================================================
# View models
# =============================================================================


@dataclass
class PieSlice(BaseModel):
    label: str
    count: int
    color: str


@dataclass
class MotivationChart(BaseModel):
    """Reasons of one outcome, one slice per reason."""
    esito: str
    slices: List[PieSlice] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(s.count for s in self.slices)


@dataclass
class MotivationRule:
    """Which reasons of an outcome are charted, and in which colours."""
    esito: str
    reasons: Sequence[str] = ()
    colors: Sequence[str] = ()
    default_color: str = FALLBACK_COLOR
    relabel: Optional[str] = None

    def matches(self, stat: CombinedStat) -> bool:
        if stat.esito_chiamata != self.esito:
            return False
        if not self.reasons:
            return True
        return (stat.motivazione or "").lower() in self.reasons

    def color_for(self, motivazione: str) -> str:
        reason = (motivazione or "").lower()
        if reason in self.reasons:
            index = list(self.reasons).index(reason)
            if index < len(self.colors):
                return self.colors[index]
        return self.default_color


MOTIVATION_RULES = (
    MotivationRule(esito="COMPLETATA", reasons=("info fornite",), colors=("#10b981",), default_color="#10b981"),
    MotivationRule(
        esito="TRASFERITA",
        reasons=("mancata comprensione", "argomento sconosciuto", "richiesta paziente"),
        colors=("#fbbf24", "#f59e0b", "#d97706"),
        default_color="#f59e0b",
    ),
    MotivationRule(
        esito="NON COMPLETATA",
        reasons=("interrotta dal paziente", "fuori orario", "problema tecnico"),
        colors=("#f87171", "#ef4444", "#dc2626"),
        default_color="#ef4444",
    ),
    MotivationRule(esito="RIAGGANCIATO", default_color="#6b7280", relabel="Riagganciato"),
)


@dataclass
class KpiReport(BaseModel):
    """Everything the KPI page draws."""
    sentiment: List[PieSlice] = field(default_factory=list)
    esito: List[PieSlice] = field(default_factory=list)
    outcome_trend: List[Dict[str, Any]] = field(default_factory=list)
    sentiment_trend: List[Dict[str, Any]] = field(default_factory=list)
    motivations: List[MotivationChart] = field(default_factory=list)


# =============================================================================
# Shaping
# =============================================================================


def sentiment_pie(stats: Iterable[SentimentStat]) -> List[PieSlice]:
    """Sentiment slices; colour lookup ignores case."""
    return [
        PieSlice(
            label=s.sentiment,
            count=s.count,
            color=SENTIMENT_COLORS.get((s.sentiment or "").lower(), FALLBACK_COLOR),
        )
        for s in stats
    ]


def esito_pie(stats: Iterable[OutcomeStat]) -> List[PieSlice]:
    return [
        PieSlice(label=s.esito_chiamata, count=s.count, color=ESITO_COLORS.get(s.esito_chiamata, FALLBACK_COLOR))
        for s in stats
    ]


def pivot_trend(entries: Iterable[TrendEntry], series: Sequence[str]) -> List[Dict[str, Any]]:
    """
    Pivot (date, value, count) entries into one row per date.

    Rows are sorted by date ascending and carry every known series,
    zero when absent. Values outside ``series`` are kept as extra keys.
    """
    by_date: Dict[str, Dict[str, Any]] = {}
    for entry in entries:
        row = by_date.setdefault(entry.date, {name: 0 for name in series})
        if entry.value:
            row[entry.value] = entry.count
    return [{"date": day, **by_date[day]} for day in sorted(by_date)]


def outcome_trend_series(entries: Iterable[TrendEntry]) -> List[Dict[str, Any]]:
    return pivot_trend(entries, OUTCOME_SERIES)


def sentiment_trend_series(entries: Iterable[TrendEntry]) -> List[Dict[str, Any]]:
    return pivot_trend(entries, SENTIMENT_SERIES)


def motivation_charts(combined: Iterable[CombinedStat]) -> List[MotivationChart]:
    """The four outcome-by-reason charts, in display order."""
    combined = list(combined)
    charts = []
    for rule in MOTIVATION_RULES:
        slices = [
            PieSlice(
                label=rule.relabel or stat.motivazione,
                count=stat.count,
                color=rule.color_for(stat.motivazione),
            )
            for stat in combined
            if rule.matches(stat)
        ]
        charts.append(MotivationChart(esito=rule.esito, slices=slices))
    return charts


def build_kpi_report(
    dashboard: "DashboardResource",
    region: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> KpiReport:
    """Load the KPI page reads and shape them into charts."""
    additional = dashboard.get_additional_stats(region=region, start_date=start_date, end_date=end_date)
    outcome_trend = dashboard.get_call_outcome_trend(region=region, start_date=start_date, end_date=end_date)
    sentiment_trend = dashboard.get_sentiment_trend(region=region, start_date=start_date, end_date=end_date)
    outcome_stats = dashboard.get_call_outcome_stats(region=region, start_date=start_date, end_date=end_date)

    logger.debug(
        f"KPI report: {len(additional.sentiment_stats)} sentiments, "
        f"{outcome_trend.total_entries} outcome trend entries"
    )

    return KpiReport(
        sentiment=sentiment_pie(additional.sentiment_stats),
        esito=esito_pie(outcome_stats.outcome_stats),
        outcome_trend=outcome_trend_series(outcome_trend.data),
        sentiment_trend=sentiment_trend_series(sentiment_trend.data),
        motivations=motivation_charts(outcome_stats.combined_stats),
    )


# =============================================================================
# Column filters
# =============================================================================


@dataclass
class FilterOption(BaseModel):
    value: str
    label: str
    color: Optional[str] = None


SENTIMENT_OPTIONS = (
    FilterOption("positive", "Positive", "green"),
    FilterOption("negative", "Negative", "red"),
    FilterOption("neutral", "Neutral", "blue"),
)

ESITO_OPTIONS = (
    FilterOption("COMPLETATA", "Completata", "green"),
    FilterOption("TRASFERITA", "Trasferita", "yellow"),
    FilterOption("NON COMPLETATA", "Non Completata", "red"),
)

MOTIVAZIONE_OPTIONS = tuple(
    FilterOption(value, value)
    for value in (
        "Richiesta paziente",
        "Info fornite",
        "Argomento sconosciuto",
        "Interrotta dal paziente",
        "Mancata comprensione",
        "Problema Tecnico",
        "Fuori orario",
        "Prenotazione",
        "N/A",
    )
)


class ColumnFilter:
    """
    Multi-select filter of a table column.

    An empty selection means the column is not filtered.
    """

    def __init__(self, title: str, options: Sequence[FilterOption]) -> None:
        self.title = title
        self.options = list(options)
        self.selected: List[str] = []

    @property
    def is_active(self) -> bool:
        return len(self.selected) > 0

    @property
    def all_selected(self) -> bool:
        return len(self.selected) == len(self.options)

    def toggle(self, value: str) -> List[str]:
        if value in self.selected:
            self.selected = [v for v in self.selected if v != value]
        else:
            self.selected = self.selected + [value]
        return self.selected

    def select_all(self) -> List[str]:
        self.selected = [o.value for o in self.options]
        return self.selected

    def clear(self) -> List[str]:
        self.selected = []
        return self.selected

    def toggle_all(self) -> List[str]:
        """Clear when everything is selected, otherwise select everything."""
        return self.clear() if self.all_selected else self.select_all()

    def __repr__(self) -> str:
        return f"ColumnFilter(title='{self.title}', selected={self.selected})"
