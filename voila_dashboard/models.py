"""
Voilà Dashboard - Data Models

This module contains the data models returned by the dashboard, the
frequent questions view and the chat session. Models are dataclasses
with ``to_dict``/``from_dict`` helpers so they serialize straight to JSON.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")


class BaseModel:
    """Base class for all models with common functionality."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return asdict(self)

    def to_json(self) -> str:
        """Convert model to JSON string."""
        return json.dumps(self.to_dict(), default=str)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        """Create model instance from dictionary."""
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


# =============================================================================
# Calls
# =============================================================================


@dataclass
class CallRecord(BaseModel):
    """A row of the ``tb_stat`` table."""
    id_stat: int
    call_id: Optional[str] = None
    interaction_id: Optional[str] = None
    started_at: Optional[str] = None
    ended_at: Optional[str] = None
    phone_number: Optional[str] = None
    duration_seconds: Optional[int] = None
    action: Optional[str] = None
    sentiment: Optional[str] = None
    region: Optional[str] = None
    motivazione: Optional[str] = None
    esito_chiamata: Optional[str] = None
    patient_intent: Optional[str] = None
    summary: Optional[str] = None
    transcript: Optional[str] = None
    call_type: Optional[str] = None
    booking_code: Optional[str] = None


@dataclass
class CallItem(BaseModel):
    """A call as listed in the dashboard table."""
    id: int
    started_at: Optional[str] = None
    call_id: Optional[str] = None
    interaction_id: Optional[str] = None
    phone_number: Optional[str] = None
    duration_seconds: int = 0
    action: str = "N/A"
    sentiment: str = "N/A"
    motivazione: Optional[str] = None
    esito_chiamata: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "CallItem":
        """Map a ``tb_stat`` row, filling the display defaults."""
        return cls(
            id=row.get("id_stat"),
            started_at=row.get("started_at"),
            call_id=row.get("call_id"),
            interaction_id=row.get("interaction_id"),
            phone_number=row.get("phone_number"),
            duration_seconds=row.get("duration_seconds") or 0,
            action=row.get("action") or "N/A",
            sentiment=row.get("sentiment") or "N/A",
            motivazione=row.get("motivazione"),
            esito_chiamata=row.get("esito_chiamata"),
        )


@dataclass
class Pagination(BaseModel):
    """Offset pagination of the call list."""
    total_calls: int
    total_pages: int
    current_page: int
    has_next: bool
    has_previous: bool
    limit: int
    offset: int


@dataclass
class CallListResponse(BaseModel):
    """A page of calls."""
    calls: List[CallItem]
    pagination: Pagination


@dataclass
class CallSummary(BaseModel):
    """Summary and transcript of a single call."""
    call_id: str
    success: bool = True
    summary: str = "Nessun summary disponibile"
    transcript: str = "Nessun transcript disponibile"
    started_at: Optional[str] = None
    ended_at: Optional[str] = None
    patient_intent: Optional[str] = None
    esito_chiamata: Optional[str] = None
    motivazione: Optional[str] = None
    has_analysis: bool = False
    has_transcript: bool = False


@dataclass
class Region(BaseModel):
    """A selectable region."""
    value: str
    label: str


# =============================================================================
# Statistics
# =============================================================================


@dataclass
class ChartPoint(BaseModel):
    """Calls, minutes and revenue for one day."""
    date: str
    calls: int = 0
    minutes: int = 0
    revenue: float = 0.0


@dataclass
class DashboardStats(BaseModel):
    """Headline numbers of the main dashboard."""
    total_minutes: int = 0
    total_revenue: float = 0.0
    total_calls: int = 0
    chart_data: List[ChartPoint] = field(default_factory=list)
    avg_duration_minutes: float = 0.0


@dataclass
class SentimentStat(BaseModel):
    sentiment: str
    count: int


@dataclass
class ActionStat(BaseModel):
    action: str
    count: int
    avg_duration: float


@dataclass
class HourlyStat(BaseModel):
    hour: int
    calls_count: int


@dataclass
class AdditionalStats(BaseModel):
    """Sentiment, action and hour-of-day breakdowns."""
    sentiment_stats: List[SentimentStat] = field(default_factory=list)
    action_stats: List[ActionStat] = field(default_factory=list)
    hourly_stats: List[HourlyStat] = field(default_factory=list)


@dataclass
class TrendEntry(BaseModel):
    """Count of one categorical value on one day."""
    date: str
    value: str
    count: int


@dataclass
class TrendResponse(BaseModel):
    """
    Per-day counts of a categorical field.

    ``field_name`` is the column the trend was computed on (``esito_chiamata``
    or ``sentiment``); ``to_dict`` uses it as the key of each value.
    """
    data: List[TrendEntry] = field(default_factory=list)
    field_name: str = "value"

    @property
    def total_entries(self) -> int:
        return len(self.data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data": [
                {"date": entry.date, self.field_name: entry.value, "count": entry.count}
                for entry in self.data
            ],
            "total_entries": self.total_entries,
        }


@dataclass
class OutcomeStat(BaseModel):
    esito_chiamata: str
    count: int


@dataclass
class MotivationStat(BaseModel):
    motivazione: str
    count: int


@dataclass
class CombinedStat(BaseModel):
    esito_chiamata: str
    motivazione: str
    count: int


@dataclass
class CallOutcomeStats(BaseModel):
    """Outcome, reason and outcome-by-reason counts."""
    outcome_stats: List[OutcomeStat] = field(default_factory=list)
    motivation_stats: List[MotivationStat] = field(default_factory=list)
    combined_stats: List[CombinedStat] = field(default_factory=list)
    total_calls_with_outcome: int = 0


# =============================================================================
# Frequent questions
# =============================================================================


@dataclass
class QuestionCluster(BaseModel):
    """A cluster of similar questions asked by callers."""
    cluster_id: str
    domanda: str
    numero_domande: int = 0
    percentuale: float = 0.0


@dataclass
class ClusterDetail(BaseModel):
    """A single question of a cluster, joined with its call."""
    phone_number: Optional[str] = None
    started_at: Optional[str] = None
    sentiment: Optional[str] = None
    esito_chiamata: Optional[str] = None
    domanda_specifica: Optional[str] = None


@dataclass
class PaginatedList(BaseModel, Generic[T]):
    """A client-side page of a fully loaded list."""
    items: List[T]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.page_size else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    def __iter__(self):
        return iter(self.items)

    def __len__(self):
        return len(self.items)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [item.to_dict() if isinstance(item, BaseModel) else item for item in self.items],
            "total": self.total,
            "page": self.page,
            "page_size": self.page_size,
            "total_pages": self.total_pages,
            "has_next": self.has_next,
            "has_previous": self.has_previous,
        }


# =============================================================================
# Chat
# =============================================================================


@dataclass
class ChatMessage(BaseModel):
    """A message shown in the chat tester."""
    id: str
    role: str
    content: str
    timestamp: datetime = field(default_factory=datetime.now)
    function_called: Optional[str] = None
