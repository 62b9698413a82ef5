"""
Metric snapshot types.

A snapshot is computed wholesale from one record list and never updated in
place. Every container field is a tuple or a read-only mapping.
"""

from dataclasses import asdict, dataclass
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True)
class CategoryCount:
    name: str
    value: int


@dataclass(frozen=True)
class FunnelStage:
    name: str
    value: int
    percentage: float


@dataclass(frozen=True)
class CategoryShare:
    name: str
    percentage: float


@dataclass(frozen=True)
class DailyCount:
    date: str  # ISO calendar day, e.g. "2025-03-14"
    value: int


def freeze_mapping(values: Mapping[str, float]) -> Mapping[str, float]:
    """Read-only copy of a mapping."""
    return MappingProxyType(dict(values))


@dataclass(frozen=True)
class _Snapshot:
    def to_dict(self) -> dict:
        """Plain nested dict, e.g. for JSON output or st.json."""
        result = {}
        for name in self.__dataclass_fields__:
            value = getattr(self, name)
            if isinstance(value, tuple):
                result[name] = [asdict(item) for item in value]
            elif isinstance(value, Mapping):
                result[name] = dict(value)
            else:
                result[name] = value
        return result


@dataclass(frozen=True)
class EmailCampaignMetrics(_Snapshot):
    total_leads: int
    emails_sent: int
    total_responses: int
    meetings_booked: int
    reply_rate: float
    meeting_rate: float
    response_to_meeting_conversion: float
    hours_saved: float
    money_saved: float
    projected_revenue: float
    projected_roi: float
    industries_data: tuple[CategoryCount, ...]
    job_title_responses: tuple[CategoryCount, ...]
    funnel: tuple[FunnelStage, ...]
    rate_variants: Mapping[str, float]


@dataclass(frozen=True)
class LinkedInLeadMetrics(_Snapshot):
    total_prospects: int
    connections_sent: int
    responses_received: int
    contacted_prospects: int
    final_prospects: int
    follow_up_prospects: int
    contacted_rate: float
    connection_rate: float
    response_rate: float
    final_rate: float
    follow_up_rate: float
    total_companies: int
    total_sectors: int
    avg_message_length: float
    time_saved_minutes: float
    manual_effort_saved: int
    projected_revenue: float
    roi: float
    sectors_data: tuple[CategoryCount, ...]
    contact_distribution: tuple[CategoryShare, ...]
    funnel: tuple[FunnelStage, ...]
    rate_variants: Mapping[str, float]


@dataclass(frozen=True)
class ConnectionMetrics(_Snapshot):
    total_invitations: int
    accepted: int
    responded: int
    errored: int
    delivered: int
    acceptance_rate: float
    response_rate: float
    error_rate: float
    avg_time_to_accept: float | None
    total_follow_ups: int
    avg_follow_ups: float
    network_size: int
    hours_saved: float
    money_saved: float
    projected_revenue: float
    roi: float
    acceptances_by_day: tuple[DailyCount, ...]
    funnel: tuple[FunnelStage, ...]
    rate_variants: Mapping[str, float]


MetricsSnapshot = EmailCampaignMetrics | LinkedInLeadMetrics | ConnectionMetrics
