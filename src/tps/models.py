"""Pydantic models for the analysis report.

Field names are snake_case in Python and camelCase on the wire, matching
the JSON shapes consumed by the dashboard and stored in the result cache.
"""

from datetime import datetime
from typing import Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ReportModel(BaseModel):
    """Base for report structures: camelCase aliases, immutable after build."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class Percentiles(ReportModel):
    p50: float = 0
    p75: float = 0
    p95: float = 0
    p_max: float = Field(default=0, alias='pMax')


class RateAverages(ReportModel):
    """Mixin of the three average rates shared by sessions and buckets."""
    average_tps: float = Field(alias='averageTPS')
    average_itps: float = Field(alias='averageITPS')
    average_otps: float = Field(alias='averageOTPS')


class RatePercentiles(ReportModel):
    tps_percentiles: Percentiles
    itps_percentiles: Percentiles
    otps_percentiles: Percentiles


class MetricPoint(ReportModel):
    """Throughput of a single conversational turn."""
    session_id: str
    timestamp: datetime
    tps: float
    itps: float
    otps: float
    total_tokens: int
    input_tokens: int
    output_tokens: int
    duration_seconds: float
    model: str
    models: list[str] = Field(default_factory=list)


class SessionSummary(RateAverages):
    """Per-file totals, built once all of the file's turns are known."""
    id: str
    filename: str
    turn_count: int
    total_tokens: int
    input_tokens: int
    output_tokens: int
    timestamp: datetime
    models: list[str] = Field(default_factory=list)


class AggregationBucket(RateAverages, RatePercentiles):
    """One time-period group."""
    label: Union[int, str]
    sort_key: Union[int, float, str]
    count: int
    total_tokens: int


class ModelStats(RateAverages, RatePercentiles):
    """One model group."""
    model: str
    turn_count: int
    total_tokens: int
    total_input_tokens: int
    total_output_tokens: int
    total_duration: float


class RunSummary(RateAverages, RatePercentiles):
    files_scanned: int
    files_rejected: int
    files_processed: int
    files_skipped: int
    files_from_cache: int
    files_failed: int
    total_sessions: int
    total_turns: int
    total_tokens: int
    total_input_tokens: int
    total_output_tokens: int
    models: list[str] = Field(default_factory=list)
    elapsed_seconds: float = 0


class Report(ReportModel):
    sessions: list[SessionSummary]
    all_metric_points: list[MetricPoint]
    model_stats: list[ModelStats]
    summary: RunSummary


class CachedFileResult(ReportModel):
    """What the result cache stores for one file."""
    tps_data: list[MetricPoint] = Field(alias='tpsData')
    session: SessionSummary
