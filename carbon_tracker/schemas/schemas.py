"""
Carbon Tracker — Pydantic Schemas
Persisted records use camelCase field names; Python code uses snake_case.
"""
import time
from typing import Optional, List

from pydantic import BaseModel, Field


def now_ms() -> int:
    return int(time.time() * 1000)


class StoredModel(BaseModel):
    """Base for records persisted in the key/value store."""

    class Config:
        populate_by_name = True

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True)


# ── Session ──────────────────────────────────────────────────────────────────
class SessionMeasurement(StoredModel):
    user_message_count: int = Field(default=0, alias="userMessageCount")
    user_tokens: int = Field(default=0, alias="userTokens")
    assistant_tokens: int = Field(default=0, alias="assistantTokens")
    total_tokens: int = Field(default=0, alias="totalTokens")
    carbon_emissions: float = Field(default=0.0, alias="carbonEmissions")
    session_start_time: int = Field(default_factory=now_ms, alias="sessionStartTime")

    @property
    def is_zero(self) -> bool:
        return not (self.user_tokens or self.assistant_tokens or self.carbon_emissions)


class Snapshot(BaseModel):
    """Totals as of the last successful ledger write."""
    user_tokens: int = 0
    assistant_tokens: int = 0
    carbon_emissions: float = 0.0

    @classmethod
    def of(cls, measurement: SessionMeasurement) -> "Snapshot":
        return cls(
            user_tokens=measurement.user_tokens,
            assistant_tokens=measurement.assistant_tokens,
            carbon_emissions=measurement.carbon_emissions,
        )


class Delta(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0
    carbon_emissions: float = 0.0

    @property
    def is_zero(self) -> bool:
        return not (self.input_tokens or self.output_tokens or self.carbon_emissions)

    @property
    def is_negative(self) -> bool:
        return self.input_tokens < 0 or self.output_tokens < 0 or self.carbon_emissions < 0


# ── Chat Aggregates ──────────────────────────────────────────────────────────
class GlobalCarbonStats(StoredModel):
    total_input_tokens: int = Field(default=0, alias="totalInputTokens")
    total_output_tokens: int = Field(default=0, alias="totalOutputTokens")
    total_carbon_emissions: float = Field(default=0.0, alias="totalCarbonEmissions")
    last_updated: Optional[int] = Field(default=None, alias="lastUpdated")


class ChatGPTTimePeriodStats(StoredModel):
    carbon_emissions: float = Field(default=0.0, alias="carbonEmissions")
    input_tokens: int = Field(default=0, alias="inputTokens")
    output_tokens: int = Field(default=0, alias="outputTokens")
    last_updated: Optional[int] = Field(default=None, alias="lastUpdated")


# ── Web Activity ─────────────────────────────────────────────────────────────
class WebCarbonStats(StoredModel):
    total_visits: int = Field(default=0, alias="totalVisits")
    total_searches: int = Field(default=0, alias="totalSearches")
    total_carbon_emissions: float = Field(default=0.0, alias="totalCarbonEmissions")
    last_updated: Optional[int] = Field(default=None, alias="lastUpdated")


class ActivityEvent(BaseModel):
    url: str = Field(description="URL of the page that finished loading or navigating")


# ── Dashboard ────────────────────────────────────────────────────────────────
class Equivalent(BaseModel):
    activity: str
    amount: float
    unit: str


class CumulativeStats(BaseModel):
    total_emissions: float
    chat_emissions: float
    web_emissions: float
    chat_share: float
    web_share: float
    total_tokens: int
    total_web_actions: int
    equivalents: List[Equivalent]


class UsagePoint(BaseModel):
    key: str
    chat_emissions: float
    web_emissions: float


class UsageSeries(BaseModel):
    period: str
    points: List[UsagePoint]


class LimitStatus(BaseModel):
    total_emissions: float
    limit: float
    percent: float
    status: str  # ok, warning, exceeded


class HealthResponse(BaseModel):
    status: str
    version: str
    environment: str
    carbon_tracking: bool
