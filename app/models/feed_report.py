from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class ReportMeta(BaseModel):
    started_at: str
    finished_at: str
    duration_ms: int
    duration_seconds: float
    expected_count: int
    actual_count: int = Field(description="Number of items that were actually validated.")
    shortfall: bool = False
    pages_visited: int = 0
    stop_reason: Optional[str] = None
    fatal_error: Optional[str] = None
    run_id: Optional[str] = None


class ValidationSection(BaseModel):
    passed: bool
    is_sorted: bool
    problem_count: int
    problems: List[str] = Field(default_factory=list)


class Statistics(BaseModel):
    """Derived from parsable instants only; absent when there are none."""

    newest_timestamp: str
    oldest_timestamp: str
    time_span_hours: float
    unparsable_count: int


class SampleItem(BaseModel):
    position: int
    title: str
    age: str


class SampleItems(BaseModel):
    first: List[SampleItem] = Field(default_factory=list)
    last: List[SampleItem] = Field(default_factory=list)


class Report(BaseModel):
    """Serializable outcome of one feed-order validation run."""

    meta: ReportMeta
    validation: ValidationSection
    statistics: Optional[Statistics] = None
    sample_items: SampleItems = Field(default_factory=SampleItems)

    @property
    def passed(self) -> bool:
        return self.meta.fatal_error is None and self.validation.passed
