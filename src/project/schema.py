"""
Project snapshot schema consumed by the anomaly engine.

The dashboard stores a project as one loosely-typed JSON object. This module
pins that object down to a strict read model validated once at the boundary.

Design rationale:
- Wire names are camelCase (as the dashboard sends them); Python names are snake_case
- Missing or null collections are coerced to empty lists
- Date fields stay raw strings so one bad date skips a record, not the snapshot
- Snapshots are frozen; detectors only read them
"""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class SnapshotModel(BaseModel):
    """Base for all snapshot records: camelCase aliases, frozen, extras ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )


class ScheduleTask(SnapshotModel):
    """
    A scheduled work item.

    Attributes:
        id: Task identifier
        name: Display name
        start_date: Planned start (ISO date string)
        end_date: Planned finish (ISO date string)
        progress: Reported completion percentage, clamped to 0-100
        status: Completed, On Track, Delayed, ...
    """

    id: str
    name: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    progress: float = Field(default=0.0, ge=0.0, le=100.0)
    status: Optional[str] = None

    @field_validator("progress", mode="before")
    @classmethod
    def _clamp_progress(cls, value: Any) -> Any:
        if value is None:
            return 0.0
        try:
            number = float(value)
        except (TypeError, ValueError):
            return value
        return min(100.0, max(0.0, number))


class BOQItem(SnapshotModel):
    """
    A Bill of Quantities line.

    Attributes:
        id: Line identifier
        item_no: Contract item number
        description: Scope description
        quantity: Contract quantity
        rate: Unit rate
        amount: Contract amount (normally quantity * rate)
        completed_quantity: Quantity executed so far
    """

    id: str
    item_no: Optional[str] = None
    description: Optional[str] = None
    unit: Optional[str] = None
    quantity: float = 0.0
    rate: float = 0.0
    amount: float = 0.0
    completed_quantity: float = 0.0

    @field_validator("quantity", "rate", "amount", "completed_quantity", mode="before")
    @classmethod
    def _none_to_zero(cls, value: Any) -> Any:
        return 0.0 if value is None else value


class LabTest(SnapshotModel):
    id: str
    test_name: Optional[str] = None
    category: Optional[str] = None
    date: Optional[str] = None
    result: Optional[str] = None


class RFI(SnapshotModel):
    id: str
    rfi_number: Optional[str] = None
    date: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None


class NCR(SnapshotModel):
    id: str
    ncr_number: Optional[str] = None
    date: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None


class Vehicle(SnapshotModel):
    id: str
    plate_number: Optional[str] = None
    type: Optional[str] = None
    status: Optional[str] = None


class VehicleLog(SnapshotModel):
    id: str
    vehicle_id: str
    date: Optional[str] = None
    working_hours: Optional[float] = None
    activity_description: Optional[str] = None


class DailyWorkItem(SnapshotModel):
    id: Optional[str] = None
    location: Optional[str] = None
    quantity: Optional[float] = None
    description: Optional[str] = None


class DailyReport(SnapshotModel):
    id: str
    date: Optional[str] = None
    report_number: Optional[str] = None
    status: Optional[str] = None
    work_today: List[DailyWorkItem] = Field(default_factory=list)

    @field_validator("work_today", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class WeatherInfo(SnapshotModel):
    """Current site weather; impact_on_schedule is None, Minor, Moderate or Severe."""

    impact_on_schedule: Optional[str] = None
    condition: Optional[str] = None
    temperature: Optional[float] = None


class ProjectSnapshot(SnapshotModel):
    """
    Read model of a single project at detection time.

    All collections are optional on the wire; absence is equivalent to an
    empty collection and yields no findings for the related detector.
    """

    id: str
    name: Optional[str] = None
    schedule: List[ScheduleTask] = Field(default_factory=list)
    boq: List[BOQItem] = Field(default_factory=list)
    lab_tests: List[LabTest] = Field(default_factory=list)
    rfis: List[RFI] = Field(default_factory=list)
    ncrs: List[NCR] = Field(default_factory=list)
    vehicles: List[Vehicle] = Field(default_factory=list)
    vehicle_logs: List[VehicleLog] = Field(default_factory=list)
    daily_reports: List[DailyReport] = Field(default_factory=list)
    weather: Optional[WeatherInfo] = None

    @field_validator(
        "schedule",
        "boq",
        "lab_tests",
        "rfis",
        "ncrs",
        "vehicles",
        "vehicle_logs",
        "daily_reports",
        mode="before",
    )
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return [] if value is None else value
