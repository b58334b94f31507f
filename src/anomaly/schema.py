"""
Schema definitions for project anomaly detection.

Every finding is explainable: it carries the observed value, the expected
value and the threshold that the detector rule compared it against.
Serialized field names are camelCase to match the dashboard.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AnomalySeverity(str, Enum):
    """Severity levels for findings."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AnomalyCategory(str, Enum):
    """Project area a finding belongs to."""

    SCHEDULE = "schedule"
    COST = "cost"
    QUALITY = "quality"
    SAFETY = "safety"
    WEATHER = "weather"
    RESOURCE = "resource"
    PROGRESS = "progress"
    BEHAVIORAL = "behavioral"


class AnomalyStatus(str, Enum):
    OPEN = "open"
    INVESTIGATING = "investigating"
    RESOLVED = "resolved"
    FALSE_POSITIVE = "false-positive"


class ReportModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AnomalyFinding(ReportModel):
    """
    A single flagged deviation produced by a detector rule.

    Fields:
    - id: unique identifier (rule prefix + subject + random suffix)
    - timestamp: detection time
    - category / severity: classification
    - rule: dotted name of the rule that fired (e.g. "schedule.overdue_task")
    - subject_id / subject_label: record (or collection) the finding is about
    - observed_value / expected_value / threshold: the comparison that fired
    - confidence: rule confidence in [0, 100]
    - recommendations: suggested follow-up actions
    - status: bookkeeping status (always "open" when produced)
    - related_subject_ids: other records involved
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    timestamp: datetime
    category: AnomalyCategory
    severity: AnomalySeverity
    rule: str
    subject_id: str
    subject_label: str
    description: str
    observed_value: Any
    expected_value: Optional[Any] = None
    threshold: Optional[float] = None
    confidence: float = Field(ge=0.0, le=100.0)
    recommendations: List[str] = Field(default_factory=list)
    status: AnomalyStatus = AnomalyStatus.OPEN
    related_subject_ids: List[str] = Field(default_factory=list)


class DataQualityWarning(ReportModel):
    """
    A record a detector had to skip, or a detector that failed outright.

    Fields:
    - detector: detector category that raised the warning
    - record_id: offending record id (None when the whole detector failed)
    - field: offending field name, if known
    - message: human readable reason
    """

    detector: AnomalyCategory
    record_id: Optional[str] = None
    field: Optional[str] = None
    message: str


class AnomalySummary(ReportModel):
    total: int = Field(ge=0)
    count_by_category: Dict[AnomalyCategory, int] = Field(default_factory=dict)
    count_by_severity: Dict[AnomalySeverity, int] = Field(default_factory=dict)
    open_count: int = Field(0, ge=0)
    critical_count: int = Field(0, ge=0)


class AnomalyReport(ReportModel):
    """
    Result of one detection run over a project snapshot.

    The engine keeps no history; storing reports is up to the caller.
    """

    project_id: str
    generated_at: datetime
    summary: AnomalySummary
    findings: List[AnomalyFinding]
    recommendations: List[str]
    risk_level: AnomalySeverity
    warnings: List[DataQualityWarning] = Field(default_factory=list)


class AnomalyPattern(ReportModel):
    """
    Named, recurring anomaly pattern tracked across detection runs.

    Fields:
    - detection_rule: rule name matched against AnomalyFinding.rule
    - affected_fields: snapshot fields the rule inspects
    - frequency: number of matching findings observed so far
    - last_detected: time of the latest match (creation time until then)
    """

    id: str = Field(default_factory=lambda: f"pattern-{uuid4().hex[:12]}")
    name: str
    description: str
    detection_rule: str
    affected_fields: List[str] = Field(default_factory=list)
    severity: AnomalySeverity
    frequency: int = Field(0, ge=0)
    last_detected: datetime
