"""
Project anomaly detection engine.

Consumes a ProjectSnapshot, runs every rule detector, and aggregates the
findings into a summary, an overall risk level and an AnomalyReport.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import ValidationError

from src.core.config import AnomalyConfig, config
from src.core.exceptions import ConfigurationError
from src.project.loader import load_snapshot
from src.project.schema import ProjectSnapshot

from .detectors import (
    BehavioralDetector,
    CostDetector,
    Detector,
    DetectorOutput,
    ProgressDetector,
    QualityDetector,
    ResourceDetector,
    SafetyDetector,
    ScheduleDetector,
)
from .schema import (
    AnomalyFinding,
    AnomalyReport,
    AnomalySeverity,
    AnomalyStatus,
    AnomalySummary,
    DataQualityWarning,
)
from .scoring import calculate_risk_level, overall_recommendations, summarize

logger = logging.getLogger("sitewatch.anomaly")

SnapshotInput = Union[ProjectSnapshot, Dict[str, Any]]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AnomalyEngine:
    """
    Rule-based anomaly engine for construction projects.

    Notes:
    - Detectors are independent; their order only affects finding order.
    - A detector that raises is logged and reported as a warning; the other
      detectors still contribute to the report.
    - `clock` is injectable so runs can be pinned to a fixed "now".
    """

    settings: AnomalyConfig = field(default_factory=lambda: config.anomaly)
    clock: Callable[[], datetime] = _utc_now

    def __post_init__(self) -> None:
        self.detectors: List[Detector] = [
            ScheduleDetector(self.settings.schedule),
            CostDetector(self.settings.cost),
            QualityDetector(self.settings.quality),
            SafetyDetector(self.settings.safety),
            ResourceDetector(self.settings.resource),
            ProgressDetector(self.settings.progress),
            BehavioralDetector(self.settings.behavioral),
        ]

    @classmethod
    def from_overrides(cls, overrides: Dict[str, Any], **kwargs: Any) -> "AnomalyEngine":
        """
        Build an engine from partial threshold overrides.

        Example: {"schedule": {"overdue_days": 3}, "risk": {"high_open_count": 20}}

        Raises:
            ConfigurationError: If the merged settings are invalid
        """
        base = config.anomaly.model_dump()
        for section, values in overrides.items():
            if isinstance(values, dict) and isinstance(base.get(section), dict):
                base[section].update(values)
            else:
                base[section] = values
        try:
            settings = AnomalyConfig.model_validate(base)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid anomaly configuration: {e}") from e
        return cls(settings=settings, **kwargs)

    def detect(
        self, snapshot: SnapshotInput, now: Optional[datetime] = None
    ) -> List[AnomalyFinding]:
        """Run all detectors and return the concatenated findings."""
        return self._run(self._coerce(snapshot), self._now(now)).findings

    def build_report(
        self, snapshot: SnapshotInput, now: Optional[datetime] = None
    ) -> AnomalyReport:
        """
        Detection → summary → risk level → recommendations.

        An empty finding list is a valid report with risk level LOW.
        """
        project = self._coerce(snapshot)
        now = self._now(now)
        output = self._run(project, now)

        summary = self.summarize(output.findings)
        risk_level = self.calculate_risk_level(summary)
        recommendations = overall_recommendations(output.findings, self.settings.risk)

        logger.info(
            "Project %s: %d findings (%d critical), risk %s, %d data warnings",
            project.id,
            summary.total,
            summary.critical_count,
            risk_level.value,
            len(output.warnings),
        )

        return AnomalyReport(
            project_id=project.id,
            generated_at=now,
            summary=summary,
            findings=output.findings,
            recommendations=recommendations,
            risk_level=risk_level,
            warnings=output.warnings,
        )

    def summarize(self, findings: List[AnomalyFinding]) -> AnomalySummary:
        return summarize(findings)

    def calculate_risk_level(self, summary: AnomalySummary) -> AnomalySeverity:
        return calculate_risk_level(summary, self.settings.risk)

    def update_status(self, finding: AnomalyFinding, status: AnomalyStatus) -> AnomalyFinding:
        """
        Return a copy of `finding` with a new status.

        Findings are immutable and the engine stores none of them; persisting
        the status change is the caller's concern.
        """
        status = AnomalyStatus(status)
        logger.debug("Finding %s status %s -> %s", finding.id, finding.status.value, status.value)
        return finding.model_copy(update={"status": status})

    def _run(self, project: ProjectSnapshot, now: datetime) -> DetectorOutput:
        output = DetectorOutput()
        for detector in self.detectors:
            try:
                result = detector.detect(project, now)
            except Exception as exc:
                logger.exception("%s detector failed: %s", detector.category.value, exc)
                output.warnings.append(
                    DataQualityWarning(
                        detector=detector.category,
                        message=f"Detector failed: {exc}",
                    )
                )
                continue
            output.extend(result)
        return output

    def _now(self, now: Optional[datetime]) -> datetime:
        now = now or self.clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now.astimezone(timezone.utc)

    @staticmethod
    def _coerce(snapshot: SnapshotInput) -> ProjectSnapshot:
        if isinstance(snapshot, ProjectSnapshot):
            return snapshot
        return load_snapshot(snapshot)


def detect_anomalies(
    project: SnapshotInput, now: Optional[datetime] = None
) -> List[AnomalyFinding]:
    """Run every detector over `project` with the configured thresholds."""
    return AnomalyEngine().detect(project, now=now)


def build_report(project: SnapshotInput, now: Optional[datetime] = None) -> AnomalyReport:
    """Build an AnomalyReport for `project` with the configured thresholds."""
    return AnomalyEngine().build_report(project, now=now)
