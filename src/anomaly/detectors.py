"""
Rule detectors for project snapshots.

One detector per project area. Each detector:
- reads the snapshot only (no I/O, no shared state between detectors)
- treats missing collections as empty and missing optional fields as "skip"
- skips a record with an unparseable date and reports a DataQualityWarning
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar, Dict, List, Optional, Tuple
from uuid import uuid4

from src.core.config import (
    BehavioralThresholds,
    CostThresholds,
    ProgressThresholds,
    QualityThresholds,
    ResourceThresholds,
    SafetyThresholds,
    ScheduleThresholds,
)
from src.project.normalizers import NormalizationError, normalize_date
from src.project.schema import DailyReport, ProjectSnapshot, VehicleLog

from .schema import AnomalyCategory, AnomalyFinding, AnomalySeverity, DataQualityWarning

logger = logging.getLogger("sitewatch.anomaly.detectors")

SECONDS_PER_DAY = 24 * 60 * 60

RULE_OVERDUE_TASK = "schedule.overdue_task"
RULE_PROGRESS_DEVIATION = "schedule.progress_deviation"
RULE_COST_VARIANCE = "cost.boq_variance"
RULE_LAB_FAILURE_RATE = "quality.lab_failure_rate"
RULE_OPEN_NCRS = "quality.open_ncrs"
RULE_OPEN_RFIS = "safety.open_rfis"
RULE_MAINTENANCE_IDLE = "resource.maintenance_idle"
RULE_REPORT_GAP = "progress.report_gap"
RULE_WEATHER_STOPPAGES = "behavioral.weather_stoppages"


def days_between(later: datetime, earlier: datetime) -> float:
    return (later - earlier).total_seconds() / SECONDS_PER_DAY


@dataclass
class DetectorOutput:
    """Findings plus the data quality warnings raised while producing them."""

    findings: List[AnomalyFinding] = field(default_factory=list)
    warnings: List[DataQualityWarning] = field(default_factory=list)

    def extend(self, other: "DetectorOutput") -> None:
        self.findings.extend(other.findings)
        self.warnings.extend(other.warnings)


class Detector(ABC):
    """
    Base class for rule detectors.

    Subclasses set `category` and implement `evaluate`. Helpers build findings
    with a shared timestamp and parse dates without raising.
    """

    category: ClassVar[AnomalyCategory]

    def detect(self, snapshot: ProjectSnapshot, now: datetime) -> DetectorOutput:
        output = DetectorOutput()
        self.evaluate(snapshot, now, output)
        return output

    @abstractmethod
    def evaluate(
        self, snapshot: ProjectSnapshot, now: datetime, output: DetectorOutput
    ) -> None:
        """Append findings and warnings for `snapshot` to `output`."""

    def _parse_date(
        self, output: DetectorOutput, record_id: str, field_name: str, value: Optional[str]
    ) -> Optional[datetime]:
        if value is None:
            return None
        try:
            return normalize_date(value)
        except NormalizationError as e:
            logger.warning(
                "Skipping %s record %s: bad %s (%s)",
                self.category.value,
                record_id,
                field_name,
                e,
            )
            output.warnings.append(
                DataQualityWarning(
                    detector=self.category,
                    record_id=record_id,
                    field=field_name,
                    message=str(e),
                )
            )
            return None

    def _finding(
        self,
        now: datetime,
        rule: str,
        subject_id: str,
        subject_label: str,
        severity: AnomalySeverity,
        description: str,
        observed_value: Any,
        confidence: float,
        recommendations: List[str],
        expected_value: Any = None,
        threshold: Optional[float] = None,
        related_subject_ids: Optional[List[str]] = None,
        category: Optional[AnomalyCategory] = None,
    ) -> AnomalyFinding:
        return AnomalyFinding(
            id=f"{rule.replace('.', '-')}-{subject_id}-{uuid4().hex[:8]}",
            timestamp=now,
            category=category or self.category,
            severity=severity,
            rule=rule,
            subject_id=subject_id,
            subject_label=subject_label,
            description=description,
            observed_value=observed_value,
            expected_value=expected_value,
            threshold=threshold,
            confidence=confidence,
            recommendations=recommendations,
            related_subject_ids=related_subject_ids or [],
        )


@dataclass
class ScheduleDetector(Detector):
    """
    Overdue tasks and progress that deviates from elapsed time.

    Progress deviation findings are filed under the progress category.
    """

    thresholds: ScheduleThresholds = field(default_factory=ScheduleThresholds)
    category: ClassVar[AnomalyCategory] = AnomalyCategory.SCHEDULE

    def evaluate(self, snapshot: ProjectSnapshot, now: datetime, output: DetectorOutput) -> None:
        t = self.thresholds

        for task in snapshot.schedule:
            label = task.name or task.id
            end = self._parse_date(output, task.id, "endDate", task.end_date)
            if end is None:
                continue

            if now > end and task.status != "Completed":
                days_overdue = math.floor(days_between(now, end))
                if days_overdue > t.overdue_days:
                    if days_overdue > t.overdue_critical_days:
                        severity = AnomalySeverity.CRITICAL
                    elif days_overdue > t.overdue_high_days:
                        severity = AnomalySeverity.HIGH
                    else:
                        severity = AnomalySeverity.MEDIUM
                    output.findings.append(
                        self._finding(
                            now,
                            RULE_OVERDUE_TASK,
                            task.id,
                            label,
                            severity,
                            f"Task overdue by {days_overdue} days",
                            observed_value=days_overdue,
                            expected_value=0,
                            threshold=t.overdue_days,
                            confidence=t.overdue_confidence,
                            recommendations=[
                                f"Review task dependencies and resource allocation for {label}",
                                "Assess impact on subsequent tasks",
                                "Consider rescheduling dependent tasks",
                            ],
                        )
                    )

            start = self._parse_date(output, task.id, "startDate", task.start_date)
            if start is None:
                continue

            duration = days_between(end, start)
            if duration <= 0:
                continue

            elapsed = days_between(now, start)
            expected = min(100.0, elapsed / duration * 100)
            difference = abs(task.progress - expected)
            if difference > t.progress_deviation_pct:
                severity = (
                    AnomalySeverity.HIGH
                    if difference > t.progress_deviation_high_pct
                    else AnomalySeverity.MEDIUM
                )
                output.findings.append(
                    self._finding(
                        now,
                        RULE_PROGRESS_DEVIATION,
                        task.id,
                        label,
                        severity,
                        f"Progress deviates by {difference:.1f}% from expected",
                        observed_value=task.progress,
                        expected_value=round(expected, 2),
                        threshold=t.progress_deviation_pct,
                        confidence=t.progress_confidence,
                        recommendations=[
                            f"Investigate reasons for progress deviation in {label}",
                            "Verify progress reporting accuracy",
                            "Review resource allocation and dependencies",
                        ],
                        category=AnomalyCategory.PROGRESS,
                    )
                )


@dataclass
class CostDetector(Detector):
    """
    BOQ lines whose executed cost drifts from the contract amount.

    expected = amount * completed / quantity, actual = rate * completed.
    Lines with zero quantity have no expected cost and are never flagged.
    """

    thresholds: CostThresholds = field(default_factory=CostThresholds)
    category: ClassVar[AnomalyCategory] = AnomalyCategory.COST

    def evaluate(self, snapshot: ProjectSnapshot, now: datetime, output: DetectorOutput) -> None:
        t = self.thresholds

        for item in snapshot.boq:
            completion_ratio = item.completed_quantity / item.quantity if item.quantity > 0 else 0.0
            expected_cost = item.amount * completion_ratio
            actual_cost = item.rate * item.completed_quantity
            if expected_cost <= 0:
                continue

            variance = abs(actual_cost - expected_cost) / expected_cost
            if variance <= t.variance_ratio:
                continue

            label = item.description or item.id
            output.findings.append(
                self._finding(
                    now,
                    RULE_COST_VARIANCE,
                    item.id,
                    label,
                    AnomalySeverity.HIGH if variance > t.variance_high_ratio else AnomalySeverity.MEDIUM,
                    f"Cost variance of {variance * 100:.1f}% from expected",
                    observed_value=actual_cost,
                    expected_value=expected_cost,
                    threshold=t.variance_ratio,
                    confidence=t.confidence,
                    recommendations=[
                        f"Review cost calculations for {label}",
                        "Check for quantity discrepancies",
                        "Verify rate applicability",
                    ],
                )
            )


@dataclass
class QualityDetector(Detector):
    thresholds: QualityThresholds = field(default_factory=QualityThresholds)
    category: ClassVar[AnomalyCategory] = AnomalyCategory.QUALITY

    def evaluate(self, snapshot: ProjectSnapshot, now: datetime, output: DetectorOutput) -> None:
        t = self.thresholds

        tests = snapshot.lab_tests
        failed = [test.id for test in tests if test.result == "Fail"]
        if tests and len(failed) / len(tests) > t.lab_fail_ratio:
            ratio = len(failed) / len(tests)
            output.findings.append(
                self._finding(
                    now,
                    RULE_LAB_FAILURE_RATE,
                    "lab-tests",
                    "Laboratory Tests",
                    AnomalySeverity.HIGH,
                    f"High failure rate of {ratio * 100:.1f}% in lab tests",
                    observed_value=ratio,
                    expected_value=t.lab_fail_ratio,
                    threshold=t.lab_fail_ratio,
                    confidence=t.lab_confidence,
                    recommendations=[
                        "Review material sourcing and quality control processes",
                        "Inspect testing procedures and equipment calibration",
                        "Investigate potential systemic quality issues",
                    ],
                    related_subject_ids=failed,
                )
            )

        open_ncrs = [ncr.id for ncr in snapshot.ncrs if ncr.status in t.open_ncr_statuses]
        if len(open_ncrs) > t.open_ncr_count:
            output.findings.append(
                self._finding(
                    now,
                    RULE_OPEN_NCRS,
                    "ncrs",
                    "Non-Conformance Reports",
                    AnomalySeverity.CRITICAL
                    if len(open_ncrs) > t.open_ncr_critical_count
                    else AnomalySeverity.HIGH,
                    f"High number of open NCRs ({len(open_ncrs)})",
                    observed_value=len(open_ncrs),
                    expected_value=t.open_ncr_count,
                    threshold=t.open_ncr_count,
                    confidence=t.ncr_confidence,
                    recommendations=[
                        f"Prioritize resolution of {len(open_ncrs)} open NCRs",
                        "Review quality control procedures",
                        "Assess impact on project schedule and costs",
                    ],
                    related_subject_ids=open_ncrs,
                )
            )


@dataclass
class SafetyDetector(Detector):
    """Share of RFIs still open or waiting on inspection."""

    thresholds: SafetyThresholds = field(default_factory=SafetyThresholds)
    category: ClassVar[AnomalyCategory] = AnomalyCategory.SAFETY

    def evaluate(self, snapshot: ProjectSnapshot, now: datetime, output: DetectorOutput) -> None:
        t = self.thresholds
        rfis = snapshot.rfis
        if not rfis:
            return

        open_rfis = [rfi.id for rfi in rfis if rfi.status in t.open_rfi_statuses]
        ratio = len(open_rfis) / len(rfis)
        if ratio <= t.open_rfi_ratio:
            return

        output.findings.append(
            self._finding(
                now,
                RULE_OPEN_RFIS,
                "rfis",
                "Requests for Information",
                AnomalySeverity.HIGH,
                f"High proportion of open RFIs ({ratio * 100:.1f}%)",
                observed_value=ratio,
                expected_value=t.open_rfi_ratio,
                threshold=t.open_rfi_ratio,
                confidence=t.confidence,
                recommendations=[
                    "Accelerate RFI review and approval process",
                    "Identify bottlenecks in decision-making",
                    "Review design clarity and specifications",
                ],
                related_subject_ids=open_rfis,
            )
        )


@dataclass
class ResourceDetector(Detector):
    """
    Vehicles sitting in maintenance long after their last logged use.

    Vehicles with no usable log dates are not flagged.
    """

    thresholds: ResourceThresholds = field(default_factory=ResourceThresholds)
    category: ClassVar[AnomalyCategory] = AnomalyCategory.RESOURCE

    def evaluate(self, snapshot: ProjectSnapshot, now: datetime, output: DetectorOutput) -> None:
        t = self.thresholds

        logs_by_vehicle: Dict[str, List[VehicleLog]] = defaultdict(list)
        for log in snapshot.vehicle_logs:
            logs_by_vehicle[log.vehicle_id].append(log)

        for vehicle in snapshot.vehicles:
            if vehicle.status != "Maintenance":
                continue

            dates = []
            for log in logs_by_vehicle.get(vehicle.id, []):
                parsed = self._parse_date(output, log.id, "date", log.date)
                if parsed is not None:
                    dates.append(parsed)
            if not dates:
                continue

            idle_days = days_between(now, max(dates))
            if idle_days <= t.maintenance_idle_days:
                continue

            label = vehicle.plate_number or vehicle.id
            output.findings.append(
                self._finding(
                    now,
                    RULE_MAINTENANCE_IDLE,
                    vehicle.id,
                    label,
                    AnomalySeverity.MEDIUM,
                    f"Vehicle in maintenance for {math.floor(idle_days)} days",
                    observed_value=math.floor(idle_days),
                    expected_value=t.maintenance_idle_days,
                    threshold=t.maintenance_idle_days,
                    confidence=t.confidence,
                    recommendations=[
                        f"Review maintenance status for {label}",
                        "Check if vehicle is needed for upcoming tasks",
                        "Consider alternative equipment if needed",
                    ],
                )
            )


@dataclass
class ProgressDetector(Detector):
    """Gaps between consecutive daily reports."""

    thresholds: ProgressThresholds = field(default_factory=ProgressThresholds)
    category: ClassVar[AnomalyCategory] = AnomalyCategory.PROGRESS

    def evaluate(self, snapshot: ProjectSnapshot, now: datetime, output: DetectorOutput) -> None:
        t = self.thresholds

        dated: List[Tuple[datetime, DailyReport]] = []
        for report in snapshot.daily_reports:
            parsed = self._parse_date(output, report.id, "date", report.date)
            if parsed is not None:
                dated.append((parsed, report))
        dated.sort(key=lambda pair: pair[0])

        for (prev_date, prev), (curr_date, curr) in zip(dated, dated[1:]):
            gap = days_between(curr_date, prev_date)
            if gap <= t.report_gap_days:
                continue

            output.findings.append(
                self._finding(
                    now,
                    RULE_REPORT_GAP,
                    "daily-reports",
                    "Daily Reporting",
                    AnomalySeverity.MEDIUM,
                    f"Gap of {math.floor(gap)} days in daily reports",
                    observed_value=math.floor(gap),
                    expected_value=1,
                    threshold=t.report_gap_days,
                    confidence=t.confidence,
                    recommendations=[
                        "Investigate reasons for reporting gaps",
                        "Verify continuous work progress during gap period",
                        "Implement reporting backup procedures",
                    ],
                    related_subject_ids=[prev.id, curr.id],
                )
            )


@dataclass
class BehavioralDetector(Detector):
    """
    Weather-driven work stoppages under a severe weather outlook.

    A daily report counts as weather-related when any work item mentions one
    of the configured keywords.
    """

    thresholds: BehavioralThresholds = field(default_factory=BehavioralThresholds)
    category: ClassVar[AnomalyCategory] = AnomalyCategory.BEHAVIORAL

    def evaluate(self, snapshot: ProjectSnapshot, now: datetime, output: DetectorOutput) -> None:
        t = self.thresholds
        weather = snapshot.weather
        if weather is None or weather.impact_on_schedule != "Severe":
            return

        reports = snapshot.daily_reports
        if not reports:
            return

        affected = [report.id for report in reports if self._mentions_weather(report)]
        ratio = len(affected) / len(reports)
        if ratio <= t.weather_report_ratio:
            return

        output.findings.append(
            self._finding(
                now,
                RULE_WEATHER_STOPPAGES,
                "weather",
                "Weather Impact",
                AnomalySeverity.MEDIUM,
                f"High frequency of weather-related work stoppages ({ratio * 100:.1f}%)",
                observed_value=ratio,
                expected_value=t.weather_report_ratio,
                threshold=t.weather_report_ratio,
                confidence=t.confidence,
                recommendations=[
                    "Review weather contingency plans",
                    "Consider seasonal scheduling adjustments",
                    "Evaluate protective measures for weather-affected work",
                ],
                related_subject_ids=affected,
            )
        )

    def _mentions_weather(self, report: DailyReport) -> bool:
        keywords = [k.lower() for k in self.thresholds.weather_keywords]
        for work in report.work_today:
            text = (work.description or "").lower()
            if any(keyword in text for keyword in keywords):
                return True
        return False
