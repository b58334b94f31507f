"""
Anomaly pattern catalog.

Patterns give a name to a detector rule so recurring findings can be tracked
across runs. The catalog lives in memory and is owned by the caller; the
engine itself stays stateless.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, Iterator, List, Optional

from .detectors import (
    RULE_COST_VARIANCE,
    RULE_LAB_FAILURE_RATE,
    RULE_MAINTENANCE_IDLE,
    RULE_OPEN_NCRS,
    RULE_OPEN_RFIS,
    RULE_OVERDUE_TASK,
    RULE_PROGRESS_DEVIATION,
    RULE_REPORT_GAP,
    RULE_WEATHER_STOPPAGES,
)
from .schema import AnomalyFinding, AnomalyPattern, AnomalySeverity

logger = logging.getLogger("sitewatch.anomaly.patterns")

BUILTIN_PATTERNS = [
    (
        "Overdue task",
        "Unfinished task more than a week past its end date",
        RULE_OVERDUE_TASK,
        ["schedule.endDate", "schedule.status"],
        AnomalySeverity.HIGH,
    ),
    (
        "Progress deviation",
        "Reported progress far from the share of planned duration elapsed",
        RULE_PROGRESS_DEVIATION,
        ["schedule.startDate", "schedule.endDate", "schedule.progress"],
        AnomalySeverity.MEDIUM,
    ),
    (
        "BOQ cost variance",
        "Executed cost of a BOQ line drifts more than 20% from its contract amount",
        RULE_COST_VARIANCE,
        ["boq.quantity", "boq.rate", "boq.amount", "boq.completedQuantity"],
        AnomalySeverity.MEDIUM,
    ),
    (
        "Lab failure rate",
        "More than 10% of lab tests failed",
        RULE_LAB_FAILURE_RATE,
        ["labTests.result"],
        AnomalySeverity.HIGH,
    ),
    (
        "Open NCR backlog",
        "More than five NCRs open or pending correction",
        RULE_OPEN_NCRS,
        ["ncrs.status"],
        AnomalySeverity.HIGH,
    ),
    (
        "Open RFI share",
        "More than 30% of RFIs open or pending inspection",
        RULE_OPEN_RFIS,
        ["rfis.status"],
        AnomalySeverity.HIGH,
    ),
    (
        "Idle maintenance",
        "Vehicle in maintenance more than five days after its last log",
        RULE_MAINTENANCE_IDLE,
        ["vehicles.status", "vehicleLogs.date"],
        AnomalySeverity.MEDIUM,
    ),
    (
        "Reporting gap",
        "More than two days between consecutive daily reports",
        RULE_REPORT_GAP,
        ["dailyReports.date"],
        AnomalySeverity.MEDIUM,
    ),
    (
        "Weather stoppages",
        "Frequent weather-related work under a severe weather outlook",
        RULE_WEATHER_STOPPAGES,
        ["weather.impactOnSchedule", "dailyReports.workToday"],
        AnomalySeverity.MEDIUM,
    ),
]


def create_anomaly_pattern(
    name: str,
    description: str,
    detection_rule: str,
    severity: AnomalySeverity,
    affected_fields: Optional[List[str]] = None,
    now: Optional[datetime] = None,
) -> AnomalyPattern:
    """
    Create a pattern definition with zero frequency.

    last_detected starts at creation time.
    """
    return AnomalyPattern(
        name=name,
        description=description,
        detection_rule=detection_rule,
        affected_fields=affected_fields or [],
        severity=severity,
        frequency=0,
        last_detected=now or datetime.now(timezone.utc),
    )


class PatternCatalog:
    """
    In-memory registry of anomaly patterns keyed by pattern id.
    """

    def __init__(self, patterns: Optional[Iterable[AnomalyPattern]] = None) -> None:
        self._patterns: Dict[str, AnomalyPattern] = {}
        for pattern in patterns or []:
            self._patterns[pattern.id] = pattern

    @classmethod
    def with_builtin_rules(cls, now: Optional[datetime] = None) -> "PatternCatalog":
        catalog = cls()
        for name, description, rule, fields, severity in BUILTIN_PATTERNS:
            catalog.create_pattern(name, description, rule, severity, fields, now=now)
        return catalog

    def create_pattern(
        self,
        name: str,
        description: str,
        detection_rule: str,
        severity: AnomalySeverity,
        affected_fields: Optional[List[str]] = None,
        now: Optional[datetime] = None,
    ) -> AnomalyPattern:
        pattern = create_anomaly_pattern(
            name, description, detection_rule, severity, affected_fields, now=now
        )
        self._patterns[pattern.id] = pattern
        return pattern

    def get(self, pattern_id: str) -> Optional[AnomalyPattern]:
        return self._patterns.get(pattern_id)

    def for_rule(self, rule: str) -> List[AnomalyPattern]:
        return [p for p in self._patterns.values() if p.detection_rule == rule]

    def observe(self, findings: Iterable[AnomalyFinding]) -> List[AnomalyPattern]:
        """
        Count findings against patterns with a matching detection_rule.

        Returns the patterns whose frequency changed.
        """
        matches: Dict[str, List[AnomalyFinding]] = {}
        for finding in findings:
            for pattern in self.for_rule(finding.rule):
                matches.setdefault(pattern.id, []).append(finding)

        updated: List[AnomalyPattern] = []
        for pattern_id, matched in matches.items():
            pattern = self._patterns[pattern_id]
            pattern = pattern.model_copy(
                update={
                    "frequency": pattern.frequency + len(matched),
                    "last_detected": max(f.timestamp for f in matched),
                }
            )
            self._patterns[pattern_id] = pattern
            updated.append(pattern)

        if updated:
            logger.debug("Updated %d anomaly patterns", len(updated))
        return updated

    def __iter__(self) -> Iterator[AnomalyPattern]:
        return iter(list(self._patterns.values()))

    def __len__(self) -> int:
        return len(self._patterns)
