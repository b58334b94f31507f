"""
Summaries and risk ranking for findings.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from src.core.config import RiskConfig

from .schema import (
    AnomalyCategory,
    AnomalyFinding,
    AnomalySeverity,
    AnomalyStatus,
    AnomalySummary,
)

DEFAULT_RECOMMENDATION = "No significant anomalies detected requiring immediate action"


def summarize(findings: Iterable[AnomalyFinding]) -> AnomalySummary:
    """
    Single pass over findings counting by category, severity and status.
    """

    total = 0
    by_category: Dict[AnomalyCategory, int] = {}
    by_severity: Dict[AnomalySeverity, int] = {}
    open_count = 0
    critical_count = 0

    for finding in findings:
        total += 1
        by_category[finding.category] = by_category.get(finding.category, 0) + 1
        by_severity[finding.severity] = by_severity.get(finding.severity, 0) + 1
        if finding.status == AnomalyStatus.OPEN:
            open_count += 1
        if finding.severity == AnomalySeverity.CRITICAL:
            critical_count += 1

    return AnomalySummary(
        total=total,
        count_by_category=by_category,
        count_by_severity=by_severity,
        open_count=open_count,
        critical_count=critical_count,
    )


def calculate_risk_level(
    summary: AnomalySummary, risk: Optional[RiskConfig] = None
) -> AnomalySeverity:
    """
    Rank overall project risk from a summary alone.

    Any critical finding forces CRITICAL; otherwise the open finding count
    decides between HIGH, MEDIUM and LOW.
    """

    risk = risk or RiskConfig()
    if summary.critical_count > 0:
        return AnomalySeverity.CRITICAL
    if summary.open_count > risk.high_open_count:
        return AnomalySeverity.HIGH
    if summary.open_count > risk.medium_open_count:
        return AnomalySeverity.MEDIUM
    return AnomalySeverity.LOW


def overall_recommendations(
    findings: List[AnomalyFinding], risk: Optional[RiskConfig] = None
) -> List[str]:
    """
    Top-line actions for a report.

    Critical and high counts are always called out first; categories with more
    than risk.category_review_count findings get a process review line.
    """

    risk = risk or RiskConfig()
    recommendations: List[str] = []

    critical = [f for f in findings if f.severity == AnomalySeverity.CRITICAL]
    high = [f for f in findings if f.severity == AnomalySeverity.HIGH]

    if critical:
        recommendations.append(f"Address {len(critical)} critical anomalies immediately")
    if high:
        recommendations.append(f"Review and prioritize {len(high)} high-severity anomalies")

    by_category: Dict[AnomalyCategory, int] = {}
    for finding in findings:
        by_category[finding.category] = by_category.get(finding.category, 0) + 1

    for category, count in by_category.items():
        if count > risk.category_review_count:
            recommendations.append(
                f"Review {category.value} management processes - {count} anomalies detected"
            )

    if not recommendations:
        recommendations.append(DEFAULT_RECOMMENDATION)

    return recommendations
