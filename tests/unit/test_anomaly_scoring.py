"""
Unit tests for summaries, risk ranking and recommendations.
"""

from conftest import NOW

from src.anomaly.schema import (
    AnomalyCategory,
    AnomalyFinding,
    AnomalySeverity,
    AnomalyStatus,
    AnomalySummary,
)
from src.anomaly.scoring import (
    DEFAULT_RECOMMENDATION,
    calculate_risk_level,
    overall_recommendations,
    summarize,
)


def _finding(category: AnomalyCategory, severity: AnomalySeverity, status=AnomalyStatus.OPEN):
    return AnomalyFinding(
        timestamp=NOW,
        category=category,
        severity=severity,
        rule=f"{category.value}.test",
        subject_id="s1",
        subject_label="Subject",
        description="test finding",
        observed_value=1,
        confidence=80,
        status=status,
    )


def test_summarize_counts_in_single_pass():
    findings = [
        _finding(AnomalyCategory.SCHEDULE, AnomalySeverity.CRITICAL),
        _finding(AnomalyCategory.SCHEDULE, AnomalySeverity.MEDIUM),
        _finding(AnomalyCategory.COST, AnomalySeverity.HIGH, status=AnomalyStatus.RESOLVED),
    ]

    summary = summarize(findings)

    assert summary.total == 3
    assert summary.count_by_category == {AnomalyCategory.SCHEDULE: 2, AnomalyCategory.COST: 1}
    assert summary.count_by_severity[AnomalySeverity.CRITICAL] == 1
    assert summary.open_count == 2
    assert summary.critical_count == 1


def test_summarize_empty():
    summary = summarize([])
    assert summary.total == 0
    assert summary.count_by_category == {}
    assert summary.open_count == 0


def test_risk_level_rules():
    def level(open_count: int, critical_count: int = 0) -> AnomalySeverity:
        return calculate_risk_level(
            AnomalySummary(total=open_count, open_count=open_count, critical_count=critical_count)
        )

    assert level(0) == AnomalySeverity.LOW
    assert level(5) == AnomalySeverity.LOW
    assert level(6) == AnomalySeverity.MEDIUM
    assert level(10) == AnomalySeverity.MEDIUM
    assert level(11) == AnomalySeverity.HIGH
    assert level(1, critical_count=1) == AnomalySeverity.CRITICAL


def test_risk_level_depends_on_summary_only():
    summary = AnomalySummary(total=11, open_count=11, critical_count=0)
    assert calculate_risk_level(summary) == calculate_risk_level(summary) == AnomalySeverity.HIGH


def test_recommendations_call_out_critical_high_and_busy_categories():
    findings = [_finding(AnomalyCategory.COST, AnomalySeverity.MEDIUM) for _ in range(4)]
    findings.append(_finding(AnomalyCategory.SCHEDULE, AnomalySeverity.CRITICAL))
    findings.append(_finding(AnomalyCategory.QUALITY, AnomalySeverity.HIGH))

    recommendations = overall_recommendations(findings)

    assert recommendations == [
        "Address 1 critical anomalies immediately",
        "Review and prioritize 1 high-severity anomalies",
        "Review cost management processes - 4 anomalies detected",
    ]


def test_three_findings_in_category_do_not_trigger_review():
    findings = [_finding(AnomalyCategory.PROGRESS, AnomalySeverity.MEDIUM) for _ in range(3)]
    assert overall_recommendations(findings) == [DEFAULT_RECOMMENDATION]
