"""
Unit tests for the anomaly detection engine.
"""

from datetime import datetime

import pytest
from pydantic import ValidationError

from conftest import NOW, days_ago

from src.anomaly.detectors import Detector
from src.anomaly.engine import AnomalyEngine, build_report, detect_anomalies
from src.anomaly.schema import AnomalyCategory, AnomalySeverity, AnomalyStatus
from src.anomaly.scoring import DEFAULT_RECOMMENDATION
from src.core.exceptions import AnomalyDetectionError, ConfigurationError, DataValidationError
from src.project.schema import ProjectSnapshot


class ExplodingDetector(Detector):
    category = AnomalyCategory.WEATHER

    def evaluate(self, snapshot, now, output):
        raise RuntimeError("boom")


def test_empty_project_gives_low_risk_report(engine):
    report = engine.build_report({"id": "p-empty"})

    assert report.project_id == "p-empty"
    assert report.findings == []
    assert report.risk_level == AnomalySeverity.LOW
    assert report.recommendations == [DEFAULT_RECOMMENDATION]
    assert report.summary.total == 0
    assert report.generated_at == NOW


def test_null_collections_are_treated_as_empty(engine):
    report = engine.build_report(
        {"id": "p-null", "schedule": None, "boq": None, "dailyReports": None, "weather": None}
    )
    assert report.findings == []
    assert report.warnings == []


def test_sample_project_is_clean(engine, sample_project):
    report = engine.build_report(sample_project)
    assert report.findings == []
    assert report.risk_level == AnomalySeverity.LOW


def test_single_task_forty_days_overdue(engine):
    project = {
        "id": "p-late",
        "schedule": [
            {
                "id": "st-9",
                "name": "Culvert Construction",
                "startDate": days_ago(70),
                "endDate": days_ago(40),
                "progress": 90,
                "status": "On Track",
            }
        ],
    }

    report = engine.build_report(project)

    assert len(report.findings) == 1
    finding = report.findings[0]
    assert finding.category == AnomalyCategory.SCHEDULE
    assert finding.severity == AnomalySeverity.CRITICAL
    assert report.summary.open_count == 1
    # a critical finding forces the overall risk to critical
    assert report.risk_level == AnomalySeverity.CRITICAL
    assert report.recommendations[0] == "Address 1 critical anomalies immediately"


def test_detect_concatenates_all_detectors(engine, sample_project):
    sample_project["boq"][0]["amount"] = 1
    sample_project["ncrs"] = [{"id": f"ncr-{i}", "status": "Open"} for i in range(6)]
    sample_project["dailyReports"].append({"id": "dr-old", "date": days_ago(10)})

    findings = engine.detect(sample_project)

    categories = sorted(f.category.value for f in findings)
    assert categories == ["cost", "progress", "quality"]


def test_failing_detector_does_not_blank_report(engine):
    engine.detectors.append(ExplodingDetector())
    project = {"id": "p1", "ncrs": [{"id": f"n{i}", "status": "Open"} for i in range(6)]}

    report = engine.build_report(project)

    assert len(report.findings) == 1
    assert report.findings[0].category == AnomalyCategory.QUALITY
    assert len(report.warnings) == 1
    assert report.warnings[0].detector == AnomalyCategory.WEATHER
    assert "boom" in report.warnings[0].message


def test_malformed_dates_surface_as_report_warnings(engine):
    project = {
        "id": "p1",
        "dailyReports": [
            {"id": "dr-1", "date": "yesterday"},
            {"id": "dr-2", "date": days_ago(1)},
        ],
    }

    report = engine.build_report(project)

    assert report.findings == []
    assert [(w.record_id, w.field) for w in report.warnings] == [("dr-1", "date")]


def test_snapshot_is_not_mutated(engine, sample_project):
    sample_project["schedule"].append(
        {"id": "late", "startDate": days_ago(60), "endDate": days_ago(20), "progress": 10}
    )
    snapshot = ProjectSnapshot.model_validate(sample_project)
    before = snapshot.model_dump()

    engine.build_report(snapshot)

    assert snapshot.model_dump() == before


def test_update_status_returns_copy(engine):
    findings = engine.detect({"id": "p1", "schedule": [{"id": "t", "endDate": days_ago(9)}]})
    original = findings[0]

    updated = engine.update_status(original, AnomalyStatus.INVESTIGATING)

    assert updated.status == AnomalyStatus.INVESTIGATING
    assert updated.id == original.id
    assert original.status == AnomalyStatus.OPEN
    with pytest.raises(ValidationError):
        original.status = AnomalyStatus.RESOLVED


def test_overrides_change_thresholds():
    engine = AnomalyEngine.from_overrides(
        {"schedule": {"overdue_days": 3}}, clock=lambda: NOW
    )
    findings = engine.detect({"id": "p1", "schedule": [{"id": "t", "endDate": days_ago(5)}]})
    assert len(findings) == 1
    assert findings[0].threshold == 3


def test_invalid_overrides_raise_configuration_error():
    with pytest.raises(ConfigurationError):
        AnomalyEngine.from_overrides({"schedule": {"overdue_days": 20}})


def test_invalid_snapshot_raises_data_validation_error(engine):
    with pytest.raises(DataValidationError):
        engine.build_report({"schedule": []})


def test_over_reported_progress_does_not_reject_snapshot(engine):
    project = {
        "id": "p1",
        "schedule": [{"id": "t1", "progress": 100.5, "status": "Completed"}],
        "ncrs": [{"id": f"ncr-{i}", "status": "Open"} for i in range(6)],
    }

    report = engine.build_report(project)

    assert [f.rule for f in report.findings] == ["quality.open_ncrs"]


def test_engine_errors_share_a_base_class(engine):
    with pytest.raises(AnomalyDetectionError):
        engine.build_report({"schedule": []})

    with pytest.raises(AnomalyDetectionError):
        AnomalyEngine.from_overrides({"risk": {"medium_open_count": 20}})


def test_naive_now_is_treated_as_utc(engine):
    report = engine.build_report({"id": "p1"}, now=datetime(2026, 1, 31, 12, 0))
    assert report.generated_at == NOW


def test_module_level_helpers():
    project = {"id": "p1", "schedule": [{"id": "t", "endDate": days_ago(10)}]}
    findings = detect_anomalies(project, now=NOW)
    report = build_report(project, now=NOW)

    assert len(findings) == 1
    assert report.summary.total == 1
    assert report.risk_level == AnomalySeverity.LOW


def test_report_serializes_with_camel_case(engine):
    report = engine.build_report({"id": "p1", "schedule": [{"id": "t", "endDate": days_ago(10)}]})
    payload = report.model_dump(by_alias=True, mode="json")

    assert payload["projectId"] == "p1"
    assert payload["riskLevel"] == "low"
    assert payload["summary"]["countByCategory"] == {"schedule": 1}
    assert payload["findings"][0]["subjectId"] == "t"
    assert payload["findings"][0]["relatedSubjectIds"] == []
