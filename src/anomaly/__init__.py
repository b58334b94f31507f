"""
Anomaly module: rule-based anomaly detection over project snapshots.

Implements detectors, the aggregating engine, risk scoring, and the
anomaly pattern catalog.
"""

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
from .engine import AnomalyEngine, build_report, detect_anomalies
from .patterns import PatternCatalog, create_anomaly_pattern
from .schema import (
	AnomalyCategory,
	AnomalyFinding,
	AnomalyPattern,
	AnomalyReport,
	AnomalySeverity,
	AnomalyStatus,
	AnomalySummary,
	DataQualityWarning,
)
from .scoring import calculate_risk_level, overall_recommendations, summarize

__all__ = [
	"AnomalyEngine",
	"detect_anomalies",
	"build_report",
	"Detector",
	"DetectorOutput",
	"ScheduleDetector",
	"CostDetector",
	"QualityDetector",
	"SafetyDetector",
	"ResourceDetector",
	"ProgressDetector",
	"BehavioralDetector",
	"AnomalyCategory",
	"AnomalyFinding",
	"AnomalyPattern",
	"AnomalyReport",
	"AnomalySeverity",
	"AnomalyStatus",
	"AnomalySummary",
	"DataQualityWarning",
	"PatternCatalog",
	"create_anomaly_pattern",
	"calculate_risk_level",
	"overall_recommendations",
	"summarize",
]
