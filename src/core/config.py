"""
Application configuration for the site anomaly engine.

Provides environment-aware settings. Detector thresholds default to the values
the dashboard has always used and can be overridden per deployment.
"""

from __future__ import annotations

from pathlib import Path
from typing import List

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ScheduleThresholds(BaseModel):
	"""
	Thresholds for overdue tasks and progress deviation.

	Notes:
	- overdue_days: tasks overdue by more than this many days are flagged.
	- overdue_high_days / overdue_critical_days: severity bounds.
	- progress_deviation_pct: gap between actual and time-expected progress.
	"""

	overdue_days: int = Field(7, ge=0)
	overdue_high_days: int = Field(14, ge=0)
	overdue_critical_days: int = Field(30, ge=0)
	overdue_confidence: float = Field(90.0, ge=0.0, le=100.0)

	progress_deviation_pct: float = Field(30.0, ge=0.0)
	progress_deviation_high_pct: float = Field(50.0, ge=0.0)
	progress_confidence: float = Field(85.0, ge=0.0, le=100.0)

	@model_validator(mode="after")
	def _check_order(self) -> "ScheduleThresholds":
		if not self.overdue_days <= self.overdue_high_days <= self.overdue_critical_days:
			raise ValueError("overdue thresholds must be non-decreasing")
		if self.progress_deviation_pct > self.progress_deviation_high_pct:
			raise ValueError("progress deviation threshold exceeds its high bound")
		return self


class CostThresholds(BaseModel):
	"""
	Relative variance between actual and expected cost of a BOQ line.
	"""

	variance_ratio: float = Field(0.2, ge=0.0, description="Flag above 20% variance")
	variance_high_ratio: float = Field(0.5, ge=0.0, description="High above 50% variance")
	confidence: float = Field(80.0, ge=0.0, le=100.0)

	@model_validator(mode="after")
	def _check_order(self) -> "CostThresholds":
		if self.variance_ratio > self.variance_high_ratio:
			raise ValueError("variance threshold exceeds its high bound")
		return self


class QualityThresholds(BaseModel):
	"""
	Lab test failure ratio and open NCR backlog.
	"""

	lab_fail_ratio: float = Field(0.1, ge=0.0, le=1.0)
	lab_confidence: float = Field(90.0, ge=0.0, le=100.0)
	open_ncr_count: int = Field(5, ge=0)
	open_ncr_critical_count: int = Field(10, ge=0)
	ncr_confidence: float = Field(85.0, ge=0.0, le=100.0)
	open_ncr_statuses: List[str] = Field(
		default_factory=lambda: ["Open", "Correction Pending"]
	)

	@model_validator(mode="after")
	def _check_order(self) -> "QualityThresholds":
		if self.open_ncr_count > self.open_ncr_critical_count:
			raise ValueError("open NCR threshold exceeds its critical bound")
		return self


class SafetyThresholds(BaseModel):
	"""
	Share of RFIs still waiting on a response or inspection.
	"""

	open_rfi_ratio: float = Field(0.3, ge=0.0, le=1.0)
	confidence: float = Field(80.0, ge=0.0, le=100.0)
	open_rfi_statuses: List[str] = Field(
		default_factory=lambda: ["Open", "Pending Inspection"]
	)


class ResourceThresholds(BaseModel):
	maintenance_idle_days: float = Field(5.0, ge=0.0)
	confidence: float = Field(75.0, ge=0.0, le=100.0)


class ProgressThresholds(BaseModel):
	report_gap_days: float = Field(2.0, ge=0.0)
	confidence: float = Field(70.0, ge=0.0, le=100.0)


class BehavioralThresholds(BaseModel):
	"""
	Weather-related stoppages while the forecast impact is severe.
	"""

	weather_report_ratio: float = Field(0.3, ge=0.0, le=1.0)
	confidence: float = Field(80.0, ge=0.0, le=100.0)
	weather_keywords: List[str] = Field(
		default_factory=lambda: ["weather", "rain", "storm"]
	)


class RiskConfig(BaseModel):
	"""
	Bounds used to rank a report's overall risk and its recommendations.
	"""

	high_open_count: int = Field(10, ge=0)
	medium_open_count: int = Field(5, ge=0)
	category_review_count: int = Field(3, ge=0)

	@model_validator(mode="after")
	def _check_order(self) -> "RiskConfig":
		if self.medium_open_count > self.high_open_count:
			raise ValueError("medium open count exceeds the high open count")
		return self


class AnomalyConfig(BaseModel):
	"""
	Rule engine configuration.
	"""

	schedule: ScheduleThresholds = ScheduleThresholds()
	cost: CostThresholds = CostThresholds()
	quality: QualityThresholds = QualityThresholds()
	safety: SafetyThresholds = SafetyThresholds()
	resource: ResourceThresholds = ResourceThresholds()
	progress: ProgressThresholds = ProgressThresholds()
	behavioral: BehavioralThresholds = BehavioralThresholds()
	risk: RiskConfig = RiskConfig()


class Config(BaseSettings):
	"""
	Global configuration with environment overrides.
	"""

	model_config = SettingsConfigDict(
		env_prefix="SITEWATCH_",
		env_file=".env",
		env_nested_delimiter="__",
		extra="ignore",
	)

	log_level: str = Field("INFO", description="Default logging level")
	logs_dir: Path = Field(Path("logs"), description="Directory for log files")
	anomaly: AnomalyConfig = AnomalyConfig()

	def model_post_init(self, __context: object) -> None:
		self.logs_dir.mkdir(parents=True, exist_ok=True)


config = Config()
