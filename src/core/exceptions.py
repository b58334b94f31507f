"""
Custom exceptions for the site anomaly engine.

Use them to distinguish between snapshot problems, engine failures,
and configuration errors.
"""


class AnomalyDetectionError(Exception):
    """Base exception for anomaly detection failures."""
    pass


class DataValidationError(AnomalyDetectionError):
    """Raised when a project snapshot fails validation or loading."""
    pass


class ConfigurationError(AnomalyDetectionError):
    """Raised when configuration is invalid or missing."""
    pass
