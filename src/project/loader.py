"""
Project snapshot loading.

Validates raw project data (dicts, JSON text or JSON files) into a
ProjectSnapshot. This is the only place snapshot input is rejected; past this
boundary detectors assume the schema holds.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Union

from pydantic import ValidationError

from src.core.exceptions import DataValidationError
from src.project.schema import ProjectSnapshot

logger = logging.getLogger("sitewatch.project")


def load_snapshot(data: Dict[str, Any]) -> ProjectSnapshot:
    """
    Validate a project dict into a snapshot.

    Args:
        data: Project object as stored by the dashboard (camelCase keys)

    Returns:
        Validated ProjectSnapshot

    Raises:
        DataValidationError: If data is not an object or fails validation
    """
    if not isinstance(data, dict):
        raise DataValidationError(
            f"Project snapshot must be a JSON object, got {type(data).__name__}"
        )

    try:
        snapshot = ProjectSnapshot.model_validate(data)
    except ValidationError as e:
        logger.error("Project snapshot failed validation: %s", e)
        raise DataValidationError(f"Invalid project snapshot: {e}") from e

    logger.debug(
        "Loaded snapshot %s (%d tasks, %d BOQ lines, %d daily reports)",
        snapshot.id,
        len(snapshot.schedule),
        len(snapshot.boq),
        len(snapshot.daily_reports),
    )
    return snapshot


def load_snapshot_json(text: Union[str, bytes]) -> ProjectSnapshot:
    """Parse JSON text and validate it as a snapshot."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise DataValidationError(f"Project snapshot is not valid JSON: {e}") from e
    except UnicodeDecodeError as e:
        logger.error("Project snapshot is not valid UTF-8: %s", e)
        raise DataValidationError(f"Project snapshot is not valid UTF-8: {e}") from e
    return load_snapshot(data)


def load_snapshot_file(filepath: Union[str, Path], encoding: str = "utf-8") -> ProjectSnapshot:
    """
    Read a snapshot from a JSON file.

    Raises:
        DataValidationError: If the file is missing, unreadable or invalid
    """
    path = Path(filepath)
    if not path.exists():
        raise DataValidationError(f"Snapshot file not found: {path}")

    try:
        text = path.read_text(encoding=encoding)
    except UnicodeDecodeError as e:
        logger.error(f"Snapshot file {path} is not valid {encoding}: {e}")
        raise DataValidationError(f"Snapshot file is not valid {encoding}: {e}") from e
    except OSError as e:
        logger.error(f"Error reading snapshot file {path}: {e}")
        raise DataValidationError(f"Failed to read snapshot file: {e}") from e

    return load_snapshot_json(text)
