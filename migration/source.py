"""
Reading the document-store snapshot from disk
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional
import logging

from core.config import settings
from core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def load_snapshot(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load the snapshot JSON tree.

    Raises:
        ConfigurationError: File missing, unreadable, or not a JSON object
    """
    snapshot_path = Path(path or settings.SNAPSHOT_PATH)
    if not snapshot_path.is_file():
        raise ConfigurationError(
            "Snapshot file not found",
            context={"path": str(snapshot_path)}
        )

    try:
        snapshot = json.loads(snapshot_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ConfigurationError(
            "Snapshot file could not be read",
            context={"path": str(snapshot_path)},
            original_exception=e
        ) from e

    if not isinstance(snapshot, dict):
        raise ConfigurationError(
            "Snapshot must be a JSON object",
            context={"path": str(snapshot_path), "type": type(snapshot).__name__}
        )

    logger.info(f"Loaded snapshot from {snapshot_path}")
    return snapshot
