# nav_logger.py
# Handles all file I/O for the guidance system.
# Saves the navigation target and per-update guidance events as JSON.

import json
import logging
import os
from datetime import datetime
from typing import Optional

from carfinder.guidance.models import GeoPoint, GuidanceResult, NavigationTarget
from carfinder.guidance.nav_config import GuidanceConfig

# Configured by the app entry point
logger = logging.getLogger(__name__)


class NavLogger:
    """
    Persists the saved target and guidance events to JSON files.

    Args:
        config: GuidanceConfig instance for file paths and directories.
    """

    def __init__(self, config: Optional[GuidanceConfig] = None) -> None:
        self.config = config or GuidanceConfig()
        os.makedirs(self.config.log_dir, exist_ok=True)

    # ------------------------------------------------------------------
    # Target persistence
    # ------------------------------------------------------------------

    def save_target(self, target: NavigationTarget) -> bool:
        """
        Serialize the target (parked car / hotel) to JSON.

        Returns:
            True on success, False on failure.
        """
        filepath = self.config.target_filepath
        try:
            data = {
                "saved_at": datetime.now().isoformat(),
                "target": target.to_dict(),
            }
            with open(filepath, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            logger.info(f"Target saved to {filepath}.")
            return True
        except IOError as e:
            logger.error(f"Failed to save target to {filepath}: {e}")
            return False

    def load_target(self, filepath: Optional[str] = None) -> Optional[NavigationTarget]:
        """
        Load a previously saved target.

        Args:
            filepath: Path override; uses config default if omitted.

        Returns:
            NavigationTarget, or None if loading failed.
        """
        path = filepath or self.config.target_filepath
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            target = NavigationTarget.from_dict(data["target"])
            logger.info(f"Target loaded from {path}.")
            return target
        except (IOError, KeyError, ValueError) as e:
            logger.error(f"Failed to load target from {path}: {e}")
            return None

    # ------------------------------------------------------------------
    # Session event logging
    # ------------------------------------------------------------------

    def log_event(self, result: GuidanceResult, position: Optional[GeoPoint] = None) -> None:
        """Append one guidance update to the session log (JSON lines)."""
        entry = {
            "timestamp": datetime.now().isoformat(),
            "lat": position.latitude if position else None,
            "lon": position.longitude if position else None,
            "status": result.status.value,
            "events": [e.type.value for e in result.events],
            "announcement": result.announcement,
            "state": result.state.to_dict() if result.state else None,
        }
        try:
            with open(self.config.session_filepath, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry, ensure_ascii=False) + "\n")
        except IOError as e:
            logger.error(f"Failed to write event log: {e}")
