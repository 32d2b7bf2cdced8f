"""
FILE: lumina/core/workspace.py
PURPOSE: Wire the durable store, database and managers for one session
EXPORTS:
  - Workspace: store + database + TaskManager + ProjectManager + preferences
DEPENDENCIES:
  - asyncio, logging, pathlib (stdlib)
  - lumina.core (storage, database, repository, service, filters, config,
    preferences)
NOTES:
  - Managers start on the durable store and switch to the database when
    its initialization completes
  - A failed database initialization is logged and the session carries
    on with the durable store only
"""

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from .config import get_data_dir
from .database import Database
from .exceptions import DatabaseInitError
from .filters import project_counts
from .models import Project
from .preferences import FocusTimer, ThemePreference, WheelOptions
from .repository import SettingsRepository
from .service import TaskManager, ProjectManager
from .storage import JsonStore

logger = logging.getLogger(__name__)


class Workspace:
    """
    Everything one session needs.

    Usage:
        ws = Workspace()
        ws.open()
        ws.tasks.add("Buy milk", "today")
        ws.close()
    """

    def __init__(self, data_dir=None, seed_demo: bool = False) -> None:
        self.data_dir = Path(data_dir) if data_dir is not None else get_data_dir()
        self.store = JsonStore(self.data_dir)
        self.db = Database(self.store)
        self.tasks = TaskManager.create(self.store, self.db)
        self.projects = ProjectManager.create(self.store, self.db, seed_demo=seed_demo)
        self.settings = SettingsRepository(self.db)
        self.theme = ThemePreference(self.store)
        self.wheel = WheelOptions(self.store)
        self.timer = FocusTimer(self.store)

    async def start(self) -> bool:
        """
        Initialize the database; managers switch over via its ready signal.

        Returns:
            True if the database is in use, False if running on the durable
            store only
        """
        try:
            await self.db.initialize()
        except DatabaseInitError as e:
            logger.error("Database unavailable, using durable store only: %s", e)
            return False
        return True

    def open(self) -> bool:
        """Synchronous wrapper around start() for scripts and the CLI."""
        return asyncio.run(self.start())

    def sync_project_progress(self, project_id: str) -> Optional[Project]:
        """Recompute a project's cached progress from its linked tasks."""
        completed, total = project_counts(self.tasks.tasks, project_id)
        return self.projects.update_progress(project_id, completed, total)

    def import_database(self, data: bytes, source: Optional[str] = None) -> None:
        """
        Replace the database contents and reload both managers.

        The time and source of the import are kept in the "last_import"
        setting of the imported database.
        """
        self.db.import_bytes(data)
        self.settings.set("last_import", {
            "at": datetime.now().isoformat(timespec="seconds"),
            "source": source,
            "bytes": len(data),
        })
        self.tasks.refresh()
        self.projects.refresh()

    def close(self) -> None:
        for preference in (self.theme, self.wheel, self.timer):
            preference.close()
        self.tasks.close()
        self.projects.close()
        self.db.close()
