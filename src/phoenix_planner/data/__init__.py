"""SQLite-backed session store for review history and the last saved plan.

Storage is best-effort: read failures degrade to empty values and write
failures are logged, never raised.
"""

import logging
import sqlite3
from pathlib import Path

from pydantic import BaseModel, TypeAdapter, ValidationError

from phoenix_planner.models import (
    Diagnostics,
    ExecutionPlan,
    ReviewRecord,
    SimulationResult,
)

logger = logging.getLogger(__name__)

REVIEWS_KEY = "reviews"
LAST_PLAN_KEY = "last_plan"
LAST_DIAGNOSTICS_KEY = "last_diagnostics"
LAST_SIMULATION_KEY = "last_simulation"

_reviews_adapter = TypeAdapter(list[ReviewRecord])


class DataStore:
    """Key-value persistence of the workflow session."""

    def __init__(self, db_path: str | Path = "phoenix_planner.db"):
        self.db_path = Path(db_path)
        try:
            self.conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._init_tables()
        except sqlite3.Error as e:
            logger.warning("Cannot open %s, keeping session in memory: %s", self.db_path, e)
            self.conn = sqlite3.connect(":memory:", check_same_thread=False)
            self._init_tables()

    def _init_tables(self):
        self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS session_state (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            );
        """)
        self.conn.commit()

    def reset(self):
        """Delete every stored key."""
        try:
            self.conn.execute("DELETE FROM session_state")
            self.conn.commit()
        except sqlite3.Error as e:
            logger.warning("Could not clear %s: %s", self.db_path, e)

    def get_state(self, key: str) -> str | None:
        """Get a raw stored value, or None if absent or unreadable."""
        try:
            row = self.conn.execute(
                "SELECT value FROM session_state WHERE key = ?", (key,)
            ).fetchone()
        except sqlite3.Error as e:
            logger.warning("Could not read %s: %s", key, e)
            return None
        return row[0] if row else None

    def set_state(self, key: str, value: str) -> bool:
        """Upsert a raw value. Returns False if the write failed."""
        try:
            self.conn.execute(
                "INSERT OR REPLACE INTO session_state (key, value) VALUES (?, ?)",
                (key, value),
            )
            self.conn.commit()
        except sqlite3.Error as e:
            logger.warning("Could not write %s: %s", key, e)
            return False
        return True

    def save_session(
        self,
        reviews: list[ReviewRecord],
        plan: ExecutionPlan | None,
        diagnostics: Diagnostics | None,
        simulation: SimulationResult | None,
    ) -> None:
        """Persist history and the last plan/diagnostics/simulation, one key at a time."""
        self.set_state(REVIEWS_KEY, _reviews_adapter.dump_json(reviews).decode())
        for key, model in (
            (LAST_PLAN_KEY, plan),
            (LAST_DIAGNOSTICS_KEY, diagnostics),
            (LAST_SIMULATION_KEY, simulation),
        ):
            if model is not None:
                self.set_state(key, model.model_dump_json())

    def load_reviews(self) -> list[ReviewRecord]:
        """Most-recent-first review history; empty on absence or corruption."""
        raw = self.get_state(REVIEWS_KEY)
        if not raw:
            return []
        try:
            return _reviews_adapter.validate_json(raw)
        except ValidationError as e:
            logger.warning("Discarding unreadable review history: %s", e.errors()[:1])
            return []

    def _load_model(self, key: str, model: type[BaseModel]):
        raw = self.get_state(key)
        if not raw:
            return None
        try:
            return model.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable %s", key)
            return None

    def load_last_plan(self) -> ExecutionPlan | None:
        return self._load_model(LAST_PLAN_KEY, ExecutionPlan)

    def load_last_diagnostics(self) -> Diagnostics | None:
        return self._load_model(LAST_DIAGNOSTICS_KEY, Diagnostics)

    def load_last_simulation(self) -> SimulationResult | None:
        return self._load_model(LAST_SIMULATION_KEY, SimulationResult)

    def close(self):
        self.conn.close()
