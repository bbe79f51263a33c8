"""State persistence layer.

Provides the SQLite key/value database and the typed store that
round-trips the ledger, user drafts and data-source config.
"""

from tactical.data.database import StateDatabase
from tactical.data.store import PanelState, PanelStateStore

__all__ = ["PanelState", "PanelStateStore", "StateDatabase"]
