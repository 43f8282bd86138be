"""State layer.

The feed store, the panel ledger and the reconciler that updates both.
Everything here is owned by the single consumer loop, so nothing in this
package takes locks.
"""

from apollos_kiosk.state.ledger import PanelLedger
from apollos_kiosk.state.reconciler import IngestionReconciler, parse_payload
from apollos_kiosk.state.store import FeedStore

__all__ = ["FeedStore", "IngestionReconciler", "PanelLedger", "parse_payload"]
