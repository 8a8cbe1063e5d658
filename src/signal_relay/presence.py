"""
Presence Publisher

Broadcasts the full directory snapshot to every connection whenever the
set of online users changes. Clients replace their presence view with each
snapshot; no diffs are sent.
"""

import logging

from .schemas import create_presence_update_event
from .state import RelayStore
from .transport import ConnectionHub

logger = logging.getLogger(__name__)


class PresencePublisher:
    def __init__(self, store: RelayStore, hub: ConnectionHub):
        self.store = store
        self.hub = hub

    def publish(self) -> int:
        """
        Broadcast the current presence snapshot.

        Returns:
            Number of connections the snapshot was queued for
        """
        snapshot = self.store.directory.snapshot()
        sent = self.hub.broadcast(create_presence_update_event(snapshot))
        logger.debug(
            f"Published presence of {len(snapshot)} users to {sent} connections"
        )
        return sent
