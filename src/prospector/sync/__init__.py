"""Debounced edit synchronisation for the selected prospect."""

from prospector.sync.session import EditSession, FlushResult
from prospector.sync.synchronizer import EntityEditSynchronizer, create_synchronizer

__all__ = ["EditSession", "EntityEditSynchronizer", "FlushResult", "create_synchronizer"]
