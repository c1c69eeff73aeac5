"""Local key-value persistence for demo mode."""

from prospector.storage.local import LocalStore, ns_key

__all__ = ["LocalStore", "ns_key"]
