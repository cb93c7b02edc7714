from .ledger_store import LedgerSnapshotStore, LedgerStore

__all__ = ["LedgerSnapshotStore", "LedgerStore"]
