"""Service layer — the replay pipeline and the operations built on a loaded ledger."""
