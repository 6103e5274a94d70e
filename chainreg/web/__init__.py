"""HTTP surfaces: the GitHub oracle service and the ledger node."""
