"""Users module - accounts and the refresh-token ledger."""
