"""BTC tactical decision panel: entry checklist and spot position ledger."""
