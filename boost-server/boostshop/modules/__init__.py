"""Feature modules: accounts, catalog, deposits, orchestrator, orders and wallets."""
