"""Discord UI components (views and modals) used by the ledger commands."""
