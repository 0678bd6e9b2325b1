"""Brand clinics and their ledger with the platform."""
