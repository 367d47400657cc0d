"""TripLedger: shared trip expenses with per-debtor consent."""
