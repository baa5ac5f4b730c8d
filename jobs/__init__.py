"""Background jobs: Dramatiq broker and ledger processing actors."""
