"""Revenue batch ledger: import, audit and revocation of receita batches."""
