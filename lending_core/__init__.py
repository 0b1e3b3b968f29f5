"""
Lending Core

Loan reconciliation for a personal lending ledger: balance calculation,
schedule projection, status derivation and the explicit archive gate,
with exact Decimal money math and a hash-chained audit trail.
"""

__version__ = "1.0.0"
