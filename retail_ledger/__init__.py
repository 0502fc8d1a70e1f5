"""
Retail Ledger

A small account ledger with PIN-gated operations, type-derived overdraft and
minimum-balance rules, compensated transfers and durable JSON snapshots,
using Decimal for every monetary value.
"""

__version__ = "1.0.0"
