"""
PayLogix - Source Package

A small bookkeeping tool for tracking receivables (amounts owed to you,
paid off in instalments) and revenues (income already received).

DESIGN PRINCIPLES:
1. The in-memory store only reflects what storage has confirmed
2. Fail early, fail visibly
3. No silent corrections
4. Every mutation is auditable
5. Storage layer is swappable (remote spreadsheet or local files)
"""

__version__ = "1.0.0"
__author__ = "PayLogix Team"
