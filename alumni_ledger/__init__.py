"""
Alumni Ledger - Source Package

Bookkeeping backend for an alumni class: a transaction ledger with
spreadsheet import, duplicate reconciliation, announcements, classmate
profiles and reporting.

DESIGN PRINCIPLES:
1. Import never guesses - invalid rows are dropped, not repaired
2. Reconciliation proposes, the operator decides
3. Never delete every member of a duplicate group
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Alumni Ledger Team"
