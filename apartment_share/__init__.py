"""
Apartment Share - Source Package

Shared-expense ledger for a fixed set of apartments in one building.
Tracks who paid for what, who still owes their share, and the net
position of every apartment.

DESIGN PRINCIPLES:
1. Balances are always recomputed from the full expense history
2. Fail early, fail visibly
3. No silent corrections (legacy schema upgrades are the one exception)
4. Every state change is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Apartment Share Team"
