"""
Household Ledger - Source Package

The aggregation and budgeting engine behind a shared household finance
tracker. A small group of co-equal people record transactions, assets,
liabilities, monthly budgets and recurring rules; this package turns those
raw records into the views the household looks at every day.

DESIGN PRINCIPLES:
1. Every view is recomputed from the current collections
2. Nothing is stored that can be derived (rollover, totals, progress)
3. A rejected write changes nothing locally
4. "No budget" is not the same thing as "a budget of zero"
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Household Ledger Team"
