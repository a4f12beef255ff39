"""
Expense Tracker - Source Package

Core of a personal finance tracker: expense records, a monthly budget
and income, composable filters, and period-normalised totals.

DESIGN PRINCIPLES:
1. The Record Store is the single owner of expense data
2. Queries are pure reads over a snapshot
3. No optimistic writes - memory changes only after the backend confirms
4. One bad record never blocks the rest
5. Storage layer is swappable (local file or remote backend)
"""

__version__ = "1.0.0"
__author__ = "Expense Tracker Team"
