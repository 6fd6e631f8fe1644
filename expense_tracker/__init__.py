"""
Expense Tracker - Source Package

A personal expense log: record an amount, a category and a note,
review spending by day or period, and move data in and out as CSV.

DESIGN PRINCIPLES:
1. One store owns the record list; everything else reads from it
2. Views and the CSV codec are pure functions
3. Expected anomalies return neutral values, surprises raise
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Expense Tracker Team"
