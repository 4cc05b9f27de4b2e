"""
Expense Tracker - Source Package

A small personal expense tracker: record expenses, then review
spending month by month as a list, a pie chart and a bar chart.

DESIGN PRINCIPLES:
1. Validate before touching storage
2. Storage layer is swappable (Firestore or in-memory)
3. Every read goes through one codec
4. Errors reach the client as one shape: {message, type}
"""

__version__ = "1.0.0"
__author__ = "Expense Tracker Team"
