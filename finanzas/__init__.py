"""
Finanzas Pro - Source Package

A personal finance tracker: income and expense transactions, debts,
savings goals, dashboards and AI-generated advice.

DESIGN PRINCIPLES:
1. Local state first, then persist
2. Every mutation reports its outcome
3. Aggregations are pure functions
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finanzas Pro Team"
