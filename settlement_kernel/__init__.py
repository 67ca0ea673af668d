"""
Settlement Kernel

Payment settlement between client and contractor profile balances:
- Atomic job settlement (debit, credit, mark paid) under row-level locks
- Deposit guard bounded by outstanding debt
- Reporting aggregation over paid jobs
- Role-based access policy
"""

__version__ = "0.1.0"
