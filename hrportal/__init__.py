"""
HR portal request approval workflow engine and vacation entitlement ledger.
"""

__version__ = "0.1.0"
