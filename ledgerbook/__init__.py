"""Ledgerbook - multi-tenant invoicing and expense ledger backend"""

__version__ = "1.0.0"
