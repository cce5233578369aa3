# API v1 Package
from ledgerbook.api.v1 import invoices, clients, expenses, reports, organization

__all__ = [
    'invoices',
    'clients',
    'expenses',
    'reports',
    'organization',
]
