# Services Package
from ledgerbook.services.tenant import ScopedRepository, PageResult
from ledgerbook.services.numbering import InvoiceNumberService
from ledgerbook.services.totals import compute_totals, InvoiceTotals
from ledgerbook.services.invoice_service import InvoiceService
from ledgerbook.services.client_service import ClientService
from ledgerbook.services.expense_service import ExpenseService
from ledgerbook.services.organization_service import OrganizationService
from ledgerbook.services.report_service import ReportService
from ledgerbook.services.audit_service import AuditService, AuditAction

__all__ = [
    'ScopedRepository',
    'PageResult',
    'InvoiceNumberService',
    'compute_totals',
    'InvoiceTotals',
    'InvoiceService',
    'ClientService',
    'ExpenseService',
    'OrganizationService',
    'ReportService',
    'AuditService',
    'AuditAction',
]
