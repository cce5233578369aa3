"""
SQLAlchemy Models for the invoicing ledger
"""
from datetime import datetime, date
from decimal import Decimal
from sqlalchemy import (
    Column, Integer, String, Text, DateTime, Date, Numeric,
    ForeignKey, Index, CheckConstraint, func
)
from sqlalchemy.orm import relationship, declared_attr
import enum

from ledgerbook.core.database import Base


# ==================== ENUMS ====================

class Currency(enum.Enum):
    CAD = "CAD"
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    PKR = "PKR"


class ClientStatus(enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class InvoiceStatus(enum.Enum):
    DRAFT = "Draft"
    SENT = "Sent"
    PAID = "Paid"
    PARTIAL = "Partial"
    OVERDUE = "Overdue"


# Invoices that still expect money
OUTSTANDING_STATUSES = (
    InvoiceStatus.SENT.value,
    InvoiceStatus.PARTIAL.value,
    InvoiceStatus.OVERDUE.value,
)


class ExpenseCategory(enum.Enum):
    RENT = "Rent"
    PAYROLL = "Payroll"
    SUPPLIES = "Supplies"
    SOFTWARE = "Software"
    MARKETING = "Marketing"
    TRAVEL = "Travel"
    UTILITIES = "Utilities"
    OTHER = "Other"


# ==================== MIXINS ====================

class TenantScopedMixin:
    """Columns every organization-owned, soft-deletable record carries"""

    @declared_attr
    def organization_id(cls):
        return Column(Integer, ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False, index=True)

    deleted_at = Column(DateTime, nullable=True, default=None)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


# ==================== CORE MODELS ====================

class Organization(Base):
    """Tenant root"""
    __tablename__ = 'organizations'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    logo_url = Column(String(500), nullable=True)
    tax_id = Column(String(100), nullable=True)
    currency = Column(String(3), nullable=False, default=Currency.CAD.value)
    address = Column(Text, nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    website = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Client(TenantScopedMixin, Base):
    """Customer of an organization"""
    __tablename__ = 'clients'

    id = Column(Integer, primary_key=True)
    company_name = Column(String(255), nullable=False)
    contact_person = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=ClientStatus.ACTIVE.value)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    organization = relationship("Organization")
    invoices = relationship("Invoice", back_populates="client")


# Company name is unique per organization, case-insensitively, among live clients
Index(
    'uq_clients_org_company_name',
    Client.organization_id,
    func.lower(Client.company_name),
    unique=True,
    sqlite_where=Client.deleted_at.is_(None),
    postgresql_where=Client.deleted_at.is_(None),
)


class Expense(TenantScopedMixin, Base):
    """Expense record"""
    __tablename__ = 'expenses'

    id = Column(Integer, primary_key=True)
    category = Column(String(20), nullable=False)
    amount = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    expense_date = Column(Date, nullable=False, default=date.today)
    receipt_url = Column(String(500), nullable=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    organization = relationship("Organization")

    __table_args__ = (
        CheckConstraint('amount >= 0', name='ck_expense_amount_non_negative'),
        Index('ix_expenses_org_date', 'organization_id', 'expense_date'),
    )


class Invoice(TenantScopedMixin, Base):
    """
    Invoice header.

    subtotal, tax_amount, total_amount and each item's line_total are
    computed server-side before every persist and stored, so historical
    invoices keep their amounts even if the calculation changes later.
    """
    __tablename__ = 'invoices'

    id = Column(Integer, primary_key=True)
    invoice_number = Column(String(20), nullable=False, unique=True)
    issue_date = Column(Date, nullable=False, default=date.today)
    due_date = Column(Date, nullable=True)
    status = Column(String(20), nullable=False, default=InvoiceStatus.DRAFT.value)
    subtotal = Column(Numeric(15, 2), default=Decimal("0.00"))
    tax_rate = Column(Numeric(5, 2), default=Decimal("13.00"))
    tax_amount = Column(Numeric(15, 2), default=Decimal("0.00"))
    total_amount = Column(Numeric(15, 2), default=Decimal("0.00"))
    notes = Column(Text, nullable=True)
    client_id = Column(Integer, ForeignKey('clients.id', ondelete='RESTRICT'), nullable=False)
    created_by = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    organization = relationship("Organization")
    client = relationship("Client", back_populates="invoices")
    items = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.position",
    )

    __table_args__ = (
        Index('ix_invoices_org_status', 'organization_id', 'status'),
        Index('ix_invoices_org_issue_date', 'organization_id', 'issue_date'),
    )


class InvoiceItem(Base):
    """Invoice line; has no identity outside its invoice"""
    __tablename__ = 'invoice_items'

    id = Column(Integer, primary_key=True)
    position = Column(Integer, nullable=False, default=0)
    description = Column(String(500), nullable=False)
    quantity = Column(Numeric(15, 4), nullable=False, default=Decimal("1"))
    unit_price = Column(Numeric(15, 4), nullable=False)
    line_total = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    invoice_id = Column(Integer, ForeignKey('invoices.id', ondelete='CASCADE'), nullable=False)

    invoice = relationship("Invoice", back_populates="items")

    __table_args__ = (
        CheckConstraint('quantity >= 1', name='ck_invoice_item_quantity'),
        CheckConstraint('unit_price >= 0', name='ck_invoice_item_unit_price'),
    )


# ==================== AUDIT ====================

class AuditLog(Base):
    """Audit trail for invoice lifecycle changes"""
    __tablename__ = 'audit_logs'

    id = Column(Integer, primary_key=True)
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Who performed the action
    user_id = Column(String(100), nullable=True)

    # What action was performed
    action = Column(String(50), nullable=False)  # CREATE, UPDATE, STATUS_CHANGE, DELETE
    resource_type = Column(String(100), nullable=False)
    resource_id = Column(Integer, nullable=True)

    organization_id = Column(Integer, ForeignKey('organizations.id', ondelete='SET NULL'), nullable=True)

    description = Column(Text, nullable=True)
    old_values = Column(Text, nullable=True)  # JSON string
    new_values = Column(Text, nullable=True)  # JSON string

    __table_args__ = (
        Index('ix_audit_logs_timestamp', 'timestamp'),
        Index('ix_audit_logs_organization_id', 'organization_id'),
        Index('ix_audit_logs_resource', 'resource_type', 'resource_id'),
    )
