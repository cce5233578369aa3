"""
Pydantic Schemas for API Validation
"""
from pydantic import BaseModel, EmailStr, Field, ConfigDict, field_validator
from typing import Generic, List, Optional, TypeVar
from datetime import datetime, date
from decimal import Decimal
from enum import Enum


# ==================== ENUMS ====================

class CurrencyEnum(str, Enum):
    CAD = "CAD"
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    PKR = "PKR"


class ClientStatusEnum(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class InvoiceStatusEnum(str, Enum):
    DRAFT = "Draft"
    SENT = "Sent"
    PAID = "Paid"
    PARTIAL = "Partial"
    OVERDUE = "Overdue"


class ExpenseCategoryEnum(str, Enum):
    RENT = "Rent"
    PAYROLL = "Payroll"
    SUPPLIES = "Supplies"
    SOFTWARE = "Software"
    MARKETING = "Marketing"
    TRAVEL = "Travel"
    UTILITIES = "Utilities"
    OTHER = "Other"


# ==================== COMMON ====================

T = TypeVar("T")


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class Envelope(BaseModel, Generic[T]):
    success: bool = True
    data: T


class Page(BaseModel, Generic[T]):
    success: bool = True
    total: int
    page: int
    pages: int
    data: List[T]


# ==================== ORGANIZATION SCHEMAS ====================

class OrganizationBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    tax_id: Optional[str] = Field(None, max_length=100)
    currency: CurrencyEnum = CurrencyEnum.CAD
    address: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    website: Optional[str] = Field(None, max_length=255)


class OrganizationCreate(OrganizationBase):
    pass


class OrganizationUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    tax_id: Optional[str] = Field(None, max_length=100)
    currency: Optional[CurrencyEnum] = None
    address: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    website: Optional[str] = Field(None, max_length=255)
    logo_url: Optional[str] = Field(None, max_length=500)


class OrganizationResponse(OrganizationBase):
    id: int
    logo_url: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ==================== CLIENT SCHEMAS ====================

class ClientBase(BaseModel):
    company_name: str = Field(..., min_length=1, max_length=255)
    contact_person: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("company_name", "contact_person")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if v is not None else v


class ClientCreate(ClientBase):
    pass


class ClientUpdate(BaseModel):
    company_name: Optional[str] = Field(None, min_length=1, max_length=255)
    contact_person: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None
    notes: Optional[str] = None


class ClientResponse(ClientBase):
    id: int
    organization_id: int
    status: ClientStatusEnum
    deleted_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ClientInvoiceSummary(BaseModel):
    id: int
    invoice_number: str
    status: InvoiceStatusEnum
    total_amount: Decimal
    issue_date: date
    due_date: Optional[date] = None

    model_config = ConfigDict(from_attributes=True)


class ClientWithInvoices(ClientResponse):
    invoices: List[ClientInvoiceSummary] = []


class ClientBrief(BaseModel):
    id: int
    company_name: str
    contact_person: str
    email: str

    model_config = ConfigDict(from_attributes=True)


# ==================== INVOICE SCHEMAS ====================

class InvoiceItemCreate(BaseModel):
    """Line item as submitted; any line_total sent by the caller is ignored"""
    description: str = Field(..., min_length=1, max_length=500)
    quantity: Decimal = Field(default=Decimal("1"), max_digits=15, decimal_places=4)
    unit_price: Decimal = Field(..., max_digits=15, decimal_places=4)


class InvoiceItemResponse(BaseModel):
    description: str
    quantity: Decimal
    unit_price: Decimal
    line_total: Decimal

    model_config = ConfigDict(from_attributes=True)


class InvoiceCreate(BaseModel):
    client_id: int
    items: List[InvoiceItemCreate] = []
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    status: Optional[str] = None
    tax_rate: Optional[Decimal] = Field(None, max_digits=5, decimal_places=2)
    notes: Optional[str] = None


class InvoiceUpdate(BaseModel):
    items: Optional[List[InvoiceItemCreate]] = None
    due_date: Optional[date] = None
    status: Optional[str] = None
    notes: Optional[str] = None
    tax_rate: Optional[Decimal] = Field(None, max_digits=5, decimal_places=2)


class InvoiceStatusUpdate(BaseModel):
    status: str


class InvoiceResponse(BaseModel):
    id: int
    organization_id: int
    client_id: int
    invoice_number: str
    issue_date: date
    due_date: Optional[date] = None
    status: InvoiceStatusEnum
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    notes: Optional[str] = None
    deleted_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InvoiceListItem(InvoiceResponse):
    client: Optional[ClientBrief] = None


class InvoiceWithItems(InvoiceResponse):
    items: List[InvoiceItemResponse] = []
    client: Optional[ClientBrief] = None
    organization: Optional[OrganizationResponse] = None


# ==================== EXPENSE SCHEMAS ====================

class ExpenseBase(BaseModel):
    category: ExpenseCategoryEnum
    amount: Decimal = Field(..., ge=0, max_digits=15, decimal_places=2)
    expense_date: Optional[date] = None
    description: Optional[str] = None
    receipt_url: Optional[str] = Field(None, max_length=500)


class ExpenseCreate(ExpenseBase):
    pass


class ExpenseUpdate(BaseModel):
    category: Optional[ExpenseCategoryEnum] = None
    amount: Optional[Decimal] = Field(None, ge=0, max_digits=15, decimal_places=2)
    expense_date: Optional[date] = None
    description: Optional[str] = None
    receipt_url: Optional[str] = Field(None, max_length=500)


class ExpenseResponse(ExpenseBase):
    id: int
    organization_id: int
    expense_date: date
    deleted_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ExpensePage(Page[ExpenseResponse]):
    monthly_total: Decimal


# ==================== REPORT SCHEMAS ====================

class OutstandingInvoices(BaseModel):
    amount: Decimal
    count: int


class QuickStats(BaseModel):
    total_revenue: Decimal
    total_expenses: Decimal
    net_profit: Decimal
    monthly_revenue: Decimal
    monthly_expenses: Decimal
    monthly_profit: Decimal
    outstanding_invoices: OutstandingInvoices


class TopClient(BaseModel):
    client_id: int
    company_name: str
    email: str
    total_revenue: Decimal


class StatusBreakdownEntry(BaseModel):
    status: str
    count: int
    total: Decimal


class MonthlyAmount(BaseModel):
    year: int
    month: int
    amount: Decimal


class Charts(BaseModel):
    revenue_by_month: List[MonthlyAmount]
    expenses_by_month: List[MonthlyAmount]


class Summary(BaseModel):
    quick_stats: QuickStats
    top_clients: List[TopClient]
    status_breakdown: List[StatusBreakdownEntry]
    charts: Charts


class CategoryBreakdownEntry(BaseModel):
    category: str
    total: Decimal
    count: int


class ExpenseReport(BaseModel):
    expenses: List[ExpenseResponse]
    category_breakdown: List[CategoryBreakdownEntry]
    grand_total: Decimal
