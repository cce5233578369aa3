"""
Invoice Service - lifecycle of invoices

Creation, full and status-only updates and soft deletion, each scoped to the
caller's organization. Writes that touch more than one row run inside
``atomic`` so a failure leaves nothing half-written.
"""
from datetime import date, datetime
from pathlib import Path
from typing import Callable, Optional, Tuple
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from starlette.concurrency import run_in_threadpool

from ledgerbook.core.config import settings
from ledgerbook.core.database import atomic
from ledgerbook.core.exceptions import DuplicateNumber, NotFound, ValidationError
from ledgerbook.models import Client, Invoice, InvoiceItem, InvoiceStatus
from ledgerbook.schemas import InvoiceCreate, InvoiceUpdate
from ledgerbook.services.audit_service import AuditAction, AuditService
from ledgerbook.services.numbering import InvoiceNumberService
from ledgerbook.services.tenant import PageResult, ScopedRepository, paginate
from ledgerbook.services.totals import InvoiceTotals, compute_totals

logger = logging.getLogger(__name__)

INVOICE_STATUSES = [s.value for s in InvoiceStatus]


def validate_status(status: Optional[str]) -> str:
    if status not in INVOICE_STATUSES:
        raise ValidationError(f"Status must be one of: {', '.join(INVOICE_STATUSES)}")
    return status


def _is_invoice_number_conflict(error: IntegrityError) -> bool:
    return "invoice_number" in str(error.orig)


class InvoiceService:
    def __init__(
        self,
        db: AsyncSession,
        organization_id: int,
        user_id: Optional[str] = None,
        numbering: Optional[InvoiceNumberService] = None
    ):
        self.db = db
        self.organization_id = organization_id
        self.user_id = user_id
        self.invoices = ScopedRepository(db, Invoice, organization_id)
        self.clients = ScopedRepository(db, Client, organization_id)
        self.numbering = numbering or InvoiceNumberService(db)
        self.audit = AuditService(db, organization_id)

    # ==================== READS ====================

    async def get_by_id(self, invoice_id: int, include_deleted: bool = False) -> Invoice:
        repo = self.invoices.with_deleted() if include_deleted else self.invoices
        stmt = repo.select().where(Invoice.id == invoice_id).options(
            selectinload(Invoice.items),
            selectinload(Invoice.client),
            selectinload(Invoice.organization)
        ).execution_options(populate_existing=True)
        invoice = (await self.db.execute(stmt)).scalars().first()
        if invoice is None:
            raise NotFound("Invoice not found")
        return invoice

    async def list(
        self,
        status: Optional[str] = None,
        client_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        include_deleted: bool = False
    ) -> PageResult[Invoice]:
        """List invoices newest first, filtered by status, client and issue date"""
        repo = self.invoices.with_deleted() if include_deleted else self.invoices
        criteria = []
        if status:
            criteria.append(Invoice.status == validate_status(status))
        if client_id:
            criteria.append(Invoice.client_id == client_id)
        if start_date:
            criteria.append(Invoice.issue_date >= start_date)
        if end_date:
            criteria.append(Invoice.issue_date <= end_date)

        page, limit, offset = paginate(page, limit, settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)
        total = await repo.count(*criteria)
        invoices = await repo.list(
            *criteria,
            order_by=[Invoice.created_at.desc(), Invoice.id.desc()],
            offset=offset,
            limit=limit,
            options=(selectinload(Invoice.client),)
        )
        return PageResult(items=invoices, total=total, page=page, limit=limit)

    # ==================== WRITES ====================

    async def create(self, invoice_data: InvoiceCreate, now: Optional[datetime] = None) -> Invoice:
        """
        Create an invoice with a fresh number and server-computed totals.

        The number and the insert commit together. A number collision rolls
        the attempt back and retries with a new count, up to
        INVOICE_NUMBER_MAX_ATTEMPTS times, then surfaces DuplicateNumber.
        """
        now = now or datetime.now()

        client = await self.clients.get(invoice_data.client_id)
        if client is None:
            raise NotFound("Client not found")

        status = validate_status(invoice_data.status or InvoiceStatus.DRAFT.value)
        tax_rate = invoice_data.tax_rate if invoice_data.tax_rate is not None else settings.DEFAULT_TAX_RATE
        totals = compute_totals(invoice_data.items, tax_rate)

        max_attempts = settings.INVOICE_NUMBER_MAX_ATTEMPTS
        for attempt in range(1, max_attempts + 1):
            try:
                invoice = await self._insert(invoice_data, totals, status, now)
                break
            except DuplicateNumber as e:
                if attempt >= max_attempts:
                    logger.error(f"Giving up on invoice numbering after {attempt} attempts: {e.message}")
                    raise
                logger.warning(f"{e.message}; retrying ({attempt}/{max_attempts})")

        logger.info(
            f"Invoice {invoice.invoice_number} created for organization={self.organization_id} "
            f"total={invoice.total_amount}"
        )
        return await self.get_by_id(invoice.id)

    async def _insert(self, invoice_data: InvoiceCreate, totals: InvoiceTotals, status: str, now: datetime) -> Invoice:
        async with atomic(self.db):
            number = await self.numbering.next_number(now)
            invoice = Invoice(
                client_id=invoice_data.client_id,
                invoice_number=number,
                issue_date=invoice_data.issue_date or now.date(),
                due_date=invoice_data.due_date,
                status=status,
                notes=invoice_data.notes,
                created_by=self.user_id
            )
            self._apply_totals(invoice, totals, replace_items=True)
            self.invoices.add(invoice)
            try:
                await self.db.flush()
            except IntegrityError as e:
                if _is_invoice_number_conflict(e):
                    raise DuplicateNumber(f"Invoice number {number} is already taken") from e
                raise

            await self.audit.log(
                AuditAction.CREATE, "Invoice", invoice.id,
                description=f"Created invoice {number}",
                new_values=self._snapshot(invoice),
                user_id=self.user_id
            )
        return invoice

    async def update_status(self, invoice_id: int, status: str) -> Invoice:
        """Set any status from the enumeration; no transition rules are enforced"""
        status = validate_status(status)
        async with atomic(self.db):
            invoice = await self.invoices.get(invoice_id)
            if invoice is None:
                raise NotFound("Invoice not found")
            old_status = invoice.status
            invoice.status = status
            await self.db.flush()
            await self.audit.log(
                AuditAction.STATUS_CHANGE, "Invoice", invoice.id,
                description=f"Status {old_status} -> {status}",
                old_values={"status": old_status},
                new_values={"status": status},
                user_id=self.user_id
            )

        logger.info(f"Invoice {invoice.invoice_number} status {old_status} -> {status}")
        return await self.get_by_id(invoice_id)

    async def update(self, invoice_id: int, invoice_data: InvoiceUpdate) -> Invoice:
        """
        Change only the provided fields among items, due_date, status, notes
        and tax_rate. Totals are recomputed when items or tax_rate change.
        """
        changes = invoice_data.model_dump(exclude_unset=True)

        async with atomic(self.db):
            invoice = await self.invoices.get(invoice_id, selectinload(Invoice.items))
            if invoice is None:
                raise NotFound("Invoice not found")
            before = self._snapshot(invoice)

            if changes.get("status") is not None:
                invoice.status = validate_status(changes["status"])
            if changes.get("due_date") is not None:
                invoice.due_date = changes["due_date"]
            if "notes" in changes:
                invoice.notes = changes["notes"]

            new_items = invoice_data.items if changes.get("items") is not None else None
            new_tax_rate = changes.get("tax_rate")
            if new_items is not None or new_tax_rate is not None:
                tax_rate = new_tax_rate if new_tax_rate is not None else invoice.tax_rate
                totals = compute_totals(new_items if new_items is not None else invoice.items, tax_rate)
                self._apply_totals(invoice, totals, replace_items=new_items is not None)

            await self.db.flush()
            await self.audit.log(
                AuditAction.UPDATE, "Invoice", invoice.id,
                description=f"Updated invoice {invoice.invoice_number}",
                old_values=before,
                new_values=self._snapshot(invoice),
                user_id=self.user_id
            )

        logger.info(f"Invoice {invoice.invoice_number} updated ({', '.join(sorted(changes)) or 'no fields'})")
        return await self.get_by_id(invoice_id)

    async def soft_delete(self, invoice_id: int) -> Invoice:
        """Hide the invoice from default reads; its number stays taken"""
        async with atomic(self.db):
            invoice = await self.invoices.soft_delete(invoice_id)
            if invoice is None:
                raise NotFound("Invoice not found")
            await self.audit.log(
                AuditAction.DELETE, "Invoice", invoice.id,
                description=f"Soft-deleted invoice {invoice.invoice_number}",
                user_id=self.user_id
            )

        logger.info(f"Invoice {invoice.invoice_number} soft-deleted")
        return await self.get_by_id(invoice_id, include_deleted=True)

    async def render_pdf(self, invoice_id: int, renderer: Callable[[Invoice, object], Path]) -> Tuple[Invoice, Path]:
        """Hand a fully computed invoice and its organization to the PDF renderer"""
        invoice = await self.get_by_id(invoice_id)
        path = await run_in_threadpool(renderer, invoice, invoice.organization)
        return invoice, path

    # ==================== HELPERS ====================

    @staticmethod
    def _apply_totals(invoice: Invoice, totals: InvoiceTotals, replace_items: bool):
        if replace_items:
            invoice.items = [
                InvoiceItem(
                    position=position,
                    description=item.description,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    line_total=item.line_total
                )
                for position, item in enumerate(totals.items)
            ]
        else:
            for row, item in zip(invoice.items, totals.items):
                row.line_total = item.line_total

        invoice.subtotal = totals.subtotal
        invoice.tax_rate = totals.tax_rate
        invoice.tax_amount = totals.tax_amount
        invoice.total_amount = totals.total_amount

    @staticmethod
    def _snapshot(invoice: Invoice) -> dict:
        return {
            "invoice_number": invoice.invoice_number,
            "status": invoice.status,
            "due_date": invoice.due_date,
            "tax_rate": invoice.tax_rate,
            "subtotal": invoice.subtotal,
            "tax_amount": invoice.tax_amount,
            "total_amount": invoice.total_amount,
            "notes": invoice.notes,
        }
