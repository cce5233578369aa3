"""
Invoice lifecycle: create, update, status changes, soft delete
"""
from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from ledgerbook.core.exceptions import (
    DuplicateConstraint, DuplicateNumber, NotFound, TransactionAborted, ValidationError
)
from ledgerbook.core.money import round2
from ledgerbook.models import Invoice, InvoiceItem
from ledgerbook.schemas import InvoiceCreate, InvoiceItemCreate, InvoiceUpdate
from ledgerbook.services.audit_service import AuditAction, AuditService
from ledgerbook.services.invoice_service import InvoiceService
from ledgerbook.services.numbering import InvoiceNumberService
from tests.factories import make_client, make_invoice

NOW = datetime(2026, 5, 20, 9, 0)


class FlakyNumbering:
    """Hands out a taken number once, then counts normally"""

    def __init__(self, session, taken):
        self.real = InvoiceNumberService(session)
        self.taken = taken
        self.calls = 0

    async def next_number(self, now=None):
        self.calls += 1
        if self.calls == 1:
            return self.taken
        return await self.real.next_number(now)


class FailingAudit:
    async def log(self, *args, **kwargs):
        raise SQLAlchemyError("disk I/O error")


class StuckNumbering:
    """Always hands out the same number"""

    def __init__(self, number):
        self.number = number
        self.calls = 0

    async def next_number(self, now=None):
        self.calls += 1
        return self.number


async def invoice_count(session):
    return (await session.execute(select(func.count(Invoice.id)))).scalar()


@pytest.mark.asyncio
class TestInvoiceCreation:
    async def test_create_applies_defaults(self, async_session, org_id, client_id):
        invoice = await InvoiceService(async_session, org_id, user_id="user-1").create(
            InvoiceCreate(
                client_id=client_id,
                items=[InvoiceItemCreate(description="Widget", quantity=3, unit_price=Decimal("19.995"))]
            ),
            now=NOW
        )

        assert invoice.invoice_number == "INV-202605-0001"
        assert invoice.status == "Draft"
        assert invoice.issue_date == date(2026, 5, 20)
        assert invoice.tax_rate == Decimal("13")
        assert invoice.subtotal == Decimal("59.99")
        assert invoice.tax_amount == Decimal("7.80")
        assert invoice.total_amount == Decimal("67.79")
        assert invoice.created_by == "user-1"
        assert invoice.client.company_name == "Acme Corp"
        assert [item.line_total for item in invoice.items] == [Decimal("59.99")]

    async def test_items_keep_their_order(self, async_session, org_id, client_id):
        invoice = await InvoiceService(async_session, org_id).create(
            InvoiceCreate(
                client_id=client_id,
                items=[
                    InvoiceItemCreate(description="First", unit_price=Decimal("1")),
                    InvoiceItemCreate(description="Second", unit_price=Decimal("2")),
                    InvoiceItemCreate(description="Third", unit_price=Decimal("3")),
                ],
                tax_rate=Decimal("0")
            ),
            now=NOW
        )
        assert [item.description for item in invoice.items] == ["First", "Second", "Third"]
        assert invoice.total_amount == Decimal("6.00")

    async def test_empty_items_persists_nothing(self, async_session, org_id, client_id):
        with pytest.raises(ValidationError):
            await InvoiceService(async_session, org_id).create(InvoiceCreate(client_id=client_id, items=[]))

        assert await invoice_count(async_session) == 0

    async def test_invalid_status_is_rejected(self, async_session, org_id, client_id):
        with pytest.raises(ValidationError, match="Status must be one of"):
            await make_invoice(async_session, org_id, client_id, status="Cancelled")

    async def test_client_of_another_organization_is_not_found(self, async_session, org_id, other_org_id):
        foreign_client_id = await make_client(async_session, other_org_id)

        with pytest.raises(NotFound, match="Client not found"):
            await make_invoice(async_session, org_id, foreign_client_id)
        assert await invoice_count(async_session) == 0

    async def test_deleted_client_cannot_be_invoiced(self, async_session, org_id, client_id):
        from ledgerbook.services.client_service import ClientService
        await ClientService(async_session, org_id).soft_delete(client_id)

        with pytest.raises(NotFound):
            await make_invoice(async_session, org_id, client_id)

    async def test_number_collision_surfaces_after_retries(self, async_session, org_id, client_id):
        existing = await make_invoice(async_session, org_id, client_id, now=NOW)
        existing_number = existing.invoice_number
        numbering = StuckNumbering(existing_number)

        with pytest.raises(DuplicateNumber) as excinfo:
            await InvoiceService(async_session, org_id, numbering=numbering).create(
                InvoiceCreate(client_id=client_id, items=[InvoiceItemCreate(description="X", unit_price=Decimal("5"))]),
                now=NOW
            )

        assert isinstance(excinfo.value, DuplicateConstraint)
        assert numbering.calls == 3
        assert await invoice_count(async_session) == 1
        items = (await async_session.execute(select(func.count(InvoiceItem.id)))).scalar()
        assert items == 1

    async def test_create_writes_an_audit_entry(self, async_session, org_id, client_id):
        invoice = await make_invoice(async_session, org_id, client_id, now=NOW)

        entries = await AuditService(async_session, org_id).get_by_resource("Invoice", invoice.id)
        assert [entry.action for entry in entries] == [AuditAction.CREATE]
        assert entries[0].user_id == "user-1"


@pytest.mark.asyncio
class TestInvoiceUpdates:
    async def test_status_can_be_set_freely(self, async_session, org_id, client_id):
        invoice = await make_invoice(async_session, org_id, client_id, now=NOW)
        service = InvoiceService(async_session, org_id, user_id="user-2")

        paid = await service.update_status(invoice.id, "Paid")
        assert paid.status == "Paid"
        back = await service.update_status(invoice.id, "Draft")
        assert back.status == "Draft"

        entries = await AuditService(async_session, org_id).get_by_resource("Invoice", invoice.id)
        assert [entry.action for entry in entries].count(AuditAction.STATUS_CHANGE) == 2

    async def test_unknown_status_is_rejected(self, async_session, org_id, client_id):
        invoice = await make_invoice(async_session, org_id, client_id, now=NOW)
        with pytest.raises(ValidationError):
            await InvoiceService(async_session, org_id).update_status(invoice.id, "paid")

    async def test_replacing_items_recomputes_totals(self, async_session, org_id, client_id):
        invoice = await make_invoice(async_session, org_id, client_id, now=NOW)

        updated = await InvoiceService(async_session, org_id).update(invoice.id, InvoiceUpdate(
            items=[
                InvoiceItemCreate(description="Design", quantity=2, unit_price=Decimal("50")),
                InvoiceItemCreate(description="Hosting", quantity=1, unit_price=Decimal("25")),
            ]
        ))

        assert [item.description for item in updated.items] == ["Design", "Hosting"]
        assert updated.subtotal == Decimal("125.00")
        assert updated.tax_amount == Decimal("16.25")
        assert updated.total_amount == Decimal("141.25")
        assert updated.invoice_number == invoice.invoice_number

    async def test_changing_tax_rate_recomputes_with_existing_items(self, async_session, org_id, client_id):
        invoice = await make_invoice(async_session, org_id, client_id, now=NOW)

        updated = await InvoiceService(async_session, org_id).update(invoice.id, InvoiceUpdate(tax_rate=Decimal("5")))

        assert updated.subtotal == Decimal("100.00")
        assert updated.tax_amount == Decimal("5.00")
        assert updated.total_amount == Decimal("105.00")

    async def test_notes_only_update_keeps_totals(self, async_session, org_id, client_id):
        invoice = await make_invoice(async_session, org_id, client_id, now=NOW)

        updated = await InvoiceService(async_session, org_id).update(invoice.id, InvoiceUpdate(notes="Net 30"))

        assert updated.notes == "Net 30"
        assert updated.total_amount == Decimal("113.00")

    async def test_update_with_empty_items_is_rejected(self, async_session, org_id, client_id):
        invoice = await make_invoice(async_session, org_id, client_id, now=NOW)
        invoice_id = invoice.id

        with pytest.raises(ValidationError):
            await InvoiceService(async_session, org_id).update(invoice_id, InvoiceUpdate(items=[]))

        reloaded = await InvoiceService(async_session, org_id).get_by_id(invoice_id)
        assert reloaded.total_amount == Decimal("113.00")
        assert len(reloaded.items) == 1

    async def test_update_of_missing_invoice(self, async_session, org_id):
        with pytest.raises(NotFound, match="Invoice not found"):
            await InvoiceService(async_session, org_id).update(999, InvoiceUpdate(notes="x"))


@pytest.mark.asyncio
class TestInvoiceDeletion:
    async def test_soft_delete_hides_the_invoice(self, async_session, org_id, client_id):
        invoice = await make_invoice(async_session, org_id, client_id, now=NOW)
        service = InvoiceService(async_session, org_id)

        deleted = await service.soft_delete(invoice.id)
        assert deleted.deleted_at is not None

        with pytest.raises(NotFound):
            await service.get_by_id(invoice.id)
        assert (await service.list()).total == 0
        assert (await service.list(include_deleted=True)).total == 1

    async def test_deleted_invoice_cannot_be_updated(self, async_session, org_id, client_id):
        invoice = await make_invoice(async_session, org_id, client_id, now=NOW)
        service = InvoiceService(async_session, org_id)
        await service.soft_delete(invoice.id)

        with pytest.raises(NotFound):
            await service.update_status(invoice.id, "Paid")


@pytest.mark.asyncio
class TestInvoiceListing:
    async def test_filters_and_pagination(self, async_session, org_id, client_id):
        for status in ("Draft", "Paid", "Paid", "Sent"):
            await make_invoice(async_session, org_id, client_id, status=status, now=NOW)
        service = InvoiceService(async_session, org_id)

        paid = await service.list(status="Paid")
        assert paid.total == 2
        assert {invoice.status for invoice in paid.items} == {"Paid"}

        page = await service.list(page=2, limit=3)
        assert page.total == 4
        assert page.pages == 2
        assert len(page.items) == 1

    async def test_newest_first(self, async_session, org_id, client_id):
        first = await make_invoice(async_session, org_id, client_id, now=NOW)
        second = await make_invoice(async_session, org_id, client_id, now=NOW)

        result = await InvoiceService(async_session, org_id).list()
        assert [invoice.id for invoice in result.items] == [second.id, first.id]

    async def test_pdf_renderer_receives_invoice_and_organization(self, async_session, org_id, client_id, tmp_path):
        invoice = await make_invoice(async_session, org_id, client_id, now=NOW)
        seen = {}

        def renderer(rendered, organization):
            seen["invoice"] = rendered
            seen["number"] = rendered.invoice_number
            seen["organization"] = organization.name
            path = tmp_path / "out.pdf"
            path.write_bytes(b"%PDF-1.4")
            return path

        returned, path = await InvoiceService(async_session, org_id).render_pdf(invoice.id, renderer)

        assert path.read_bytes().startswith(b"%PDF")
        assert returned is seen["invoice"]
        assert seen["number"] == invoice.invoice_number
        assert seen["organization"] == "Maple Consulting"

    async def test_reportlab_renderer_writes_a_pdf(self, async_session, org_id, client_id, tmp_path):
        from ledgerbook.services.pdf_renderer import render_invoice_pdf

        invoice = await make_invoice(async_session, org_id, client_id, now=NOW)
        number = invoice.invoice_number

        _, path = await InvoiceService(async_session, org_id).render_pdf(
            invoice.id, lambda rendered, organization: render_invoice_pdf(rendered, organization, str(tmp_path))
        )

        assert path.name == f"invoice-{number}.pdf"
        assert path.read_bytes().startswith(b"%PDF")


@pytest.mark.asyncio
class TestInvoiceWriteRecovery:
    async def test_collision_is_retried_with_a_fresh_number(self, async_session, org_id, client_id):
        existing_number = (await make_invoice(async_session, org_id, client_id, now=NOW)).invoice_number
        numbering = FlakyNumbering(async_session, existing_number)

        invoice = await InvoiceService(async_session, org_id, numbering=numbering).create(
            InvoiceCreate(client_id=client_id, items=[InvoiceItemCreate(description="X", unit_price=Decimal("5"))]),
            now=NOW
        )

        assert numbering.calls == 2
        assert invoice.invoice_number == "INV-202605-0002"
        assert await invoice_count(async_session) == 2

    async def test_storage_failure_mid_write_rolls_everything_back(self, async_session, org_id, client_id):
        service = InvoiceService(async_session, org_id)
        service.audit = FailingAudit()

        with pytest.raises(TransactionAborted):
            await service.create(
                InvoiceCreate(client_id=client_id, items=[InvoiceItemCreate(description="X", unit_price=Decimal("5"))]),
                now=NOW
            )

        assert await invoice_count(async_session) == 0
        items = (await async_session.execute(select(func.count(InvoiceItem.id)))).scalar()
        assert items == 0

    async def test_failed_update_keeps_stored_values(self, async_session, org_id, client_id):
        invoice_id = (await make_invoice(async_session, org_id, client_id, now=NOW)).id
        service = InvoiceService(async_session, org_id)
        service.audit = FailingAudit()

        with pytest.raises(TransactionAborted):
            await service.update(invoice_id, InvoiceUpdate(tax_rate=Decimal("0")))

        reloaded = await InvoiceService(async_session, org_id).get_by_id(invoice_id)
        assert reloaded.tax_rate == Decimal("13")
        assert reloaded.total_amount == Decimal("113.00")


@pytest.mark.asyncio
class TestStoredPrecision:
    async def test_line_totals_match_stored_item_values(self, async_session, org_id, client_id):
        invoice = await InvoiceService(async_session, org_id).create(
            InvoiceCreate(
                client_id=client_id,
                items=[InvoiceItemCreate(description="Bolts", quantity=1000, unit_price=Decimal("0.1234"))],
                tax_rate=Decimal("0")
            ),
            now=NOW
        )
        invoice_id = invoice.id
        created_total = invoice.subtotal

        updated = await InvoiceService(async_session, org_id).update(invoice_id, InvoiceUpdate(tax_rate=Decimal("0")))

        item = updated.items[0]
        assert item.line_total == round2(item.quantity * item.unit_price) == Decimal("123.40")
        assert updated.subtotal == created_total == Decimal("123.40")
