"""
Reporting rollups
"""
from datetime import date, datetime
from decimal import Decimal

import pytest

from ledgerbook.core.exceptions import AggregationError
from ledgerbook.services.invoice_service import InvoiceService
from ledgerbook.services.report_service import ReportService, month_bounds
from tests.factories import make_client, make_expense, make_invoice

AS_OF = date(2026, 5, 20)
NOW = datetime(2026, 5, 20, 12, 0)


def test_month_bounds_rolls_over_the_year():
    assert month_bounds(date(2026, 12, 9)) == (date(2026, 12, 1), date(2027, 1, 1))
    assert month_bounds(date(2026, 5, 31)) == (date(2026, 5, 1), date(2026, 6, 1))


class TestSummary:
    async def test_empty_organization_reports_zeros(self, async_session, org_id):
        summary = await ReportService(async_session, org_id).summarize(AS_OF)

        assert summary.quick_stats.total_revenue == Decimal("0")
        assert summary.quick_stats.net_profit == Decimal("0")
        assert summary.quick_stats.outstanding_invoices.count == 0
        assert summary.top_clients == []
        assert summary.status_breakdown == []
        assert summary.charts.revenue_by_month == []

    async def test_paid_and_draft_invoices(self, async_session, org_id, client_id):
        await make_invoice(async_session, org_id, client_id, "100", status="Paid", issue_date=AS_OF, now=NOW)
        await make_invoice(async_session, org_id, client_id, "50", status="Paid", issue_date=AS_OF, now=NOW)
        await make_invoice(async_session, org_id, client_id, "30", tax_rate="0", issue_date=AS_OF, now=NOW)

        summary = await ReportService(async_session, org_id).summarize(AS_OF)
        stats = summary.quick_stats

        assert stats.total_revenue == Decimal("169.50")
        assert stats.monthly_revenue == Decimal("169.50")
        assert stats.outstanding_invoices.amount == Decimal("0")
        assert stats.outstanding_invoices.count == 0
        assert [(entry.status, entry.count, entry.total) for entry in summary.status_breakdown] == [
            ("Draft", 1, Decimal("30.00")),
            ("Paid", 2, Decimal("169.50")),
        ]

    async def test_profit_and_outstanding(self, async_session, org_id, client_id):
        await make_invoice(async_session, org_id, client_id, "200", tax_rate="0", status="Paid", issue_date=AS_OF, now=NOW)
        await make_invoice(async_session, org_id, client_id, "40", tax_rate="0", status="Sent", issue_date=AS_OF, now=NOW)
        await make_invoice(async_session, org_id, client_id, "60", tax_rate="0", status="Overdue", issue_date=AS_OF, now=NOW)
        await make_expense(async_session, org_id, "75", expense_date=AS_OF)
        await make_expense(async_session, org_id, "25", expense_date=date(2026, 2, 1))

        stats = (await ReportService(async_session, org_id).summarize(AS_OF)).quick_stats

        assert stats.total_expenses == Decimal("100.00")
        assert stats.net_profit == Decimal("100.00")
        assert stats.monthly_expenses == Decimal("75.00")
        assert stats.monthly_profit == Decimal("125.00")
        assert stats.outstanding_invoices.amount == Decimal("100.00")
        assert stats.outstanding_invoices.count == 2

    async def test_revenue_in_later_months_is_not_monthly(self, async_session, org_id, client_id):
        await make_invoice(async_session, org_id, client_id, "10", tax_rate="0", status="Paid",
                           issue_date=date(2026, 6, 2), now=NOW)

        stats = (await ReportService(async_session, org_id).summarize(AS_OF)).quick_stats
        assert stats.total_revenue == Decimal("10.00")
        assert stats.monthly_revenue == Decimal("0")

    async def test_deleted_invoices_are_excluded(self, async_session, org_id, client_id):
        invoice = await make_invoice(async_session, org_id, client_id, "100", status="Paid", issue_date=AS_OF, now=NOW)
        await InvoiceService(async_session, org_id).soft_delete(invoice.id)

        summary = await ReportService(async_session, org_id).summarize(AS_OF)
        assert summary.quick_stats.total_revenue == Decimal("0")
        assert summary.status_breakdown == []

    async def test_other_organizations_are_excluded(self, async_session, org_id, other_org_id):
        other_client_id = await make_client(async_session, other_org_id)
        await make_invoice(async_session, other_org_id, other_client_id, "100", status="Paid", issue_date=AS_OF, now=NOW)

        summary = await ReportService(async_session, org_id).summarize(AS_OF)
        assert summary.quick_stats.total_revenue == Decimal("0")
        assert summary.top_clients == []

    async def test_top_clients_order_and_ties(self, async_session, org_id):
        ids = [await make_client(async_session, org_id, company_name=f"Client {n}", email=f"c{n}@test.io")
               for n in range(6)]
        revenue = ["10", "50", "50", "30", "20", "5"]
        for client_id, amount in zip(ids, revenue):
            await make_invoice(async_session, org_id, client_id, amount, tax_rate="0", status="Paid",
                               issue_date=AS_OF, now=NOW)
        await make_invoice(async_session, org_id, ids[5], "500", tax_rate="0", status="Draft",
                           issue_date=AS_OF, now=NOW)

        top = (await ReportService(async_session, org_id).summarize(AS_OF)).top_clients

        assert [client.client_id for client in top] == [ids[1], ids[2], ids[3], ids[4], ids[0]]
        assert top[0].total_revenue == Decimal("50.00")
        assert top[0].company_name == "Client 1"

    async def test_monthly_series_omits_empty_months(self, async_session, org_id, client_id):
        for issued, amount in ((date(2025, 12, 10), "7"), (date(2026, 1, 5), "10"),
                               (date(2026, 1, 25), "15"), (date(2026, 3, 3), "20")):
            await make_invoice(async_session, org_id, client_id, amount, tax_rate="0", status="Paid",
                               issue_date=issued, now=NOW)
        await make_expense(async_session, org_id, "8", expense_date=date(2026, 2, 14))

        charts = (await ReportService(async_session, org_id).summarize(AS_OF)).charts

        assert [(m.year, m.month, m.amount) for m in charts.revenue_by_month] == [
            (2026, 1, Decimal("25.00")),
            (2026, 3, Decimal("20.00")),
        ]
        assert [(m.year, m.month, m.amount) for m in charts.expenses_by_month] == [
            (2026, 2, Decimal("8.00")),
        ]

    async def test_failures_surface_as_aggregation_error(self, async_session, org_id, monkeypatch):
        service = ReportService(async_session, org_id)

        async def broken(today):
            raise RuntimeError("database went away")

        monkeypatch.setattr(service, "_summarize", broken)
        with pytest.raises(AggregationError):
            await service.summarize(AS_OF)


class TestExpenseReport:
    async def test_breakdown_and_grand_total(self, async_session, org_id):
        await make_expense(async_session, org_id, "100", "Rent", date(2026, 4, 1))
        await make_expense(async_session, org_id, "12.50", "Travel", date(2026, 4, 3))
        await make_expense(async_session, org_id, "7.25", "Travel", date(2026, 4, 9))
        await make_expense(async_session, org_id, "300", "Payroll", date(2026, 3, 30))

        report = await ReportService(async_session, org_id).expense_report(start_date=date(2026, 4, 1))

        assert [(e.category, e.count, e.total) for e in report.category_breakdown] == [
            ("Rent", 1, Decimal("100.00")),
            ("Travel", 2, Decimal("19.75")),
        ]
        assert report.grand_total == Decimal("119.75")
        assert [e.expense_date for e in report.expenses] == [date(2026, 4, 9), date(2026, 4, 3), date(2026, 4, 1)]

    async def test_category_filter(self, async_session, org_id):
        await make_expense(async_session, org_id, "100", "Rent", date(2026, 4, 1))
        await make_expense(async_session, org_id, "5", "Software", date(2026, 4, 2))

        report = await ReportService(async_session, org_id).expense_report(category="Software")

        assert report.grand_total == Decimal("5.00")
        assert [e.category for e in report.category_breakdown] == ["Software"]
