"""
Invoice PDF rendering
"""
from pathlib import Path
from typing import Optional

from ledgerbook.core.config import settings


def _money(value, currency: str) -> str:
    return f"{currency} {float(value or 0):,.2f}"


def render_invoice_pdf(invoice, organization, output_dir: Optional[str] = None) -> Path:
    """Write invoice-<number>.pdf and return its path"""
    from reportlab.lib.pagesizes import A4
    from reportlab.lib import colors
    from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
    from reportlab.lib.units import inch
    from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
    from reportlab.lib.enums import TA_RIGHT

    directory = Path(output_dir or settings.PDF_OUTPUT_DIR)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"invoice-{invoice.invoice_number}.pdf"

    currency = organization.currency if organization else settings.DEFAULT_CURRENCY
    doc = SimpleDocTemplate(str(path), pagesize=A4,
                            leftMargin=0.6*inch, rightMargin=0.6*inch,
                            topMargin=0.6*inch, bottomMargin=0.6*inch)

    styles = getSampleStyleSheet()
    right_style = ParagraphStyle('Right', parent=styles['Normal'], alignment=TA_RIGHT)

    elements = []

    # Header
    elements.append(Paragraph(organization.name if organization else "Invoice", styles['Heading1']))
    if organization:
        for line in (organization.address, organization.email, organization.phone):
            if line:
                elements.append(Paragraph(line, styles['Normal']))
        if organization.tax_id:
            elements.append(Paragraph(f"Tax ID: {organization.tax_id}", styles['Normal']))
    elements.append(Spacer(1, 0.3*inch))

    elements.append(Paragraph(f"<b>Invoice:</b> {invoice.invoice_number}", right_style))
    elements.append(Paragraph(f"<b>Issued:</b> {invoice.issue_date}", right_style))
    if invoice.due_date:
        elements.append(Paragraph(f"<b>Due:</b> {invoice.due_date}", right_style))
    elements.append(Paragraph(f"<b>Status:</b> {invoice.status}", right_style))
    elements.append(Spacer(1, 0.2*inch))

    client = invoice.client
    if client:
        elements.append(Paragraph("<b>Bill To</b>", styles['Normal']))
        elements.append(Paragraph(client.company_name, styles['Normal']))
        elements.append(Paragraph(client.contact_person, styles['Normal']))
        elements.append(Paragraph(client.email, styles['Normal']))
        if client.address:
            elements.append(Paragraph(client.address, styles['Normal']))
        elements.append(Spacer(1, 0.3*inch))

    # Line items
    table_data = [['Description', 'Qty', 'Unit Price', 'Line Total']]
    for item in invoice.items:
        table_data.append([
            Paragraph(item.description, styles['Normal']),
            f"{item.quantity.normalize():f}",
            _money(item.unit_price, currency),
            _money(item.line_total, currency)
        ])
    table_data.append(['', '', 'Subtotal', _money(invoice.subtotal, currency)])
    table_data.append(['', '', f"Tax ({invoice.tax_rate.normalize():f}%)", _money(invoice.tax_amount, currency)])
    table_data.append(['', '', 'Total', _money(invoice.total_amount, currency)])

    table = Table(table_data, colWidths=[3.2*inch, 0.7*inch, 1.4*inch, 1.5*inch])
    table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#1e40af')),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('ALIGN', (1, 1), (-1, -1), 'RIGHT'),
        ('GRID', (0, 0), (-1, -4), 0.5, colors.grey),
        ('FONTNAME', (2, -1), (-1, -1), 'Helvetica-Bold'),
        ('LINEABOVE', (2, -1), (-1, -1), 1, colors.black),
    ]))
    elements.append(table)

    if invoice.notes:
        elements.append(Spacer(1, 0.3*inch))
        elements.append(Paragraph(f"<b>Notes:</b> {invoice.notes}", styles['Normal']))

    doc.build(elements)
    return path
