import csv
import io
from decimal import Decimal
from typing import Iterable, List, Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from gstr2a_recon.schemas.reconciliation import ReconciliationReport, ReconciliationResult

CSV_HEADERS = [
    "Invoice Number",
    "Invoice Date",
    "Party GSTIN",
    "Invoice Value",
    "Authority Taxable Value",
    "Ledger Taxable Value",
    "Authority GST Amount",
    "Ledger GST Amount",
    "Status",
    "Mismatch Details",
]

REASON_SEPARATOR = "; "


def format_amount(value: Optional[Decimal]) -> str:
    # Absent amounts stay blank; a blank cell and 0.00 mean different things
    if value is None:
        return ""
    return f"{value:.2f}"


def result_row(result: ReconciliationResult) -> List[str]:
    return [
        result.document_number,
        result.document_date,
        result.counterparty_tax_id,
        format_amount(result.document_value),
        format_amount(result.authority_taxable_value),
        format_amount(result.ledger_taxable_value),
        format_amount(result.authority_gst_amount),
        format_amount(result.ledger_gst_amount),
        result.status.value,
        REASON_SEPARATOR.join(result.mismatch_reasons),
    ]


def export_filename(period: str, extension: str = "csv") -> str:
    return f"GSTR2A_Comparison_{period}.{extension}"


def write_csv(results: Iterable[ReconciliationResult]) -> str:
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for result in results:
        writer.writerow(result_row(result))
    return output.getvalue()


def render_pdf(report: ReconciliationReport) -> bytes:
    """Printable summary: counts table followed by the full result table."""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=landscape(A4))
    styles = getSampleStyleSheet()
    cell = ParagraphStyle(name='Cell', fontSize=7, leading=8)
    elements = []

    # 1. Header
    elements.append(Paragraph(f"GSTR-2A Matching Report - {report.period}", styles['Title']))
    elements.append(Spacer(1, 12))
    elements.append(Paragraph(f"<b>Families:</b> {', '.join(report.families)}", styles['Normal']))
    elements.append(Paragraph(f"<b>Tolerance:</b> Rs. {report.tolerance:.2f}", styles['Normal']))
    elements.append(Paragraph(
        f"<b>Records:</b> {report.authority_count} GSTR-2A / {report.ledger_count} purchase", styles['Normal']
    ))
    elements.append(Spacer(1, 18))

    # 2. Summary Table
    elements.append(Paragraph("Summary", styles['Heading2']))
    summary_data = [
        ["Status", "Count"],
        ["Matched", str(report.summary.matched)],
        ["Mismatched", str(report.summary.mismatched)],
        ["Missing in Ledger", str(report.summary.missing_in_ledger)],
        ["Missing in Authority", str(report.summary.missing_in_authority)],
        ["Total", str(report.summary.total)],
    ]
    summary_table = Table(summary_data, colWidths=[200, 100])
    summary_table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.navy),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey)
    ]))
    elements.append(summary_table)
    elements.append(Spacer(1, 18))

    # 3. Results
    if report.results:
        elements.append(Paragraph("Documents", styles['Heading2']))
        rows = [CSV_HEADERS]
        for result in report.results:
            row = result_row(result)
            row[-1] = Paragraph(escape(row[-1]), cell)
            rows.append(row)
        results_table = Table(rows, repeatRows=1)
        results_table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.navy),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('FONTSIZE', (0, 0), (-1, -1), 7),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('GRID', (0, 0), (-1, -1), 0.25, colors.grey)
        ]))
        elements.append(results_table)
    else:
        elements.append(Paragraph(f"No data available for period {report.period}.", styles['Normal']))

    elements.append(Spacer(1, 36))
    footer_text = "Amounts in INR. Invoice value is shown for reference and is not compared."
    elements.append(Paragraph(footer_text, ParagraphStyle(name='Footer', fontSize=8, textColor=colors.grey, alignment=1)))

    doc.build(elements)
    return buffer.getvalue()
