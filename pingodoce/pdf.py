"""PDF rendering of the health report using ReportLab."""

from __future__ import annotations

from html import escape
from pathlib import Path

from .health import HealthReport

_SCORE_LABELS = [
    ("overall_health_score", "Overall"),
    ("protein_score", "Protein"),
    ("fermented_score", "Fermented"),
    ("legume_score", "Legumes"),
    ("nuts_seeds_score", "Nuts & seeds"),
    ("greens_score", "Greens"),
    ("vegetable_score", "Vegetables"),
    ("fruit_score", "Fruits"),
    ("berry_score", "Berries"),
    ("healthy_fat_score", "Healthy fats"),
    ("sweets_score", "Sweets (higher is better)"),
]


def generate_pdf(report: HealthReport, output_path: str | Path) -> Path:
    """Render a HealthReport to a PDF file.

    Args:
        report: The health report to render.
        output_path: Where to save the PDF file.

    Returns:
        Path to the generated PDF file.

    Raises:
        ImportError: If reportlab is not installed.
    """
    try:
        from reportlab.lib import colors
        from reportlab.lib.pagesizes import A4
        from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
        from reportlab.lib.units import mm
        from reportlab.platypus import (
            Paragraph,
            SimpleDocTemplate,
            Spacer,
            Table,
            TableStyle,
        )
    except ImportError:
        raise ImportError(
            "reportlab is required: pip install 'pingodoce[pdf]'"
        )

    font_name = "Helvetica"
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    doc = SimpleDocTemplate(
        str(output_path),
        pagesize=A4,
        leftMargin=15 * mm,
        rightMargin=15 * mm,
        topMargin=15 * mm,
        bottomMargin=15 * mm,
        title="Grocery Health Report",
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "ReportTitle",
        parent=styles["Title"],
        fontName="Helvetica-Bold",
        fontSize=18,
        leading=24,
    )
    subtitle_style = ParagraphStyle(
        "ReportSubtitle",
        parent=styles["Normal"],
        fontName=font_name,
        fontSize=10,
        leading=14,
        textColor=colors.grey,
    )
    heading_style = ParagraphStyle(
        "ReportHeading",
        parent=styles["Heading2"],
        fontName="Helvetica-Bold",
        fontSize=13,
        leading=18,
        spaceBefore=4 * mm,
        spaceAfter=2 * mm,
    )
    body_style = ParagraphStyle(
        "ReportBody",
        parent=styles["Normal"],
        fontName=font_name,
        fontSize=9,
        leading=13,
    )

    table_style = TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#2E7D32")),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, -1), font_name),
        ("FONTSIZE", (0, 0), (-1, -1), 8),
        ("ALIGN", (0, 0), (-1, -1), "LEFT"),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#F5F5F5")]),
        ("TOPPADDING", (0, 0), (-1, -1), 3),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
    ])

    elements: list = []

    period = report.period
    summary = report.summary
    elements.append(Paragraph("Grocery Health Report", title_style))
    elements.append(
        Paragraph(
            f"Generated {escape(report.generated_at)} | "
            f"Period: {escape(str(period.get('days_analyzed')))} days "
            f"({escape(str(period.get('start_date') or '-'))} to "
            f"{escape(str(period.get('end_date') or '-'))})",
            subtitle_style,
        )
    )
    elements.append(Spacer(1, 4 * mm))
    elements.append(
        Paragraph(
            f"Transactions: {summary.get('transactions', 0)} | "
            f"Total spent: {summary.get('total_spent_eur', 0)} EUR | "
            f"Unique products: {summary.get('unique_products', 0)} | "
            f"Items: {summary.get('total_items', 0)}",
            body_style,
        )
    )

    # Scores
    elements.append(Paragraph("Health Scores", heading_style))
    if report.health_scores is None:
        elements.append(Paragraph("No categorized purchases to score.", body_style))
    else:
        rows = [["Category", "Score"]]
        for attr, label in _SCORE_LABELS:
            rows.append([label, str(getattr(report.health_scores, attr))])
        t = Table(rows, colWidths=[70 * mm, 25 * mm])
        t.setStyle(table_style)
        elements.append(t)

    # Categories
    elements.append(Paragraph("Categories", heading_style))
    rows = [["Category", "Purchases", "Spent (EUR)", "Top products"]]
    for category in report.categories.values():
        top = ", ".join(p.name for p in category.products[:3])
        rows.append([
            category.name,
            str(category.total_purchases),
            f"{category.total_spent:.2f}",
            Paragraph(escape(top), body_style),
        ])
    t = Table(rows, colWidths=[45 * mm, 22 * mm, 25 * mm, 88 * mm])
    t.setStyle(table_style)
    elements.append(t)

    # Recommendations
    if report.recommendations:
        elements.append(Paragraph("Recommendations", heading_style))
        for rec in report.recommendations:
            elements.append(
                Paragraph(
                    f"<b>{rec.priority}. {escape(rec.issue)}</b><br/>{escape(rec.action)}",
                    body_style,
                )
            )
            elements.append(Spacer(1, 2 * mm))

    # Fresh produce
    produce = report.fresh_produce
    elements.append(Paragraph("Fresh Produce (sold by kg)", heading_style))
    elements.append(
        Paragraph(
            f"Vegetable variety: {produce.get('vegetable_variety', 0)} | "
            f"Fruit variety: {produce.get('fruit_variety', 0)}",
            body_style,
        )
    )

    doc.build(elements)
    return output_path
