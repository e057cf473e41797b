"""Inspection act PDF rendering.

Turns an act, its task graph (building with district and unit, checklist,
inspector) and the task's inspection results into a paginated report:
title, general information, building, checklist, results table,
conclusion and a signature block. Result rows follow the checklist order,
not the order in which the inspector recorded them.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from io import BytesIO
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, letter
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import mm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from app.models.inspection import InspectionAct, InspectionResult
from app.models.task import Task
from app.services.checklist_catalog import element_sort_key

EMPTY_CONCLUSION_FALLBACK = "Inspection completed. Results are listed in the table above."

DATETIME_FORMAT = "%d.%m.%Y %H:%M"
DATE_FORMAT = "%d.%m.%Y"

PAGE_SIZES = {"a4": A4, "letter": letter}


class ActRenderError(Exception):
    """Raised when an act document cannot be produced."""
    pass


@dataclass(frozen=True)
class ActResultRow:
    """One row of the results table."""

    number: int
    element_name: str
    condition: str
    comment: str


def build_result_rows(results: list[InspectionResult]) -> list[ActResultRow]:
    """Results table rows in checklist element order."""
    ordered = sorted(results, key=lambda r: element_sort_key(r.checklist_element))
    return [
        ActResultRow(
            number=index,
            element_name=result.checklist_element.name,
            condition=result.condition_status.label,
            comment=result.comment or "",
        )
        for index, result in enumerate(ordered, start=1)
    ]


@lru_cache(maxsize=None)
def _register_fonts(regular_path: str, bold_path: str) -> tuple[str, str]:
    """Register TTF fonts once per process; built-in Helvetica when unset."""
    if not regular_path:
        return "Helvetica", "Helvetica-Bold"
    try:
        pdfmetrics.registerFont(TTFont("ActRegular", regular_path))
        if bold_path:
            pdfmetrics.registerFont(TTFont("ActBold", bold_path))
            return "ActRegular", "ActBold"
    except Exception as e:
        raise ActRenderError(f"Cannot load act font: {e}") from e
    return "ActRegular", "ActRegular"


def _fmt(value: datetime | None, fmt: str = DATETIME_FORMAT) -> str:
    return value.strftime(fmt) if value else "-"


class ActPdfRenderer:
    """Renders inspection acts with reportlab."""

    def __init__(
        self,
        font_regular_path: str = "",
        font_bold_path: str = "",
        page_size: str = "A4",
    ):
        self.font_regular_path = font_regular_path
        self.font_bold_path = font_bold_path
        self.page_size = PAGE_SIZES[page_size.lower()]

    def _styles(self) -> dict[str, ParagraphStyle]:
        font_name, font_bold = _register_fonts(self.font_regular_path, self.font_bold_path)
        base = getSampleStyleSheet()
        return {
            "title": ParagraphStyle(
                "ActTitle",
                parent=base["Title"],
                fontName=font_bold,
                fontSize=16,
                spaceAfter=8 * mm,
            ),
            "heading": ParagraphStyle(
                "ActHeading",
                parent=base["Heading3"],
                fontName=font_bold,
                fontSize=12,
                spaceBefore=3 * mm,
                spaceAfter=2 * mm,
            ),
            "body": ParagraphStyle(
                "ActBody",
                parent=base["Normal"],
                fontName=font_name,
                fontSize=11,
                leading=14,
            ),
            "cell": ParagraphStyle(
                "ActCell",
                parent=base["Normal"],
                fontName=font_name,
                fontSize=9,
                leading=11,
            ),
            "cell_bold": ParagraphStyle(
                "ActCellBold",
                parent=base["Normal"],
                fontName=font_bold,
                fontSize=9,
                leading=11,
            ),
        }

    def _field_table(self, rows: list[tuple[str, str]], styles: dict) -> Table:
        data = [
            [Paragraph(escape(label), styles["body"]), Paragraph(escape(value), styles["body"])]
            for label, value in rows
        ]
        table = Table(data, colWidths=[55 * mm, None], hAlign="LEFT")
        table.setStyle(TableStyle([
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('LEFTPADDING', (0, 0), (-1, -1), 0),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 1),
            ('TOPPADDING', (0, 0), (-1, -1), 1),
        ]))
        return table

    def _results_table(self, rows: list[ActResultRow], styles: dict) -> Table:
        header = ["No.", "Element", "Condition", "Comment"]
        data = [[Paragraph(h, styles["cell_bold"]) for h in header]]
        for row in rows:
            data.append([
                Paragraph(str(row.number), styles["cell"]),
                Paragraph(escape(row.element_name), styles["cell"]),
                Paragraph(escape(row.condition), styles["cell"]),
                Paragraph(escape(row.comment), styles["cell"]),
            ])
        table = Table(data, colWidths=[10 * mm, 45 * mm, 40 * mm, None], repeatRows=1, hAlign="LEFT")
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#dcdcdc')),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.black),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('ALIGN', (0, 0), (0, -1), 'CENTER'),
        ]))
        return table

    def render(
        self,
        act: InspectionAct,
        task: Task,
        results: list[InspectionResult],
        now: datetime | None = None,
    ) -> bytes:
        """Render the act document.

        Args:
            act: The act being rendered
            task: Task with building (district, unit), checklist and inspector loaded
            results: Task's inspection results with checklist elements loaded
            now: Date printed in the signature block

        Returns:
            PDF bytes

        Raises:
            ActRenderError: If fonts cannot be loaded or the document cannot be built
        """
        now = now or datetime.now(timezone.utc)
        styles = self._styles()
        story = []

        story.append(Paragraph("BUILDING INSPECTION ACT", styles["title"]))

        # General information
        general = [
            ("Act number:", act.act_number),
            ("Act created:", _fmt(act.created_at)),
            ("Act status:", act.status),
        ]
        if act.approved_at:
            general.append(("Approved:", _fmt(act.approved_at)))
        general.append(("Inspection date:", _fmt(task.scheduled_date, DATE_FORMAT)))
        if task.inspector is not None:
            general.append(("Inspector:", task.inspector.full_name))
            general.append(("Inspector email:", task.inspector.email))
            if task.inspector.phone:
                general.append(("Inspector phone:", task.inspector.phone))
        story.append(Paragraph("GENERAL INFORMATION", styles["heading"]))
        story.append(self._field_table(general, styles))

        # Building
        building = task.building
        if building is not None:
            building_rows = [
                ("Address:", building.address),
                ("Construction year:", str(building.construction_year) if building.construction_year else "-"),
            ]
            if building.district is not None:
                building_rows.append(("District:", building.district.name))
            if building.unit is not None:
                building_rows.append(("Maintenance unit:", building.unit.name))
            story.append(Paragraph("BUILDING", styles["heading"]))
            story.append(self._field_table(building_rows, styles))

        # Checklist
        if task.checklist is not None:
            story.append(Paragraph("INSPECTION CHECKLIST", styles["heading"]))
            story.append(self._field_table([
                ("Title:", task.checklist.title),
                ("Inspection type:", task.checklist.inspection_type.label),
            ], styles))

        # Results
        story.append(Paragraph("INSPECTION RESULTS", styles["heading"]))
        story.append(self._results_table(build_result_rows(results), styles))

        # Conclusion
        story.append(Spacer(1, 4 * mm))
        story.append(Paragraph("CONCLUSION", styles["heading"]))
        conclusion = act.conclusion or EMPTY_CONCLUSION_FALLBACK
        story.append(Paragraph(escape(conclusion), styles["body"]))

        # Signature
        story.append(Spacer(1, 10 * mm))
        signature = Table(
            [[
                Paragraph("Inspector signature: ____________________", styles["body"]),
                Paragraph(f"Date: {now.strftime(DATE_FORMAT)}", styles["body"]),
            ]],
            colWidths=[90 * mm, None],
            hAlign="LEFT",
        )
        story.append(signature)

        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=self.page_size,
            leftMargin=15 * mm,
            rightMargin=15 * mm,
            topMargin=15 * mm,
            bottomMargin=15 * mm,
            title=f"Inspection act {act.act_number}",
        )
        try:
            doc.build(story)
        except Exception as e:
            raise ActRenderError(f"Failed to build act document: {e}") from e
        return buffer.getvalue()


_act_renderer: ActPdfRenderer | None = None


def get_act_renderer() -> ActPdfRenderer:
    """Get the act renderer configured from settings."""
    global _act_renderer
    if _act_renderer is None:
        from app.core.config import settings
        _act_renderer = ActPdfRenderer(
            font_regular_path=settings.act_font_regular_path,
            font_bold_path=settings.act_font_bold_path,
            page_size=settings.act_page_size,
        )
    return _act_renderer
