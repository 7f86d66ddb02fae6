# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""PDF rendering of student bulletins and class reports.

Documents are laid out with ReportLab platypus on A4. Rendering is pure:
the same aggregate and generation time always give the same bytes
(``invariant`` turns off the random document id and the creation date
ReportLab would otherwise embed).
"""

import io
import logging
from datetime import datetime
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from src.domains.academics.aggregation import AggregateSnapshot, ClassAggregate
from src.domains.roster.provider import StudentInfo
from src.utils.datetime import format_display_date

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"

HEADER_BACKGROUND = colors.HexColor("#1f3a5f")
ROW_BACKGROUND = colors.HexColor("#f2f4f7")
GRID_COLOR = colors.HexColor("#b0b7c3")


def _format_average(value: float | None) -> str:
    return f"{value:.2f}" if value is not None else NOT_AVAILABLE


class ReportRenderer:
    """Renders aggregates into PDF bytes.

    Attributes:
        school_name: Name printed at the top of every document.
        footer_text: Line printed at the bottom of every page.
    """

    def __init__(self, school_name: str, footer_text: str) -> None:
        self.school_name = school_name
        self.footer_text = footer_text

        styles = getSampleStyleSheet()
        self._title = ParagraphStyle(
            "SchoolTitle", parent=styles["Title"], fontSize=20, alignment=TA_CENTER
        )
        self._subtitle = ParagraphStyle(
            "DocumentTitle", parent=styles["Heading2"], fontSize=16, alignment=TA_CENTER
        )
        self._body = ParagraphStyle("Body", parent=styles["Normal"], fontSize=11, leading=16)
        self._section = ParagraphStyle("Section", parent=styles["Heading3"], fontSize=12)
        self._highlight = ParagraphStyle(
            "Highlight", parent=styles["Normal"], fontSize=14, leading=20, alignment=TA_CENTER
        )

    def render_student_report(
        self,
        student: StudentInfo,
        snapshot: AggregateSnapshot,
        generated_at: datetime,
    ) -> bytes:
        """Render a student bulletin.

        Args:
            student: The student as labelled by the roster.
            snapshot: Fresh aggregate of the student's term.
            generated_at: Date printed on the document.

        Returns:
            The PDF bytes.
        """
        story = self._header("BULLETIN DE NOTES")
        story += [
            Paragraph(f"Élève : {escape(student.label)}", self._body),
            Paragraph(f"Trimestre : {escape(snapshot.term)}", self._body),
            Paragraph(f"Date : {format_display_date(generated_at)}", self._body),
            Spacer(1, 0.6 * cm),
            Paragraph("Matières et moyennes", self._section),
        ]

        rows = [["Matière", "Moyenne", "Appréciation"]]
        for subject, average in snapshot.subjects.items():
            band = snapshot.subject_orientations.get(subject)
            rows.append([subject, _format_average(average), band.value if band else NOT_AVAILABLE])
        story.append(self._table(rows, [8 * cm, 3.5 * cm, 4.5 * cm]))

        orientation = snapshot.orientation.value if snapshot.orientation else NOT_AVAILABLE
        story += [
            Spacer(1, 0.8 * cm),
            Paragraph(
                f"<b>MOYENNE GÉNÉRALE : {_format_average(snapshot.overall_average)}/20</b>",
                self._highlight,
            ),
            Paragraph(f"Orientation : {orientation}", self._highlight),
            Paragraph(f"Nombre de notes : {snapshot.total_grades}", self._body),
        ]
        return self._build(story, f"Bulletin - {student.label} - {snapshot.term}")

    def render_class_report(self, aggregate: ClassAggregate, generated_at: datetime) -> bytes:
        """Render a class report with the summary block and per-student table."""
        class_info = aggregate.class_info
        class_title = class_info.name
        if class_info.level:
            class_title = f"{class_info.name} ({class_info.level})"

        story = self._header("RAPPORT DE CLASSE")
        story += [
            Paragraph(f"Classe : {escape(class_title)}", self._body),
            Paragraph(f"Trimestre : {escape(aggregate.term)}", self._body),
            Paragraph(f"Date : {format_display_date(generated_at)}", self._body),
            Spacer(1, 0.6 * cm),
            Paragraph("Statistiques générales", self._section),
            Paragraph(f"Nombre d'élèves : {aggregate.enrolled_count}", self._body),
            Paragraph(f"Élèves avec notes : {aggregate.graded_count}", self._body),
            Paragraph(
                f"Moyenne de classe : {_format_average(aggregate.class_average)}/20",
                self._body,
            ),
            Spacer(1, 0.6 * cm),
            Paragraph("Résultats par élève", self._section),
        ]

        rows = [["Élève", "Moyenne", "Orientation"]]
        for line in aggregate.statistics:
            rows.append(
                [
                    line.student_label,
                    _format_average(line.average),
                    line.orientation.value if line.orientation else NOT_AVAILABLE,
                ]
            )
        story.append(self._table(rows, [8 * cm, 3.5 * cm, 4.5 * cm]))

        return self._build(story, f"Rapport de classe - {class_info.name} - {aggregate.term}")

    def _header(self, document_title: str) -> list:
        return [
            Paragraph(escape(self.school_name), self._title),
            Paragraph(document_title, self._subtitle),
            Spacer(1, 0.6 * cm),
        ]

    @staticmethod
    def _table(rows: list[list[str]], widths: list[float]) -> Table:
        table = Table(rows, colWidths=widths, repeatRows=1)
        table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), HEADER_BACKGROUND),
                    ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                    ("FONTSIZE", (0, 0), (-1, -1), 10),
                    ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, ROW_BACKGROUND]),
                    ("GRID", (0, 0), (-1, -1), 0.5, GRID_COLOR),
                    ("ALIGN", (1, 0), (-1, -1), "CENTER"),
                    ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
                    ("TOPPADDING", (0, 0), (-1, -1), 4),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
                ]
            )
        )
        return table

    def _draw_footer(self, canvas, doc) -> None:
        canvas.saveState()
        canvas.setFont("Helvetica", 8)
        canvas.setFillColor(colors.grey)
        canvas.drawCentredString(A4[0] / 2, 1.2 * cm, self.footer_text)
        canvas.drawRightString(A4[0] - 2 * cm, 1.2 * cm, f"Page {doc.page}")
        canvas.restoreState()

    def _build(self, story: list, title: str) -> bytes:
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            leftMargin=2 * cm,
            rightMargin=2 * cm,
            topMargin=2 * cm,
            bottomMargin=2.2 * cm,
            title=title,
            author=self.school_name,
            invariant=1,
        )
        doc.build(story, onFirstPage=self._draw_footer, onLaterPages=self._draw_footer)

        data = buffer.getvalue()
        logger.debug("Rendered %s (%d bytes)", title, len(data))
        return data
