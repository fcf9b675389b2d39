"""Spreadsheet and printable exports of committed lottery results."""

from __future__ import annotations

import io
import math
from datetime import datetime
from typing import Optional, Sequence

import pandas as pd
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.cidfonts import UnicodeCIDFont
from reportlab.pdfgen import canvas

from backend.domain.models import Assignment, Gender
from backend.utils.logger import get_logger


logger = get_logger(__name__)

EXPORT_COLUMNS = ("序号", "工号", "性别", "房间号")
EXCEL_COLUMN_WIDTHS = {"A": 8, "B": 15, "C": 8, "D": 25}
PDF_FONT_NAME = "STSong-Light"
DEFAULT_ROWS_PER_PAGE = 25

_GENDER_COLORS = {
    Gender.MALE: colors.HexColor("#3b82f6"),
    Gender.FEMALE: colors.HexColor("#ec4899"),
}


def sort_by_room_slot(assignments: Sequence[Assignment]) -> list[Assignment]:
    # Code-point order, not pinyin collation: 东 sorts before 北.
    return sorted(assignments, key=lambda item: item.room_slot)


def build_export_frame(assignments: Sequence[Assignment]) -> pd.DataFrame:
    rows = [
        (position, item.employee_id, item.gender.value, item.room_slot)
        for position, item in enumerate(sort_by_room_slot(assignments), start=1)
    ]
    return pd.DataFrame(rows, columns=list(EXPORT_COLUMNS))


def export_to_excel(assignments: Sequence[Assignment], sheet_name: str = "摇号结果") -> bytes:
    """Render the result as a single-sheet ``.xlsx`` workbook."""
    frame = build_export_frame(assignments)
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        frame.to_excel(writer, sheet_name=sheet_name, index=False)
        worksheet = writer.sheets[sheet_name]
        for column, width in EXCEL_COLUMN_WIDTHS.items():
            worksheet.column_dimensions[column].width = width
    logger.info("Excel export rendered | rows=%s", len(frame))
    return buffer.getvalue()


def _ensure_pdf_font() -> str:
    if PDF_FONT_NAME not in pdfmetrics.getRegisteredFontNames():
        pdfmetrics.registerFont(UnicodeCIDFont(PDF_FONT_NAME))
    return PDF_FONT_NAME


def export_to_pdf(
    assignments: Sequence[Assignment],
    title: str = "公寓摇号结果",
    *,
    rows_per_page: int = DEFAULT_ROWS_PER_PAGE,
    generated_at: Optional[datetime] = None,
) -> bytes:
    """Render the result as paginated A4 tables."""
    if rows_per_page <= 0:
        raise ValueError("rows_per_page must be > 0")

    font = _ensure_pdf_font()
    rows = sort_by_room_slot(assignments)
    total_pages = max(1, math.ceil(len(rows) / rows_per_page))
    timestamp = (generated_at or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")

    page_width, page_height = A4
    margin = 15 * mm
    row_height = 9 * mm
    column_widths = (18 * mm, 45 * mm, 22 * mm)
    column_widths = column_widths + (page_width - 2 * margin - sum(column_widths),)

    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4)
    pdf.setTitle(title)

    for page_index in range(total_pages):
        start = page_index * rows_per_page
        page_rows = rows[start:start + rows_per_page]

        top = page_height - margin
        pdf.setFillColor(colors.black)
        pdf.setFont(font, 18)
        pdf.drawString(margin, top - 6 * mm, title)
        pdf.setFont(font, 9)
        page_label = f"第 {page_index + 1} / {total_pages} 页"
        pdf.drawRightString(page_width - margin, top - 6 * mm, page_label)
        pdf.setFillColor(colors.grey)
        pdf.drawString(margin, top - 12 * mm, f"生成时间: {timestamp}")

        y = top - 20 * mm
        _draw_row(pdf, font, margin, y, row_height, column_widths, EXPORT_COLUMNS, header=True)
        for offset, item in enumerate(page_rows):
            y -= row_height
            cells = (str(start + offset + 1), item.employee_id, item.gender.value, item.room_slot)
            _draw_row(
                pdf,
                font,
                margin,
                y,
                row_height,
                column_widths,
                cells,
                striped=offset % 2 == 0,
                gender=item.gender,
            )
        pdf.showPage()

    pdf.save()
    logger.info("PDF export rendered | rows=%s | pages=%s", len(rows), total_pages)
    return buffer.getvalue()


def _draw_row(
    pdf: canvas.Canvas,
    font: str,
    x: float,
    y: float,
    height: float,
    widths: Sequence[float],
    cells: Sequence[str],
    *,
    header: bool = False,
    striped: bool = False,
    gender: Optional[Gender] = None,
) -> None:
    if header:
        background = colors.HexColor("#667eea")
    elif striped:
        background = colors.HexColor("#f8f9fa")
    else:
        background = colors.white
    pdf.setFillColor(background)
    pdf.setStrokeColor(colors.HexColor("#dddddd"))
    pdf.rect(x, y - height, sum(widths), height, stroke=1, fill=1)

    pdf.setFont(font, 10)
    cursor = x
    for column, (width, text) in enumerate(zip(widths, cells)):
        if header:
            pdf.setFillColor(colors.white)
        elif column == 2 and gender is not None:
            pdf.setFillColor(_GENDER_COLORS[gender])
        else:
            pdf.setFillColor(colors.black)
        pdf.drawString(cursor + 2 * mm, y - height + 3 * mm, text)
        pdf.line(cursor, y - height, cursor, y)
        cursor += width
