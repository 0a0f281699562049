# utils.py
from __future__ import annotations

import io
from datetime import timedelta
from typing import Iterable, List, TextIO

import pandas as pd
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from domain import Week
from services import WeekSummary, WorkHoursCalculator

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


# =========================
# Duration formatting
# =========================
def format_duration(d: timedelta) -> str:
    """8h0m0s / 25m0s / 0s. Sub-second parts are dropped."""
    secs = int(d.total_seconds())
    sign = "-" if secs < 0 else ""
    h, rem = divmod(abs(secs), 3600)
    m, s = divmod(rem, 60)
    if h:
        return f"{sign}{h}h{m}m{s}s"
    if m:
        return f"{sign}{m}m{s}s"
    return f"{sign}{s}s"


def format_hm(d: timedelta) -> str:
    minutes = int(d.total_seconds()) // 60
    sign = "-" if minutes < 0 else ""
    h, m = divmod(abs(minutes), 60)
    return f"{sign}{h}:{m:02d}"


def as_hours(d: timedelta) -> float:
    return round(d.total_seconds() / 3600.0, 2)


# =========================
# Text report
# =========================
def render_week(summary: WeekSummary) -> List[str]:
    lines = [f"{summary.year:04d} week {summary.iso_week:02d}:"]
    for day, worked in summary.days:
        lines.append(f"  {day.isoformat()}: {format_duration(worked)}")
    lines.append(f"   daily: {format_duration(summary.daily_average)}")
    lines.append(f"  worked: {format_duration(summary.total)}")
    lines.append(f"  expect: {format_duration(summary.expected)}")
    if summary.is_over:
        lines.append(f"    over: {format_duration(summary.balance)}")
    else:
        lines.append(f"   under: {format_duration(summary.balance)}")
    lines.append("")
    return lines


def write_report(weeks: Iterable[Week], sink: TextIO,
                 calculator: WorkHoursCalculator | None = None,
                 collect: List[WeekSummary] | None = None) -> int:
    """
    Writes each week as soon as `weeks` yields it. Returns the number written.
    Summaries are only kept when a `collect` list is passed in.
    """
    calc = calculator or WorkHoursCalculator()
    n = 0
    for week in weeks:
        summary = calc.summarize(week)
        for line in render_week(summary):
            sink.write(line + "\n")
        sink.flush()
        if collect is not None:
            collect.append(summary)
        n += 1
    return n


# =========================
# Tables
# =========================
def weeks_to_dataframe(summaries: Iterable[WeekSummary]) -> pd.DataFrame:
    rows = []
    for s in summaries:
        for day, worked in s.days:
            rows.append({
                "ISO Week": f"{s.year}-W{s.iso_week:02d}",
                "Date": day.isoformat(),
                "Day": WEEKDAYS[day.weekday()],
                "Worked": format_hm(worked),
                "Hours": as_hours(worked),
            })
    return pd.DataFrame(rows, columns=["ISO Week", "Date", "Day", "Worked", "Hours"])


def weekly_totals_dataframe(summaries: Iterable[WeekSummary]) -> pd.DataFrame:
    rows = []
    for s in summaries:
        rows.append({
            "ISO Week": f"{s.year}-W{s.iso_week:02d}",
            "Days": len(s.days),
            "Worked": format_hm(s.total),
            "Expected": format_hm(s.expected),
            "Daily avg": format_hm(s.daily_average),
            "Over/Under": format_hm(s.overtime),
        })
    return pd.DataFrame(rows, columns=["ISO Week", "Days", "Worked", "Expected", "Daily avg", "Over/Under"])


# =========================
# PDF
# =========================
def dataframe_to_pdf(df: pd.DataFrame, title: str, summary_lines: Iterable[str] = ()) -> bytes:
    buf = io.BytesIO()
    doc = SimpleDocTemplate(buf, pagesize=A4, topMargin=24, bottomMargin=24, leftMargin=24, rightMargin=24)
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(name="TitleCentered", parent=styles["Title"], alignment=TA_CENTER)
    summary_style = ParagraphStyle(
        name="Summary", parent=styles["Normal"], alignment=TA_CENTER,
        textColor=colors.black, fontSize=11, leading=13, spaceBefore=4, spaceAfter=2
    )
    story = [Paragraph(title, title_style), Spacer(1, 8)]
    if df.empty:
        story.append(Paragraph("No entries.", styles["Normal"]))
    else:
        data = [list(df.columns)] + df.astype(str).values.tolist()
        table = Table(data, repeatRows=1, hAlign="CENTER")
        table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#F5F5F7")),
            ("ALIGN", (0, 0), (-1, -1), "CENTER"),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 10),
            ("GRID", (0, 0), (-1, -1), 0.25, colors.HexColor("#E0E0E0")),
            ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.whitesmoke, colors.white]),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ]))
        story.append(table)
    summary_lines = list(summary_lines)
    if summary_lines:
        story.append(Spacer(1, 12))
        for line in summary_lines:
            story.append(Paragraph(line, summary_style))

    def draw_page_border(canvas, doc_obj):
        canvas.saveState()
        w, h = doc_obj.pagesize
        canvas.setStrokeColor(colors.HexColor("#C7CCD6"))
        canvas.setLineWidth(0.8)
        margin = 12
        canvas.rect(margin, margin, w - 2*margin, h - 2*margin)
        canvas.restoreState()

    doc.build(story, onFirstPage=draw_page_border, onLaterPages=draw_page_border)
    return buf.getvalue()


def summaries_to_pdf(summaries: List[WeekSummary], title: str = "Weekly timelog") -> bytes:
    total = sum((s.total for s in summaries), timedelta(0))
    expected = sum((s.expected for s in summaries), timedelta(0))
    lines = [
        f"Worked: {format_hm(total)} · Expected: {format_hm(expected)}",
        f"Balance: {format_hm(total - expected)}",
    ]
    return dataframe_to_pdf(weeks_to_dataframe(summaries), title, lines)
