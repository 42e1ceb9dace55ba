from __future__ import annotations

"""
Storm impact report generator
-----------------------------
This module turns ranked tables into things people read:
- plain-text tables (rank, event type, value),
- chart-ready series (labels in ranked order, scaled values),
- PNG charts pairing two ranked metrics vertically,
- a DOCX report answering the two questions (health impact, economic impact).

Design goals:
- No business logic here. Everything arrives already aggregated and ranked.
- Keep the core usable even if report dependencies are missing (lazy imports).
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence, Tuple
import os
import tempfile

from .engine import rank, metric_key
from .models import (
    AggregateRow, HEALTH_METRICS, ECONOMIC_METRICS,
    FATALITIES, INJURIES, PROPERTY_DAMAGE, CROP_DAMAGE,
)

MILLION = 1e-6

METRIC_LABELS: Dict[str, str] = {
    FATALITIES: "Fatalities",
    INJURIES: "Injuries",
    PROPERTY_DAMAGE: "Property damage (US$)",
    CROP_DAMAGE: "Crop damage (US$)",
}


# -----------------------------
# Configuration / citation types
# -----------------------------

@dataclass
class DatasetCitation:
    """Minimal dataset citation metadata for the DOCX report."""
    database_name: str = "NOAA Storm Events Database"
    institutional_author: str = "U.S. National Oceanic and Atmospheric Administration"
    website: str = "https://www.ncdc.noaa.gov/stormevents/"
    file_name: Optional[str] = None
    file_note: Optional[str] = "Storm data extract, 1950 to November 2011 (compressed CSV)."


@dataclass
class ReportConfig:
    """High-level knobs to control how the report is written."""
    title: str = "Storm Impact Report"
    subtitle: str = "Most harmful weather event types in the United States"
    dataset_name: str = "NOAA storm data (CSV)"
    citation: DatasetCitation = field(default_factory=DatasetCitation)

    # How many event types to show in each ranked table / chart
    top_n: int = 10


# -----------------------------
# Tables and series
# -----------------------------

@dataclass(frozen=True)
class TableRow:
    rank: int
    event_type: str
    value: float


@dataclass(frozen=True)
class ChartSeries:
    """Values ready for a bar chart.

    `labels` keep the ranked order. Health counts are plotted on a log10
    axis; damage values are expressed in millions of US$.
    """
    metric: str
    labels: List[str]
    values: List[float]
    log_scale: bool
    ylabel: str


@dataclass(frozen=True)
class ImpactReport:
    """Top-N tables for both questions.

    `ranked` is a read-only {metric: tuple of rows} view.
    """
    top_n: int
    records_in_scope: int
    event_types: int
    ranked: Mapping[str, Tuple[AggregateRow, ...]]

    def __post_init__(self) -> None:
        frozen = MappingProxyType({m: tuple(rows) for m, rows in self.ranked.items()})
        object.__setattr__(self, "ranked", frozen)

    @property
    def is_empty(self) -> bool:
        return not any(self.ranked.values())


def format_table(ranked: Sequence[AggregateRow], metric: str) -> List[TableRow]:
    m = metric_key(metric)
    return [TableRow(rank=i, event_type=row.event_type, value=row.value(m)) for i, row in enumerate(ranked, start=1)]


def _fmt_value(metric: str, v: float) -> str:
    if metric in ECONOMIC_METRICS:
        return f"{v:,.0f}"
    return f"{v:,.0f}" if float(v).is_integer() else f"{v:,.2f}"


def render_table(ranked: Sequence[AggregateRow], metric: str, title: Optional[str] = None) -> str:
    """Render a ranked table as aligned plain text."""
    m = metric_key(metric)
    rows = format_table(ranked, m)
    header = ("Rank", "Event type", METRIC_LABELS[m])
    cells = [(str(r.rank), r.event_type, _fmt_value(m, r.value)) for r in rows]
    w0 = max([len(header[0])] + [len(c[0]) for c in cells])
    w1 = max([len(header[1])] + [len(c[1]) for c in cells])
    w2 = max([len(header[2])] + [len(c[2]) for c in cells])
    lines = []
    if title:
        lines.append(title)
    lines.append(f"{header[0]:>{w0}}  {header[1]:<{w1}}  {header[2]:>{w2}}")
    lines.append(f"{'-' * w0}  {'-' * w1}  {'-' * w2}")
    for c in cells:
        lines.append(f"{c[0]:>{w0}}  {c[1]:<{w1}}  {c[2]:>{w2}}")
    if not cells:
        lines.append("(no rows)")
    return "\n".join(lines)


def chart_series(ranked: Sequence[AggregateRow], metric: str) -> ChartSeries:
    m = metric_key(metric)
    labels = [row.event_type for row in ranked]
    if m in HEALTH_METRICS:
        return ChartSeries(
            metric=m, labels=labels, values=[row.value(m) for row in ranked],
            log_scale=True, ylabel=f"{METRIC_LABELS[m]} (log10 scale)",
        )
    return ChartSeries(
        metric=m, labels=labels, values=[row.value(m) * MILLION for row in ranked],
        log_scale=False, ylabel=f"{METRIC_LABELS[m].replace('(US$)', '(millions of US$)')}",
    )


def build_report(table: Mapping[str, AggregateRow], top_n: int = 10, records_in_scope: int = 0) -> ImpactReport:
    """Rank the aggregate table by all four metrics."""
    ranked = {m: rank(table, m, top_n) for m in HEALTH_METRICS + ECONOMIC_METRICS}
    return ImpactReport(top_n=top_n, records_in_scope=records_in_scope, event_types=len(table), ranked=ranked)


# -----------------------------
# Charts
# -----------------------------

def _import_pyplot():
    try:
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
        import numpy as np
    except ImportError as e:
        raise ImportError(
            "Missing dependency: matplotlib (and numpy).\n"
            "Install with: python -m pip install matplotlib numpy"
        ) from e
    return plt, np


def _draw(ax, np, s: ChartSeries) -> None:
    # bar positions keep the ranked order (no alphabetical category axis)
    xs = np.arange(len(s.labels))
    values = np.asarray(s.values, dtype=float)
    if s.log_scale:
        # zero counts have no log10; leave them empty
        values = np.where(values > 0, values, np.nan)
        if np.any(values > 0):
            ax.set_yscale("log")
    ax.bar(xs, values, color="C0" if s.metric in HEALTH_METRICS else "C1", edgecolor="black", linewidth=0.6)
    ax.set_xticks(xs)
    ax.set_xticklabels(s.labels, rotation=45, ha="right", fontsize=8)
    ax.set_ylabel(s.ylabel)
    ax.set_title(f"Top {len(s.labels)} event types by {METRIC_LABELS[s.metric].split(' (')[0].lower()}")


def plot_pair(top: ChartSeries, bottom: ChartSeries, out_path: str, title: Optional[str] = None) -> str:
    """Draw two ranked series as vertically stacked bar charts and save a PNG."""
    plt, np = _import_pyplot()
    fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(9, 10))
    _draw(ax1, np, top)
    _draw(ax2, np, bottom)
    if title:
        fig.suptitle(title)
    fig.tight_layout()
    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
    fig.savefig(out_path, dpi=150)
    plt.close(fig)
    return out_path


def write_charts(report: ImpactReport, out_dir: str) -> Dict[str, str]:
    """Write health.png and economic.png; returns {question: path}."""
    r = {m: report.ranked.get(m, ()) for m in HEALTH_METRICS + ECONOMIC_METRICS}
    return {
        "health": plot_pair(
            chart_series(r[FATALITIES], FATALITIES), chart_series(r[INJURIES], INJURIES),
            os.path.join(out_dir, "health.png"), title="Population health impact by event type",
        ),
        "economic": plot_pair(
            chart_series(r[PROPERTY_DAMAGE], PROPERTY_DAMAGE), chart_series(r[CROP_DAMAGE], CROP_DAMAGE),
            os.path.join(out_dir, "economic.png"), title="Economic impact by event type",
        ),
    }


# -----------------------------
# DOCX report
# -----------------------------

def generate_docx_report(
    report: ImpactReport,
    out_path: str,
    *,
    config: Optional[ReportConfig] = None,
) -> str:
    """
    Generate a DOCX report with the four ranked tables and two paired charts.
    """
    config = config or ReportConfig()

    # Lazy imports: only required when a DOCX report is requested.
    try:
        from docx import Document
        from docx.shared import Pt, Inches
        from docx.enum.text import WD_ALIGN_PARAGRAPH
    except ImportError as e:
        raise ImportError(
            "Missing dependency: python-docx.\n"
            "Install it with: python -m pip install python-docx"
        ) from e

    charts = write_charts(report, tempfile.mkdtemp(prefix="stormrank_report_"))

    doc = Document()
    style = doc.styles["Normal"]
    style.font.name = "Calibri"
    style.font.size = Pt(11)

    def _center_title(text: str, size: int, bold: bool = False, italic: bool = False) -> None:
        p = doc.add_paragraph()
        r = p.add_run(text)
        r.bold = bold
        r.italic = italic
        r.font.size = Pt(size)
        p.alignment = WD_ALIGN_PARAGRAPH.CENTER

    def _kv(key: str, value: str) -> None:
        p = doc.add_paragraph()
        r = p.add_run(f"{key}: ")
        r.bold = True
        p.add_run(value)

    def _ranked_table(metric: str) -> None:
        rows = format_table(report.ranked.get(metric, ()), metric)
        doc.add_paragraph(f"Top {report.top_n} event types by {METRIC_LABELS[metric]}")
        t = doc.add_table(rows=1, cols=3)
        h = t.rows[0].cells
        h[0].text = "Rank"
        h[1].text = "Event type"
        h[2].text = METRIC_LABELS[metric]
        for row in rows:
            c = t.add_row().cells
            c[0].text = str(row.rank)
            c[1].text = row.event_type
            c[2].text = _fmt_value(metric, row.value)
        if not rows:
            doc.add_paragraph("(no rows)")
        doc.add_paragraph("")

    _center_title(config.title, 22, bold=True)
    _center_title(config.subtitle, 12, italic=True)

    doc.add_paragraph("")
    _kv("Dataset", config.dataset_name)
    if report.records_in_scope:
        _kv("Records", f"{report.records_in_scope:,}")
    _kv("Distinct event types", f"{report.event_types:,}")

    doc.add_heading("Dataset citation", level=1)
    cit = config.citation
    if cit.file_name:
        doc.add_paragraph(f"Data file used: {cit.file_name}")
    if cit.file_note:
        doc.add_paragraph(f"File note: {cit.file_note}")
    doc.add_paragraph(f"{cit.institutional_author}. {cit.database_name}. {cit.website}.")

    doc.add_heading("Columns used (data dictionary)", level=1)
    t = doc.add_table(rows=1, cols=2)
    t.rows[0].cells[0].text = "Column"
    t.rows[0].cells[1].text = "Meaning"
    for k, v in [
        ("EVTYPE", "Event type label (free text, not canonicalised)"),
        ("FATALITIES", "Deaths attributed to the event"),
        ("INJURIES", "Injuries attributed to the event"),
        ("PROPDMG / PROPDMGEXP", "Property damage magnitude and exponent code"),
        ("CROPDMG / CROPDMGEXP", "Crop damage magnitude and exponent code"),
    ]:
        row = t.add_row().cells
        row[0].text = k
        row[1].text = v

    doc.add_heading("Population health", level=1)
    for m in HEALTH_METRICS:
        _ranked_table(m)
    doc.add_picture(charts["health"], width=Inches(6.0))

    doc.add_heading("Economic consequences", level=1)
    for m in ECONOMIC_METRICS:
        _ranked_table(m)
    doc.add_picture(charts["economic"], width=Inches(6.0))

    doc.add_heading("Data quality notes", level=1)
    for note in [
        "Damage exponent codes '+', '0'-'8', 'H', 'K', 'M' and 'B' are decoded to "
        "1, 10, 100, 1e3, 1e6 and 1e9. Every other code (blank, '?', '-', '9', ...) "
        "decodes to 0, so damage reported with a missing code is counted as no damage.",
        "Event types are grouped exactly as recorded: spelling variants such as "
        "'TSTM WIND' and 'THUNDERSTORM WIND' are separate rows.",
        "Health charts use a log10 axis; damage charts are in millions of US$.",
    ]:
        doc.add_paragraph(note, style="List Bullet")

    doc.add_heading("Reproducibility footer", level=1)
    from . import __version__
    from datetime import datetime as _dt
    doc.add_paragraph(f"stormrank version: {__version__}")
    doc.add_paragraph(f"Report generated at: {_dt.now().isoformat(timespec='seconds')}")

    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
    doc.save(out_path)
    return out_path
