"""DashboardGenerator — self-contained HTML dashboard with SVG charts."""

from __future__ import annotations

import html
import logging
from pathlib import Path
from typing import Any, Sequence

from shopdash.config import GRID_COLUMNS
from shopdash.layout.registry import RenderModel
from shopdash.models.widget import WidgetKind

logger = logging.getLogger(__name__)


def _svg_bar_chart(data: list[tuple[str, float]], width: int = 600, height: int = 300, title: str = "") -> str:
    """Generate an SVG bar chart."""
    if not data:
        return f'<svg width="{width}" height="{height}"><text x="10" y="30">No data</text></svg>'

    max_val = max(v for _, v in data) or 1
    bar_w = max(10, (width - 80) // len(data))
    gap = 4

    bars = []
    for i, (label, value) in enumerate(data):
        bar_h = int((value / max_val) * (height - 80))
        x = 60 + i * (bar_w + gap)
        y = height - 40 - bar_h
        bars.append(f'<rect x="{x}" y="{y}" width="{bar_w}" height="{bar_h}" fill="#4A90D9" rx="2"/>')
        bars.append(
            f'<text x="{x + bar_w // 2}" y="{height - 20}" text-anchor="middle" '
            f'font-size="10" fill="#666">{html.escape(label[:10])}</text>'
        )
        bars.append(
            f'<text x="{x + bar_w // 2}" y="{y - 4}" text-anchor="middle" '
            f'font-size="10" fill="#333">{value:.0f}</text>'
        )

    title_el = (
        f'<text x="{width // 2}" y="18" text-anchor="middle" font-size="14" '
        f'font-weight="bold">{html.escape(title)}</text>'
        if title else ""
    )
    return (
        f'<svg width="{width}" height="{height}" xmlns="http://www.w3.org/2000/svg">'
        f'{title_el}'
        f'<line x1="58" y1="20" x2="58" y2="{height - 38}" stroke="#ccc"/>'
        f'<line x1="58" y1="{height - 38}" x2="{width}" y2="{height - 38}" stroke="#ccc"/>'
        + "".join(bars)
        + "</svg>"
    )


def _svg_line_chart(
    data: list[tuple[str, float]],
    width: int = 600,
    height: int = 300,
    highlight: set[int] | None = None,
    projected: list[float] | None = None,
) -> str:
    """Generate an SVG line chart; *projected* values continue dashed."""
    if not data:
        return f'<svg width="{width}" height="{height}"><text x="10" y="30">No data</text></svg>'

    highlight = highlight or set()
    projected = projected or []
    values = [v for _, v in data] + projected
    max_val = max(values) or 1
    n = len(values)
    margin_x, margin_y = 60, 40

    def _xy(i: int, value: float) -> tuple[int, int]:
        x = margin_x + (i * (width - margin_x - 20)) // max(n - 1, 1)
        y = height - margin_y - int((value / max_val) * (height - margin_y - 30))
        return x, y

    points = [_xy(i, v) for i, (_, v) in enumerate(data)]
    elements = [
        f'<svg width="{width}" height="{height}" xmlns="http://www.w3.org/2000/svg">',
        f'<polyline points="{" ".join(f"{x},{y}" for x, y in points)}" '
        f'fill="none" stroke="#4A90D9" stroke-width="2"/>',
    ]
    if projected:
        tail = [points[-1]] + [_xy(len(data) + i, v) for i, v in enumerate(projected)]
        elements.append(
            f'<polyline points="{" ".join(f"{x},{y}" for x, y in tail)}" '
            f'fill="none" stroke="#999" stroke-width="2" stroke-dasharray="6,4"/>'
        )
    for i, (x, y) in enumerate(points):
        colour = "#D9534F" if i in highlight else "#4A90D9"
        radius = 5 if i in highlight else 3
        elements.append(f'<circle cx="{x}" cy="{y}" r="{radius}" fill="{colour}"/>')
    elements.append("</svg>")
    return "".join(elements)


def _kpi_card(label: str, value: Any, unit: str = "") -> str:
    """Generate an HTML KPI card."""
    if isinstance(value, float):
        value = f"{value:,.2f}"
    return (
        '<div style="display:inline-block;margin:10px;padding:20px;'
        'border:1px solid #ddd;border-radius:8px;min-width:160px;text-align:center;">'
        f'<div style="font-size:26px;font-weight:bold;color:#333;">{html.escape(str(value))}{html.escape(unit)}</div>'
        f'<div style="font-size:13px;color:#888;margin-top:4px;">{html.escape(label)}</div>'
        '</div>'
    )


def _empty_state() -> str:
    return '<p class="empty">No data for this period.</p>'


class DashboardGenerator:
    """Render widget render models into one HTML page.

    Widgets are laid out on a CSS grid of ``GRID_COLUMNS`` columns, each
    spanning the columns/rows of its render model.
    """

    def generate_html(
        self,
        models: Sequence[RenderModel],
        path: str | Path,
        title: str = "Storefront Dashboard",
    ) -> Path:
        """Write the dashboard to *path* (a file, or a directory that gets
        ``DASHBOARD.html``) and return the written path."""
        out_path = Path(path)
        if out_path.is_dir():
            out_path = out_path / "DASHBOARD.html"

        sections = [self._section(model) for model in models]
        page = (
            "<!DOCTYPE html><html><head>"
            "<meta charset='utf-8'>"
            f"<title>{html.escape(title)}</title>"
            "<style>"
            "body{font-family:system-ui,-apple-system,sans-serif;margin:20px;background:#fafafa;color:#333;}"
            "h1{color:#2c3e50;border-bottom:2px solid #4A90D9;padding-bottom:8px;}"
            f".grid{{display:grid;grid-template-columns:repeat({GRID_COLUMNS},1fr);gap:15px;}}"
            ".section{background:#fff;padding:20px;border-radius:8px;box-shadow:0 1px 3px rgba(0,0,0,0.1);overflow:auto;}"
            ".empty{color:#999;font-style:italic;}"
            "table{border-collapse:collapse;width:100%;margin:10px 0;}"
            "th,td{border:1px solid #ddd;padding:8px;text-align:left;}"
            "th{background:#f5f5f5;}"
            "</style></head><body>"
            f"<h1>{html.escape(title)}</h1>"
            '<div class="grid">' + "".join(sections) + "</div>"
            "</body></html>"
        )
        out_path.write_text(page, encoding="utf-8")
        logger.info("Wrote dashboard with %d widgets to %s", len(models), out_path)
        return out_path

    def _section(self, model: RenderModel) -> str:
        body = _empty_state() if model.empty else self._body(model)
        return (
            f'<div class="section" id="widget-{html.escape(model.widget_id)}" '
            f'style="grid-column:span {model.columns};grid-row:span {model.rows};">'
            f"<h2>{html.escape(model.title)}</h2>{body}</div>"
        )

    def _body(self, model: RenderModel) -> str:
        data = model.data
        kind = model.kind

        if kind in (WidgetKind.STAT_SUMMARY, WidgetKind.PERFORMANCE_INDICATORS):
            items = data.get("cards") or data.get("indicators") or []
            return "".join(_kpi_card(i["label"], i["value"], i.get("unit", "")) for i in items)

        if kind is WidgetKind.REVENUE_TREND:
            series = [(p["label"], p["value"]) for p in data["points"]]
            chart = _svg_line_chart(
                series,
                highlight=set(data["anomalies"]),
                projected=[p["value"] for p in data["forecast"]],
            )
            return _kpi_card("Growth", data["growth"], "%") + chart

        if kind is WidgetKind.GENERIC_TIME_SERIES:
            parts = []
            for s in data["series"]:
                heading = f"<h3>{html.escape(s['name'])} <small>{html.escape(s['source_id'])}</small></h3>"
                if s["numeric"]:
                    points = [(p["timestamp"][:10], float(p["value"])) for p in s["points"]]
                    parts.append(
                        heading
                        + _kpi_card("Latest", float(s["latest"]), s["unit"])
                        + _svg_line_chart(points, height=200)
                    )
                else:
                    parts.append(f"{heading}<p>{html.escape(str(s['latest']))}</p>")
            return "".join(parts)

        if kind is WidgetKind.TOP_ENTITIES:
            rows = "".join(
                f"<tr><td>{html.escape(r['name'])}</td><td>{r['sales_count']}</td>"
                f"<td>{r['revenue']:,.2f}</td></tr>"
                for r in data["rows"]
            )
            return f"<table><tr><th>Product</th><th>Sales</th><th>Revenue</th></tr>{rows}</table>"

        if kind is WidgetKind.RECENT_ACTIVITY:
            items = "".join(
                f"<li>{html.escape(i['action'])} {html.escape(i['entity_type'])}: "
                f"{html.escape(i['name'])} <small>{html.escape(i['timestamp'])}</small></li>"
                for i in data["items"]
            )
            return f"<ul>{items}</ul>"

        if kind in (WidgetKind.CATEGORY_DISTRIBUTION, WidgetKind.STATUS_DISTRIBUTION):
            series = [(s["label"], float(s["count"])) for s in data["slices"]]
            return _svg_bar_chart(series, width=400, height=240)

        return _empty_state()
