"""ReportExporter — JSON/CSV/Markdown export of an analytics snapshot."""

from __future__ import annotations

import csv
import io
import json
import logging
from pathlib import Path

from shopdash.models.snapshot import AnalyticsSnapshot

logger = logging.getLogger(__name__)

_CSV_FIELDS = ["month", "revenue", "anomaly", "z_score"]

_DISPLAY_NAMES = {
    "total_revenue": "Total Revenue",
    "revenue_growth": "Revenue Growth (%)",
    "average_order_value": "Average Order Value",
    "conversion_rate": "Conversion Rate (%)",
    "inventory_health": "Inventory Health (%)",
    "service_utilization": "Service Utilization (%)",
    "total_products": "Total Products",
    "active_products": "Active Products",
    "total_services": "Total Services",
    "available_services": "Available Services",
}


class ReportExporter:
    """Export analytics snapshots in various formats."""

    def export_json(self, snapshot: AnalyticsSnapshot) -> str:
        """Export the full snapshot as structured JSON."""
        return json.dumps({"snapshot": snapshot.model_dump(mode="json")}, indent=2)

    def export_csv(self, snapshot: AnalyticsSnapshot, path: str | Path) -> Path:
        """Write one row per monthly revenue bucket.

        Parameters
        ----------
        snapshot:
            Snapshot whose monthly series is exported.
        path:
            Output CSV file path.
        """
        p = Path(path)
        flagged = {a.index: a for a in snapshot.revenue_anomalies}
        labels = list(snapshot.month_labels) or [str(i + 1) for i in range(len(snapshot.monthly_revenue))]

        buf = io.StringIO()
        writer = csv.DictWriter(buf, fieldnames=_CSV_FIELDS)
        writer.writeheader()
        for i, (label, value) in enumerate(zip(labels, snapshot.monthly_revenue)):
            anomaly = flagged.get(i)
            writer.writerow({
                "month": label,
                "revenue": f"{value:.2f}",
                "anomaly": "yes" if anomaly else "no",
                "z_score": f"{anomaly.z_score:.2f}" if anomaly else "",
            })

        p.write_text(buf.getvalue(), encoding="utf-8")
        logger.info("Exported %d monthly rows to %s", len(snapshot.monthly_revenue), p)
        return p

    def export_markdown(self, snapshot: AnalyticsSnapshot) -> str:
        """Export headline KPIs and top products as a Markdown summary."""
        dr = snapshot.date_range
        lines = [
            "# Storefront Analytics Report",
            "",
            f"Period: {dr.start.isoformat()} to {dr.end.isoformat()}",
            "",
            "| KPI | Value |",
            "|-----|-------|",
        ]
        data = snapshot.model_dump()
        for key, name in _DISPLAY_NAMES.items():
            lines.append(f"| {name} | {data[key]} |")

        if snapshot.top_entities:
            lines += ["", "## Top Products", "", "| Product | Sales | Revenue |", "|---------|-------|---------|"]
            for entity in snapshot.top_entities:
                lines.append(f"| {entity.name} | {entity.sales_count} | {entity.revenue:.2f} |")

        if snapshot.revenue_anomalies:
            lines += ["", "## Anomalies", ""]
            for anomaly in snapshot.revenue_anomalies:
                label = anomaly.label or f"#{anomaly.index}"
                lines.append(f"- {label}: {anomaly.value:.2f} (z={anomaly.z_score:.2f})")

        if snapshot.external_points:
            latest = {(p.source_id, p.name): p for p in snapshot.external_points}
            lines += ["", "## External Data", ""]
            for (source_id, name), point in latest.items():
                lines.append(f"- {name} ({source_id}): {point.value}{point.unit}")

        if snapshot.fetch_error:
            lines += ["", f"> Data unavailable: {snapshot.fetch_error}"]

        lines.append("")
        return "\n".join(lines)
