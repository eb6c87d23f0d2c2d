"""
Standalone HTML export of a generated report
"""
from __future__ import annotations
import json
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional

from jinja2 import Environment, select_autoescape

from schemaflow.common.utils import safe_mkdir
from schemaflow.core.models import ReportResult
from schemaflow.common.logger import get_logger

log = get_logger()

REPORT_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{{ report.title }}</title>
    <style>
        body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; background: #f5f7fa; color: #2c3e50; margin: 0; padding: 20px; }
        .container { max-width: 1100px; margin: 0 auto; background: white; border-radius: 8px; padding: 30px; box-shadow: 0 2px 6px rgba(0,0,0,0.08); }
        h1 { margin-top: 0; }
        .meta { color: #7f8c8d; font-size: 0.9em; }
        .summary { background: #ecf6fd; border-left: 4px solid #3498db; padding: 12px 16px; margin: 20px 0; }
        .chart { margin: 20px 0; }
        .bar-row { display: flex; align-items: center; margin: 4px 0; font-size: 0.9em; }
        .bar-label { width: 220px; overflow: hidden; text-overflow: ellipsis; white-space: nowrap; padding-right: 10px; }
        .bar { background: rgba(54, 162, 235, 0.6); border: 1px solid rgba(54, 162, 235, 1); height: 18px; }
        .bar-value { padding-left: 8px; color: #555; }
        table { border-collapse: collapse; width: 100%; margin-top: 20px; font-size: 0.9em; }
        th, td { border: 1px solid #e1e4e8; padding: 6px 10px; text-align: left; }
        th { background: #f0f3f6; }
        td.null { color: #bbb; font-style: italic; }
    </style>
</head>
<body>
    <div class="container">
        <h1>{{ report.title }}</h1>
        <p class="meta">Generated {{ timestamp }}{% if report.description %} &middot; {{ report.description }}{% endif %}</p>

        <div class="summary">{{ report.summary }}</div>

        {% if bars %}
        <h2>Chart ({{ report.chart.type }}): {{ dataset_label }}</h2>
        <div class="chart">
            {% for bar in bars %}
            <div class="bar-row">
                <div class="bar-label" title="{{ bar.label }}">{{ bar.label }}</div>
                <div class="bar" style="width: {{ bar.width }}%"></div>
                <div class="bar-value">{{ bar.value if bar.value is not none else "n/a" }}</div>
            </div>
            {% endfor %}
        </div>
        {% endif %}

        <h2>Data ({{ report.rows|length }} rows)</h2>
        <table>
            <thead>
                <tr>{% for col in report.columns %}<th>{{ col }}</th>{% endfor %}</tr>
            </thead>
            <tbody>
                {% for row in report.rows %}
                <tr>{% for col in report.columns %}{% set v = row.get(col) %}<td{% if v is none %} class="null"{% endif %}>{{ "null" if v is none else v }}</td>{% endfor %}</tr>
                {% endfor %}
            </tbody>
        </table>

        <script type="application/json" id="chart-data">{{ chart_json|safe }}</script>
    </div>
</body>
</html>
"""


def _bars(report: ReportResult) -> List[dict]:
    labels, data = report.chart.series
    peak = max((abs(v) for v in data if v is not None), default=0.0)
    out = []
    for label, value in zip(labels, data):
        width = 0.0 if value is None or peak == 0 else round(abs(value) / peak * 70, 2)
        out.append({"label": "null" if label is None else label, "value": value, "width": width})
    return out


def render_html_report(report: ReportResult, timestamp: Optional[str] = None) -> str:
    env = Environment(autoescape=select_autoescape(default_for_string=True, default=True))
    template = env.from_string(REPORT_TEMPLATE)
    chart_payload: Any = report.chart.model_dump()
    return template.render(
        report=report,
        timestamp=timestamp or datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        bars=_bars(report),
        dataset_label=report.chart.datasets[0].label if report.chart.datasets else "",
        # "</" would close the script element early
        chart_json=json.dumps(chart_payload, default=str).replace("</", "<\\/"),
    )


def write_html_report(report: ReportResult, path: Path) -> Path:
    """Render `report` to `path` (parent directories are created)."""
    path = Path(path)
    safe_mkdir(path.parent)
    path.write_text(render_html_report(report), encoding="utf-8")
    log.info(f"Report written: {path}")
    return path
