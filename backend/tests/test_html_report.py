import json
import re

from schemaflow.core.models import ChartData, ChartDataset, ReportResult
from schemaflow.reporting.html_report import render_html_report, write_html_report


def make_report(**overrides):
    data = dict(
        title="Revenue <by> customer",
        description="Sum of revenue",
        summary="Alice leads.",
        chart=ChartData(labels=["Alice", "Bob", None],
                        datasets=[ChartDataset(label="revenue", data=[10.0, 5.0, None])]),
        rows=[{"Customer": "Alice", "revenue": 10.0}, {"Customer": "Bob", "revenue": 5.0},
              {"Customer": None, "revenue": None}],
        columns=["Customer", "revenue"],
    )
    data.update(overrides)
    return ReportResult(**data)


def test_render_escapes_and_scales_bars():
    html = render_html_report(make_report(), timestamp="2025-01-01 00:00:00")

    assert "Revenue &lt;by&gt; customer" in html
    assert "Generated 2025-01-01 00:00:00" in html
    assert "width: 70.0%" in html
    assert "width: 35.0%" in html
    assert 'class="null"' in html


def test_chart_payload_is_embedded_as_json():
    report = make_report(title="</script> test")
    html = render_html_report(report)
    payload = re.search(r'<script type="application/json" id="chart-data">(.*?)</script>', html, re.DOTALL).group(1)

    chart = json.loads(payload)
    assert chart["labels"] == ["Alice", "Bob", None]
    assert chart["datasets"][0]["data"] == [10.0, 5.0, None]


def test_empty_chart_has_no_bars():
    report = make_report(chart=ChartData(), rows=[], columns=[])
    html = render_html_report(report)
    assert 'class="bar-row"' not in html
    assert "Data (0 rows)" in html


def test_write_creates_parent_dirs(tmp_path):
    path = write_html_report(make_report(), tmp_path / "a" / "b" / "r.html")
    assert path.read_text(encoding="utf-8").startswith("<!DOCTYPE html>")
