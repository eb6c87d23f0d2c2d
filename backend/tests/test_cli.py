import json

import pytest
import yaml

from schemaflow.cli import main


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    path = tmp_path / "schemaflow.yaml"
    path.write_text(yaml.safe_dump({
        "llm": {"provider": "scripted"},
        "storage": {"type": "sqlite", "path": str(tmp_path / "db" / "sf.db")},
        "logging": {"level": "user", "format": "text"},
    }), encoding="utf-8")
    return path


def run(config_file, *argv):
    return main(["--config", str(config_file), *argv])


def test_ingest_without_planner_stores_flat_table(config_file, csv_file, capsys):
    assert run(config_file, "ingest", str(csv_file())) == 0
    assert "updated/created successfully" in capsys.readouterr().out

    assert run(config_file, "tables") == 0
    assert capsys.readouterr().out.split() == ["orders"]

    assert run(config_file, "show", "orders", "--limit", "2") == 0
    out = capsys.readouterr().out
    assert "Alice" in out and "Bob" in out
    assert "... 2 more row(s)" in out


def test_no_fallback_exit_code(config_file, csv_file):
    assert run(config_file, "ingest", str(csv_file()), "--no-fallback") == 1
    assert run(config_file, "show", "orders") == 1


def test_schema_missing(config_file, capsys):
    assert run(config_file, "schema") == 1
    assert "Database schema not found" in capsys.readouterr().out


def test_config_set_and_get(config_file, capsys):
    assert run(config_file, "config", "set", "api_key", "abc123") == 0
    capsys.readouterr()
    assert run(config_file, "config", "get", "api_key") == 0
    assert capsys.readouterr().out.strip() == "abc123"
    assert run(config_file, "config", "get", "nope") == 1


def test_delete_table(config_file, csv_file):
    run(config_file, "ingest", str(csv_file()), "--table", "raw")
    assert run(config_file, "delete", "raw") == 0
    assert run(config_file, "delete", "raw") == 1


def test_report_from_file_with_html(config_file, csv_file, tmp_path, capsys):
    run(config_file, "ingest", str(csv_file()))
    suggestion = tmp_path / "report.json"
    suggestion.write_text(json.dumps({
        "title": "Orders per customer",
        "query": {
            "tables": ["orders"],
            "aggregation": {"groupBy": "Customer Name", "method": "COUNT", "newColumnName": "orders"},
        },
        "chart_config": {"type": "bar"},
    }), encoding="utf-8")
    html = tmp_path / "out" / "report.html"
    capsys.readouterr()

    assert run(config_file, "report", "--file", str(suggestion), "--html", str(html)) == 0
    out = capsys.readouterr().out
    assert "Orders per customer" in out
    assert "Could not generate summary." in out
    assert html.exists()
    assert "Orders per customer" in html.read_text(encoding="utf-8")


def test_report_index_without_suggestions(config_file):
    assert run(config_file, "report", "--index", "1") == 1


def test_set_override_and_json_logs(config_file, csv_file, tmp_path, capsys):
    other = tmp_path / "other.db"
    code = run(config_file, "--json", "--set", f"storage.path={other}", "ingest", str(csv_file()))
    assert code == 0
    assert other.exists()
    lines = [json.loads(line) for line in capsys.readouterr().out.splitlines() if line.startswith("{")]
    assert any(entry["category"] == "planner" for entry in lines)


def test_missing_explicit_config_is_a_config_error(tmp_path):
    assert main(["--config", str(tmp_path / "nope.yaml"), "tables"]) == 2


def test_invalid_config_value(config_file):
    assert run(config_file, "--set", "storage.type=oracle", "tables") == 2


def test_html_without_path_goes_to_output_dir(config_file, csv_file, tmp_path):
    run(config_file, "ingest", str(csv_file()))
    suggestion = tmp_path / "report.json"
    suggestion.write_text(json.dumps({"title": "All Orders!", "query": {"tables": ["orders"]}}), encoding="utf-8")
    out_dir = tmp_path / "exports"

    code = run(config_file, "--set", f"reporting.output_dir={out_dir}",
               "report", "--file", str(suggestion), "--html")
    assert code == 0
    assert (out_dir / "all_orders.html").exists()
