import json

from schemaflow.common.logger import LogLevel, get_logger, init_logger


def test_user_mode_hides_dev_messages(capsys):
    log = init_logger("user", "text")
    log.dev("hidden")
    log.info("shown")
    out = capsys.readouterr().out
    assert "hidden" not in out
    assert "shown" in out


def test_dev_mode_shows_lookup_samples(capsys):
    log = init_logger("dev", "text")
    log.lookup_sample("customers", {f"k{i}": f"customers_{i}" for i in range(10)}, size=2)
    out = capsys.readouterr().out
    assert "customers_1" in out
    assert "customers_5" not in out


def test_init_logger_reconfigures_shared_instance():
    log = get_logger()
    assert init_logger(LogLevel.DEBUG, "text") is log
    assert log.level == LogLevel.DEBUG


def test_json_mode_emits_one_object_per_line(capsys):
    log = init_logger("user", "json")
    log.table_success("orders", "child", {"rows_in": 4, "rows_out": 3})
    log.planner_failed("bad plan", "orders")
    lines = [json.loads(line) for line in capsys.readouterr().out.splitlines()]

    assert lines[0]["category"] == "table"
    assert lines[0]["level"] == "success"
    assert lines[0]["data"]["rows_out"] == 3
    assert lines[1]["data"] == {"error": "bad plan", "fallback_table": "orders"}
