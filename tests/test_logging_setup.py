from __future__ import annotations

import logging

from utils.logging_setup import LINE_FORMAT, RunIdFilter, SafeExtraFormatter


def _record(**extra):
    record = logging.LogRecord("pipelines.sync", logging.INFO, __file__, 1, "nothing new to add", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_missing_extras_get_placeholders():
    line = SafeExtraFormatter(fmt=LINE_FORMAT).format(_record(stage="sync"))
    assert "stage=sync subject=- provider=-" in line
    assert line.endswith("run_id=-")


def test_run_id_comes_from_the_environment(monkeypatch):
    monkeypatch.setenv("RUN_ID", "run-42")
    record = _record(subject="omar-suleiman")

    assert RunIdFilter().filter(record) is True
    line = SafeExtraFormatter(fmt=LINE_FORMAT).format(record)
    assert "subject=omar-suleiman" in line
    assert line.endswith("run_id=run-42")


def test_explicit_run_id_is_kept(monkeypatch):
    monkeypatch.setenv("RUN_ID", "run-42")
    record = _record(run_id="batch-7")
    RunIdFilter().filter(record)
    assert record.run_id == "batch-7"
