import asyncio
import json
import logging

import pytest

from logs import StructuredFormatter, metrics, timed


def _record(**extra):
    record = logging.LogRecord("interview", logging.INFO, __file__, 10, "面试开始", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_includes_context_fields():
    line = StructuredFormatter().format(_record(session_id="s1", owner_id="u1", unrelated="x"))
    entry = json.loads(line)
    assert entry["message"] == "面试开始"
    assert entry["level"] == "INFO"
    assert entry["session_id"] == "s1"
    assert entry["owner_id"] == "u1"
    assert "unrelated" not in entry
    assert "document_id" not in entry


def test_counters_and_timings_snapshot():
    metrics.increment("sessions_started")
    metrics.increment("custom_counter", 3)
    metrics.observe("llm_requests", 0.2)
    metrics.observe("llm_requests", 0.4)

    snapshot = metrics.get_all()
    assert snapshot["sessions_started"] == 1
    assert snapshot["custom_counter"] == 3
    assert snapshot["sessions_completed"] == 0
    assert snapshot["timings"]["llm_requests"]["count"] == 2
    assert snapshot["timings"]["llm_requests"]["avg"] == pytest.approx(0.3)
    assert snapshot["timings"]["llm_requests"]["max"] == pytest.approx(0.4)

    metrics.reset()
    assert metrics.get("custom_counter") == 0
    assert metrics.get_all()["timings"] == {}


async def test_timed_counts_successes_and_failures():
    @timed("probe")
    async def probe(fail: bool):
        await asyncio.sleep(0)
        if fail:
            raise ValueError("nope")
        return "ok"

    assert await probe(False) == "ok"
    with pytest.raises(ValueError):
        await probe(True)

    assert metrics.get("probe") == 2
    assert metrics.get_all()["timings"]["probe"]["count"] == 2


def test_timed_rejects_sync_functions():
    with pytest.raises(TypeError):
        @timed("sync")
        def plain():
            return 1
