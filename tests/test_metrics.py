import asyncio
import csv

from trip_suggester.metrics import HEADER, MetricsSink, normalise_usage


def _rows(path):
    with path.open(newline="", encoding="utf-8") as fh:
        return list(csv.reader(fh))


def test_first_record_writes_header(tmp_path):
    path = tmp_path / "logs" / "metrics.csv"
    sink = MetricsSink(path)

    async def run():
        await sink.record(42, {"prompt_tokens": 10, "completion_tokens": 5}, "gpt-4o-mini")
        await sink.record(7, None, "mock")

    asyncio.run(run())

    rows = _rows(path)
    assert rows[0] == HEADER
    assert rows[0][:2] == ["timestamp", "latency_ms"]
    assert rows[1][1:] == ["42", "10", "5", "15", "gpt-4o-mini", "1", ""]
    assert rows[2][1:] == ["7", "", "", "", "mock", "1", ""]


def test_error_text_is_flattened(tmp_path):
    path = tmp_path / "metrics.csv"
    asyncio.run(MetricsSink(path).record(0, None, "error", ok=False, error="bad, very\nbad"))

    rows = _rows(path)
    assert rows[1][6:] == ["0", "bad; very bad"]


def test_normalise_usage_prefers_responses_names():
    usage = {"input_tokens": 3, "output_tokens": 4, "total_tokens": 9}
    assert normalise_usage(usage) == {"input_tokens": 3, "output_tokens": 4, "total_tokens": 9}
    assert normalise_usage(None) == {}


def test_unwritable_path_does_not_raise(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("x", encoding="utf-8")
    asyncio.run(MetricsSink(blocker / "metrics.csv").record(1, None, "mock"))
