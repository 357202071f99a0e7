import io
import logging

from assetworker.logging.logger import KeyValueFormatter, Log


def _record(message: str, **fields: object) -> logging.LogRecord:
    record = logging.LogRecord("assetworker", logging.INFO, __file__, 1, message, None, None)
    record.fields = fields
    return record


class TestKeyValueFormatter:
    def test_appends_sorted_fields(self) -> None:
        formatter = KeyValueFormatter("%(message)s")

        line = formatter.format(_record("Job completed", job_type="preview", job_id="abc"))

        assert line == "Job completed | job_id=abc job_type=preview"

    def test_plain_message_without_fields(self) -> None:
        formatter = KeyValueFormatter("%(message)s")

        assert formatter.format(_record("Worker started")) == "Worker started"

    def test_record_without_fields_attribute(self) -> None:
        formatter = KeyValueFormatter("[%(levelname)s] %(message)s")
        record = logging.LogRecord("other", logging.WARNING, __file__, 1, "hi", None, None)

        assert formatter.format(record) == "[WARNING] hi"


class TestLog:
    def test_configure_writes_fields_to_stream(self) -> None:
        stream = io.StringIO()
        Log.configure("debug", stream=stream)

        Log.info("Job completed", job_id="j-1")
        Log.debug("No jobs available")

        output = stream.getvalue()
        assert "[INFO] assetworker: Job completed | job_id=j-1" in output
        assert "[DEBUG] assetworker: No jobs available\n" in output

    def test_configure_twice_keeps_single_handler(self) -> None:
        Log.configure("info", stream=io.StringIO())
        Log.configure("warning", stream=io.StringIO())

        logger = logging.getLogger("assetworker")
        assert len(logger.handlers) == 1
        assert logger.level == logging.WARNING
