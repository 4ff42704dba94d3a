"""Tests for structured logging and Prometheus metrics."""

import json
import logging

import httpx
from prometheus_client import REGISTRY

from netstorage import metrics
from netstorage.actions import Action
from netstorage.auth import Credentials, Signer
from netstorage.connection import ACSConnection
from netstorage.logging_config import JSONFormatter, configure_logging

from conftest import HOST, KEY, KEY_NAME


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="netstorage.connection",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="ACS response %s",
        args=("ok",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_basic_fields(self):
        entry = json.loads(JSONFormatter().format(_record()))
        assert entry["level"] == "INFO"
        assert entry["logger"] == "netstorage.connection"
        assert entry["message"] == "ACS response ok"
        assert "timestamp" in entry

    def test_extra_fields(self):
        entry = json.loads(
            JSONFormatter().format(_record(method="GET", action="stat", status=404))
        )
        assert entry["method"] == "GET"
        assert entry["action"] == "stat"
        assert entry["status"] == 404
        assert "duration_ms" not in entry

    def test_duration_field(self):
        entry = json.loads(JSONFormatter().format(_record(action="list", duration_ms=12.5)))
        assert entry["duration_ms"] == 12.5


class TestConfigureLogging:
    """Tests for configure_logging()."""

    def setup_method(self):
        root = logging.getLogger()
        self._saved = (root.handlers[:], root.level)
        self._transport_levels = {
            name: logging.getLogger(name).level for name in ("httpx", "httpcore")
        }

    def teardown_method(self):
        root = logging.getLogger()
        root.handlers[:], level = self._saved
        root.setLevel(level)
        for name, saved in self._transport_levels.items():
            logging.getLogger(name).setLevel(saved)

    def test_json_format(self):
        configure_logging(level="WARNING", fmt="json")
        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_text_format(self):
        configure_logging(level="debug", fmt="text")
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert not isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_unknown_level_defaults_to_info(self):
        configure_logging(level="LOUD")
        assert logging.getLogger().level == logging.INFO

    def test_transport_loggers_quiet_above_debug(self):
        configure_logging(level="INFO")
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("httpcore").level == logging.WARNING

    def test_transport_loggers_follow_root_at_debug(self):
        configure_logging(level="DEBUG")
        assert logging.getLogger("httpx").level == logging.NOTSET
        assert logging.getLogger("httpx").getEffectiveLevel() == logging.DEBUG


class TestMetrics:
    """Tests for the netstorage_ Prometheus counters."""

    def test_init_idempotent(self):
        metrics.init_metrics()
        first = metrics.acs_requests_total
        metrics.init_metrics()
        assert metrics.acs_requests_total is first

    def test_record_request(self):
        metrics.init_metrics()
        labels = {"action": "du", "status": "200"}
        before = REGISTRY.get_sample_value("netstorage_acs_requests_total", labels) or 0.0
        metrics.record_request("du", 200, sent=0, received=10)
        after = REGISTRY.get_sample_value("netstorage_acs_requests_total", labels)
        assert after == before + 1

    async def test_connection_records_requests(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"12345")

        connection = ACSConnection(
            HOST,
            Signer(Credentials(KEY, KEY_NAME)),
            transport=httpx.MockTransport(handler),
            metrics_enabled=True,
        )
        labels = {"action": "download", "status": "200"}
        before = REGISTRY.get_sample_value("netstorage_acs_requests_total", labels) or 0.0
        received_before = REGISTRY.get_sample_value("netstorage_bytes_received_total") or 0.0
        try:
            await connection.request("GET", "/123456/f", Action.DOWNLOAD)
        finally:
            await connection.close()

        assert REGISTRY.get_sample_value("netstorage_acs_requests_total", labels) == before + 1
        assert REGISTRY.get_sample_value("netstorage_bytes_received_total") == received_before + 5

    async def test_disabled_connection_records_nothing(self):
        metrics.init_metrics()
        connection = ACSConnection(
            HOST,
            Signer(Credentials(KEY, KEY_NAME)),
            transport=httpx.MockTransport(lambda request: httpx.Response(200)),
            metrics_enabled=False,
        )
        labels = {"action": "mkdir", "status": "200"}
        before = REGISTRY.get_sample_value("netstorage_acs_requests_total", labels)
        try:
            await connection.request("PUT", "/123456/d", Action.MKDIR)
        finally:
            await connection.close()
        assert REGISTRY.get_sample_value("netstorage_acs_requests_total", labels) == before
