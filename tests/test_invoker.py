import logging

import pytest

from src.config.logging import STORE_LOGGER_NAME
from src.core.exceptions import QueryError, ScanError
from src.data import Order
from src.database.invoker import CallContext, ProcedureInvoker
from src.database.mapper import decode_int, decode_str


def _context(session=None, **kwargs):
    return CallContext("test_operation", session=session, **kwargs)


class TestStatement:
    def test_binds_arguments_in_positional_order(self, invoker, engine):
        invoker.call("SaveThing", ("a", 1, 2.5, True), context=_context())

        assert engine.calls == [("cryptopump", "SaveThing", ("a", 1, 2.5, True))]

    def test_no_arguments(self, invoker):
        assert str(invoker.statement("GetThreadCount", 0)) == "CALL cryptopump.GetThreadCount()"

    def test_schema_can_be_swapped_for_an_isolated_copy(self, engine):
        invoker = ProcedureInvoker(engine, schema="cryptopump_test")

        invoker.call("DeleteSession", ("T1",), context=_context())

        assert engine.calls[0].schema == "cryptopump_test"

    @pytest.mark.parametrize("schema", ["", "crypto pump", "x;DROP", "1abc"])
    def test_rejects_invalid_schema(self, engine, schema):
        with pytest.raises(ValueError):
            ProcedureInvoker(engine, schema=schema)

    def test_rejects_invalid_procedure(self, invoker, engine):
        with pytest.raises(ValueError):
            invoker.call("Save(); DROP", (), context=_context())
        assert engine.calls == []


class TestCursorRelease:
    def test_cursor_closed_once_after_fetch_one(self, invoker, engine):
        engine.handlers["GetThreadCount"] = [(3,)]

        assert invoker.fetch_one("GetThreadCount", (), decode_int, default=0, context=_context()) == 3
        assert [r.close_count for r in engine.results] == [1]
        assert engine.open_connections == 0

    def test_cursor_closed_once_after_call_without_rows(self, invoker, engine):
        invoker.call("DeleteSession", ("T1",), context=_context())

        assert [r.close_count for r in engine.results] == [1]

    def test_cursor_closed_once_when_consumer_stops_early(self, invoker, engine):
        engine.handlers["GetSessionStatus"] = [("T1", 1), ("T2", 1), ("T3", 1)]

        first = invoker.consume("GetSessionStatus", (), lambda rows: next(iter(rows)), context=_context())

        assert first == ("T1", 1)
        assert engine.results[0].rows_read == 1
        assert engine.results[0].close_count == 1

    def test_cursor_closed_once_when_decoding_fails(self, invoker, engine):
        engine.handlers["GetOrderSymbol"] = [("a", "b")]

        with pytest.raises(ScanError):
            invoker.fetch_one("GetOrderSymbol", ("T1",), decode_str, default="", context=_context())
        assert engine.results[0].close_count == 1

    def test_no_cursor_on_invocation_error(self, invoker, engine, driver_error):
        engine.handlers["GetThreadCount"] = driver_error()

        with pytest.raises(QueryError):
            invoker.fetch_one("GetThreadCount", (), decode_int, default=0, context=_context())
        assert engine.results == []
        assert engine.returned_connections == 1


class TestFetch:
    def test_fetch_one_default_when_no_rows(self, invoker, engine):
        engine.handlers["GetOrderSymbol"] = []

        assert invoker.fetch_one("GetOrderSymbol", ("T1",), decode_str, default="", context=_context()) == ""

    def test_fetch_one_last_row_wins(self, invoker, engine):
        engine.handlers["GetOrderSymbol"] = [("BTCUSDT",), ("ETHUSDT",)]

        assert (
            invoker.fetch_one("GetOrderSymbol", ("T1",), decode_str, default="", context=_context())
            == "ETHUSDT"
        )

    def test_fetch_all_keeps_store_order(self, invoker, engine):
        engine.handlers["GetNumbers"] = [(3,), (1,), (2,)]

        assert invoker.fetch_all("GetNumbers", (), decode_int, context=_context()) == [3, 1, 2]

    def test_fetch_all_keeps_decoded_rows_on_scan_error(self, invoker, engine):
        engine.handlers["GetNumbers"] = [(1,), ("not a number",), (3,)]

        with pytest.raises(ScanError) as excinfo:
            invoker.fetch_all("GetNumbers", (), decode_int, context=_context())

        assert excinfo.value.partial == [1, 3]
        assert excinfo.value.procedure == "GetNumbers"
        assert excinfo.value.__cause__ is not None


class TestFailureReporting:
    def test_driver_error_is_raised_unmodified(self, invoker, engine, session, driver_error):
        error = driver_error("Lost connection to MySQL server during query")
        engine.handlers["GetThreadCount"] = error

        with pytest.raises(QueryError) as excinfo:
            invoker.fetch_one("GetThreadCount", (), decode_int, default=0, context=_context(session))

        assert excinfo.value.orig is error
        assert excinfo.value.__cause__ is error
        assert str(excinfo.value) == str(error)
        assert excinfo.value.procedure == "GetThreadCount"

    def test_exactly_one_log_entry_with_context(self, invoker, engine, session, caplog, driver_error):
        engine.handlers["SaveOrder"] = driver_error("Duplicate entry")
        context = CallContext("save_order", session=session, order=Order(order_id=42, price=1.5))

        with caplog.at_level(logging.ERROR, logger=STORE_LOGGER_NAME):
            with pytest.raises(QueryError):
                invoker.call("SaveOrder", (1, 2), context=context)

        entries = [r for r in caplog.records if r.name == STORE_LOGGER_NAME]
        assert len(entries) == 1
        record = entries[0]
        assert record.levelno == logging.ERROR
        assert "save_order" in record.getMessage()
        assert "Duplicate entry" in record.getMessage()
        assert record.log_entry["session"]["thread_id"] == "T1"
        assert record.log_entry["order"]["order_id"] == 42
        assert record.log_entry["config"] is None
        assert record.log_entry["market"] is None

    def test_connection_failure_is_reported(self, session, caplog, unreachable_engine):
        invoker = ProcedureInvoker(unreachable_engine)

        with caplog.at_level(logging.ERROR, logger=STORE_LOGGER_NAME):
            with pytest.raises(QueryError):
                invoker.call("DeleteSession", ("T1",), context=_context(session))

        assert len([r for r in caplog.records if r.name == STORE_LOGGER_NAME]) == 1

    def test_failed_call_recorded_in_metrics(self, invoker, engine, driver_error):
        engine.handlers["GetThreadCount"] = driver_error()

        with pytest.raises(QueryError):
            invoker.fetch_one("GetThreadCount", (), decode_int, default=0, context=_context())

        assert invoker.metrics.error_counts["GetThreadCount"] == 1
