import json
import logging

from storefront.core.logging_config import (
    SecurityFilter,
    StructuredFormatter,
    get_logger,
    set_request_context,
)


def make_record(msg, **extra):
    record = logging.LogRecord("storefront.test", logging.INFO, __file__, 10, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_emits_json_with_trace():
    set_request_context(request_id="req-1", user_id="alice")
    try:
        record = make_record("Order ORD-1 committed", extra_fields={"order_id": 1})
        payload = json.loads(StructuredFormatter("orders-service", "test", "1.0.0").format(record))
    finally:
        set_request_context()

    assert payload["message"] == "Order ORD-1 committed"
    assert payload["service"] == "orders-service"
    assert payload["trace"] == {"request_id": "req-1", "user_id": "alice"}
    assert payload["custom"] == {"order_id": 1}


def test_security_filter_masks_credentials():
    record = make_record("connect failed: postgresql+psycopg2://shop:hunter2@db:5432/shop")
    SecurityFilter().filter(record)
    assert "hunter2" not in record.getMessage()
    assert "***REDACTED***" in record.getMessage()


def test_adapter_injects_request_context():
    set_request_context(request_id="req-9", user_id="bob")
    try:
        _, kwargs = get_logger("storefront.test").process("hello", {})
    finally:
        set_request_context()
    assert kwargs["extra"] == {"request_id": "req-9", "user_id": "bob"}
