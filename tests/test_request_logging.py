from __future__ import annotations

import io
import logging

from flask import Flask, request

from iconsync.utils.request_logging import log_request


def test_log_request_captures_raw_body(caplog) -> None:
    app = Flask(__name__)
    logger = logging.getLogger("request_logging_test")
    with app.test_request_context(
        "/api/upload?name=home",
        method="POST",
        data="<svg>" + "x" * 600 + "</svg>",
        content_type="image/svg+xml",
    ):
        with caplog.at_level(logging.INFO, logger="request_logging_test"):
            log_request(logger, request)

    message = caplog.records[0].message
    assert "method=POST" in message
    assert "/api/upload" in message
    assert "'name': 'home'" in message
    assert "<truncated>" in message


def test_log_request_summarizes_multipart(caplog) -> None:
    app = Flask(__name__)
    logger = logging.getLogger("request_logging_multipart")
    with app.test_request_context(
        "/api/upload",
        method="POST",
        data={"icon": (io.BytesIO(b"<svg/>"), "a.svg")},
        content_type="multipart/form-data",
    ):
        with caplog.at_level(logging.INFO, logger="request_logging_multipart"):
            log_request(logger, request)

    assert "<multipart files=icon>" in caplog.records[0].message


def test_log_request_skips_objects_without_http_fields(caplog) -> None:
    logger = logging.getLogger("request_logging_test_skip")
    with caplog.at_level(logging.INFO, logger="request_logging_test_skip"):
        log_request(logger, object())
    assert not caplog.records
