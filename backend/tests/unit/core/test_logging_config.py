"""
Unit Tests for structured logging
Tests for: certificate lifecycle events, JSON formatting with request context
"""
import json
import logging

from app.core.logging_config import (
    AchievrLogger,
    JSONFormatter,
    certificate_id_var,
    logger,
    request_id_var,
)


class TestCertificateEvents:
    """Test certificate lifecycle logging"""

    def test_logger_class(self):
        assert isinstance(logger, AchievrLogger)
        assert not hasattr(logger, "log_request")

    def test_certificate_event_fields(self, caplog):
        with caplog.at_level(logging.INFO, logger="achievr"):
            logger.log_certificate_event("CERT-20250302-1A2B3C4D", "issued", block_number=3)

        record = caplog.records[-1]
        assert record.getMessage() == "Certificate CERT-20250302-1A2B3C4D: issued"
        assert record.event_type == "certificate"
        assert record.certificate_event == "issued"
        assert record.certificate_ref == "CERT-20250302-1A2B3C4D"
        assert record.block_number == 3


class TestJSONFormatter:
    """Test production log output"""

    def test_context_and_extras_in_output(self, caplog):
        request_token = request_id_var.set("ab12cd34")
        certificate_token = certificate_id_var.set("CERT-20250302-1A2B3C4D")
        try:
            with caplog.at_level(logging.INFO, logger="achievr"):
                logger.log_certificate_event("CERT-20250302-1A2B3C4D", "verified", outcome="authentic")
            payload = json.loads(JSONFormatter().format(caplog.records[-1]))
        finally:
            request_id_var.reset(request_token)
            certificate_id_var.reset(certificate_token)

        assert payload["level"] == "INFO"
        assert payload["request_id"] == "ab12cd34"
        assert payload["certificate_id"] == "CERT-20250302-1A2B3C4D"
        assert payload["outcome"] == "authentic"
        assert payload["timestamp"].endswith("Z")
