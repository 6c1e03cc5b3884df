"""
Structured logging and audit event tests.
"""

import json
import logging
import unittest

from alipay_gateway.logging_config import (
    AuditLogger,
    GatewayLogFormatter,
    bind_trace_id,
    current_trace_id,
    trace_id_var,
)


class CapturingHandler(logging.Handler):

    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


class TestAuditLogger(unittest.TestCase):

    def setUp(self):
        self.audit = AuditLogger("alipay_gateway.audit.test")
        self.handler = CapturingHandler()
        logger = logging.getLogger("alipay_gateway.audit.test")
        logger.addHandler(self.handler)
        logger.setLevel(logging.INFO)
        self.addCleanup(logger.removeHandler, self.handler)
        token = trace_id_var.set("")
        self.addCleanup(trace_id_var.reset, token)

    def test_request_signed_masks_app_id(self):
        self.audit.request_signed("alipay.trade.query", "2021000000000001", "execute", "RSA2")

        record = self.handler.records[0]
        self.assertEqual(record.audit["event"], "REQUEST_SIGNED")
        self.assertEqual(record.audit["app_id"], "************0001")
        self.assertEqual(record.audit["method"], "alipay.trade.query")
        self.assertTrue(record.getMessage().startswith("REQUEST_SIGNED: "))

    def test_json_line_carries_trace_id(self):
        bind_trace_id("trace-1")
        self.audit.certificate_pinned("abc123", "certificate download")

        data = json.loads(GatewayLogFormatter().format(self.handler.records[0]))
        self.assertEqual(data["level"], "INFO")
        self.assertEqual(data["trace_id"], "trace-1")
        self.assertEqual(data["event"], "CERTIFICATE_PINNED")
        self.assertEqual(data["cert_sn"], "abc123")

    def test_generated_trace_id(self):
        trace_id = bind_trace_id()
        self.assertEqual(len(trace_id), 32)
        self.assertEqual(current_trace_id(), trace_id)

    def test_absent_fields_omitted(self):
        self.audit.response_verified("alipay.trade.query")
        self.assertNotIn("cert_sn", self.handler.records[0].audit)

    def test_disabled_level_emits_nothing(self):
        logging.getLogger("alipay_gateway.audit.test").setLevel(logging.ERROR)
        self.audit.response_verified("alipay.trade.query")
        self.audit.verification_failed("alipay.trade.query", "check sign and data fail")
        self.assertEqual([r.levelno for r in self.handler.records], [logging.ERROR])


if __name__ == "__main__":
    unittest.main()
