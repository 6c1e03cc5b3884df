"""
HTTP transport tests against a mocked requests session.
"""

import os
import tempfile
import unittest
from unittest.mock import Mock

import requests

from alipay_gateway.request import FileItem
from alipay_gateway.transport import RequestsTransport


def _http_response(text: str, charset: str = "utf-8", status_code: int = 200) -> Mock:
    resp = Mock()
    resp.status_code = status_code
    resp.content = text.encode(charset)
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Server Error")
    return resp


class TestRequestsTransport(unittest.TestCase):

    def setUp(self):
        self.session = Mock(spec=requests.Session)
        self.transport = RequestsTransport(session=self.session, timeout=7)
        self.url = "https://gateway.example.com/gateway.do"

    def test_form_post(self):
        self.session.post.return_value = _http_response('{"ok":"中文"}')

        body = self.transport.post(self.url, {"method": "alipay.trade.query", "subject": "中文"})

        self.assertEqual(body, '{"ok":"中文"}')
        args, kwargs = self.session.post.call_args
        self.assertEqual(args, (self.url,))
        self.assertEqual(kwargs["data"], {"method": b"alipay.trade.query", "subject": "中文".encode("utf-8")})
        self.assertIsNone(kwargs["files"])
        self.assertEqual(kwargs["headers"]["Content-Type"], "application/x-www-form-urlencoded;charset=utf-8")
        self.assertEqual(kwargs["timeout"], 7)

    def test_charset_applied_both_ways(self):
        self.session.post.return_value = _http_response('{"msg":"成功"}', charset="gbk")

        body = self.transport.post(self.url, {"subject": "中文"}, charset="gbk")

        self.assertEqual(body, '{"msg":"成功"}')
        kwargs = self.session.post.call_args[1]
        self.assertEqual(kwargs["data"]["subject"], "中文".encode("gbk"))

    def test_multipart_post(self):
        self.session.post.return_value = _http_response("{}")
        image = FileItem("logo.png", b"\x89PNG", "image/png")

        self.transport.post(self.url, {"image_type": "png"}, {"image_content": image})

        kwargs = self.session.post.call_args[1]
        self.assertEqual(kwargs["files"], {"image_content": ("logo.png", b"\x89PNG", "image/png")})
        self.assertIsNone(kwargs["headers"])

    def test_http_error_propagates(self):
        self.session.post.return_value = _http_response("busy", status_code=503)
        with self.assertRaises(requests.HTTPError):
            self.transport.post(self.url, {"method": "m"})

    def test_timeout_propagates(self):
        self.session.post.side_effect = requests.Timeout("read timed out")
        with self.assertRaises(requests.Timeout):
            self.transport.post(self.url, {"method": "m"})

    def test_close(self):
        self.transport.close()
        self.session.close.assert_called_once_with()


class TestFileItem(unittest.TestCase):

    def test_from_path(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "receipt.pdf")
            with open(path, "wb") as f:
                f.write(b"%PDF-1.4")

            item = FileItem.from_path(path, "application/pdf")

        self.assertEqual(item.file_name, "receipt.pdf")
        self.assertEqual(item.content, b"%PDF-1.4")
        self.assertEqual(item.mime_type, "application/pdf")


if __name__ == "__main__":
    unittest.main()
