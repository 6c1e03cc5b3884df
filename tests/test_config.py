"""
Options and environment configuration tests.
"""

import dataclasses
import os
import tempfile
import unittest

from alipay_gateway.certificates import get_cert_sn
from alipay_gateway.config import load_options, read_material, validate_config
from alipay_gateway.options import AlipayOptions

from tests.fixtures import cert_options, pem, pki, plain_options, public_der_b64


class TestOptions(unittest.TestCase):

    def test_defaults(self):
        options = AlipayOptions(app_id="1")
        self.assertEqual(options.sign_type, "RSA2")
        self.assertEqual(options.charset, "utf-8")
        self.assertEqual(options.format, "json")
        self.assertEqual(options.version, "1.0")
        self.assertEqual(options.server_url, "https://openapi.alipay.com/gateway.do")
        self.assertFalse(options.certificate_mode)

    def test_serial_numbers_derived_from_certificates(self):
        p = pki()
        options = cert_options()
        self.assertTrue(options.certificate_mode)
        self.assertEqual(options.app_cert_sn, get_cert_sn(p.app_cert))
        self.assertEqual(options.alipay_public_cert_sn, get_cert_sn(p.gateway_cert))
        self.assertEqual(options.root_cert_sn, get_cert_sn(p.root_cert))
        self.assertEqual(options.alipay_public_key, public_der_b64(p.gateway_key))

    def test_explicit_serial_numbers_kept(self):
        options = cert_options(app_cert_sn="explicit")
        self.assertEqual(options.app_cert_sn, "explicit")

    def test_immutable(self):
        options = plain_options()
        with self.assertRaises(dataclasses.FrozenInstanceError):
            options.app_id = "other"

    def test_repr_hides_key_material(self):
        options = plain_options()
        self.assertNotIn(options.app_private_key[:40], repr(options))
        self.assertIn(options.app_id, repr(options))


class TestEnvironment(unittest.TestCase):

    def test_inline_material_wins(self):
        with tempfile.NamedTemporaryFile("w", suffix=".txt", delete=False) as f:
            f.write("from-file\n")
        self.addCleanup(os.unlink, f.name)

        env = {"ALIPAY_PUBLIC_KEY": " inline ", "ALIPAY_PUBLIC_KEY_PATH": f.name}
        self.assertEqual(read_material("ALIPAY_PUBLIC_KEY", env), "inline")

        env = {"ALIPAY_PUBLIC_KEY_PATH": f.name}
        self.assertEqual(read_material("ALIPAY_PUBLIC_KEY", env), "from-file")
        self.assertEqual(read_material("ALIPAY_APP_CERT", env), "")

    def test_load_plain_options(self):
        expected = plain_options()
        env = {
            "ALIPAY_APP_ID": expected.app_id,
            "ALIPAY_APP_PRIVATE_KEY": expected.app_private_key,
            "ALIPAY_PUBLIC_KEY": expected.alipay_public_key,
            "ALIPAY_SERVER_URL": expected.server_url,
            "ALIPAY_SIGN_TYPE": "RSA",
        }
        options = load_options(env)
        self.assertEqual(options.app_id, expected.app_id)
        self.assertEqual(options.app_private_key, expected.app_private_key)
        self.assertEqual(options.sign_type, "RSA")
        self.assertEqual(options.server_url, expected.server_url)

    def test_load_certificates_from_files(self):
        p = pki()
        paths = {}
        for name, cert in (("ALIPAY_APP_CERT", p.app_cert),
                           ("ALIPAY_PUBLIC_CERT", p.gateway_cert),
                           ("ALIPAY_ROOT_CERT", p.root_cert)):
            with tempfile.NamedTemporaryFile("w", suffix=".crt", delete=False) as f:
                f.write(pem(cert))
            self.addCleanup(os.unlink, f.name)
            paths[f"{name}_PATH"] = f.name

        options = load_options(dict(paths, ALIPAY_APP_ID="1"))

        self.assertTrue(options.certificate_mode)
        self.assertEqual(options.alipay_public_cert_sn, get_cert_sn(p.gateway_cert))

    def test_validate_config(self):
        checks = validate_config(plain_options(encrypt_type="AES"))
        self.assertTrue(checks["app_id"])
        self.assertTrue(checks["alipay_public_key"])
        self.assertFalse(checks["encrypt_key"])
        self.assertNotIn("root_cert", checks)

        checks = validate_config(cert_options())
        self.assertTrue(checks["root_cert"])


if __name__ == "__main__":
    unittest.main()
