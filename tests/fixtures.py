"""
Shared test fixtures: RSA keys, an in-process certificate hierarchy, a
fake gateway that signs its replies, and a recording transport.
"""

import json
import threading
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from alipay_gateway.options import AlipayOptions
from alipay_gateway.signature import rsa_sign
from alipay_gateway.transport import Transport
from alipay_gateway.util import b64e

FIXED_NOW = datetime(2024, 1, 2, 3, 4, 5)
AES_KEY = b64e(b"0123456789abcdef")


@lru_cache(maxsize=None)
def rsa_key(name: str) -> rsa.RSAPrivateKey:
    """One RSA key per name, generated once per test session."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def private_der_b64(key: rsa.RSAPrivateKey) -> str:
    return b64e(key.private_bytes(
        serialization.Encoding.DER,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption()
    ))


def private_pem(key: rsa.RSAPrivateKey) -> str:
    return key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.TraditionalOpenSSL,
        serialization.NoEncryption()
    ).decode("ascii")


def public_der_b64(key: rsa.RSAPrivateKey) -> str:
    return b64e(key.public_key().public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo
    ))


def public_pem(key: rsa.RSAPrivateKey) -> str:
    return key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo
    ).decode("ascii")


def make_name(cn: str, ou: str = "Gateway Certification Authority", o: str = "Ant Financial", c: str = "CN") -> x509.Name:
    return x509.Name([
        x509.NameAttribute(NameOID.COUNTRY_NAME, c),
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, o),
        x509.NameAttribute(NameOID.ORGANIZATIONAL_UNIT_NAME, ou),
        x509.NameAttribute(NameOID.COMMON_NAME, cn),
    ])


def make_cert(
    subject: x509.Name,
    subject_key: rsa.RSAPrivateKey,
    issuer: x509.Name,
    issuer_key: rsa.RSAPrivateKey,
    serial: int,
    ca: bool = False,
    path_length: Optional[int] = None,
    key_usage: Optional[x509.KeyUsage] = None,
    not_before: Optional[datetime] = None,
    not_after: Optional[datetime] = None
) -> x509.Certificate:
    now = datetime.now(timezone.utc)
    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer)
        .public_key(subject_key.public_key())
        .serial_number(serial)
        .not_valid_before(not_before or now - timedelta(days=1))
        .not_valid_after(not_after or now + timedelta(days=365))
        .add_extension(x509.BasicConstraints(ca=ca, path_length=path_length), critical=True)
    )
    if key_usage is not None:
        builder = builder.add_extension(key_usage, critical=True)
    return builder.sign(issuer_key, hashes.SHA256())


def pem(*certs: x509.Certificate) -> str:
    return "".join(cert.public_bytes(serialization.Encoding.PEM).decode("ascii") for cert in certs)


class Pki:
    """Root CA, an app certificate and two generations of gateway certificates."""

    def __init__(self):
        self.root_key = rsa_key("root")
        self.root_name = make_name("Ant Financial Certification Authority Class 1 R1")
        self.root_cert = make_cert(self.root_name, self.root_key, self.root_name, self.root_key, 1001, ca=True)

        self.app_key = rsa_key("app")
        self.app_cert = make_cert(make_name("merchant-app"), self.app_key, self.root_name, self.root_key, 2001)

        self.gateway_key = rsa_key("gateway")
        self.gateway_cert = make_cert(make_name("gateway-2023"), self.gateway_key, self.root_name, self.root_key, 3001)

        self.rotated_key = rsa_key("gateway-rotated")
        self.rotated_cert = make_cert(make_name("gateway-2024"), self.rotated_key, self.root_name, self.root_key, 3002)

        self.rogue_key = rsa_key("rogue")
        self.rogue_root_name = make_name("Rogue Root", o="Rogue")
        self.rogue_root = make_cert(self.rogue_root_name, self.rogue_key, self.rogue_root_name, self.rogue_key, 9001, ca=True)
        self.rogue_cert = make_cert(make_name("gateway-2024"), self.rotated_key, self.rogue_root_name, self.rogue_key, 3002)


@lru_cache(maxsize=None)
def pki() -> Pki:
    return Pki()


def plain_options(**overrides) -> AlipayOptions:
    values = dict(
        app_id="2021000000000001",
        app_private_key=private_der_b64(rsa_key("app")),
        alipay_public_key=public_der_b64(rsa_key("gateway")),
        server_url="https://gateway.example.com/gateway.do",
    )
    values.update(overrides)
    return AlipayOptions(**values)


def cert_options(**overrides) -> AlipayOptions:
    p = pki()
    values = dict(
        app_id="2021000000000001",
        app_private_key=private_der_b64(p.app_key),
        app_cert=pem(p.app_cert),
        alipay_public_cert=pem(p.gateway_cert),
        root_cert=pem(p.root_cert),
        server_url="https://gateway.example.com/gateway.do",
    )
    values.update(overrides)
    return AlipayOptions(**values)


def signed_body(
    node_name: str,
    node_text: str,
    key: Optional[rsa.RSAPrivateKey],
    cert_sn: Optional[str] = None,
    sign_source: Optional[str] = None,
    sign_type: str = "RSA2"
) -> str:
    """
    Build a gateway reply around a literal node text.

    sign_source defaults to node_text; pass a different string to model a
    gateway that signed a differently escaped form.
    """
    body = '{"' + node_name + '":' + node_text
    if cert_sn:
        body += ',"alipay_cert_sn":"' + cert_sn + '"'
    if key is not None:
        sign = rsa_sign(sign_source if sign_source is not None else node_text, private_der_b64(key), "utf-8", sign_type)
        body += ',"sign":"' + sign + '"'
    return body + '}'


def node_json(data: Dict[str, Any]) -> str:
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


class FakeTransport(Transport):
    """Records every post and answers with a handler."""

    def __init__(self, handler: Optional[Callable[[str, Dict[str, str], Any], str]] = None):
        self.handler = handler
        self.calls: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def post(self, url, fields, files=None, charset="utf-8"):
        with self._lock:
            self.calls.append({"url": url, "fields": dict(fields), "files": files, "charset": charset})
        if self.handler is None:
            raise AssertionError("unexpected network call")
        return self.handler(url, dict(fields), files)

    def calls_for(self, method: str) -> List[Dict[str, Any]]:
        return [call for call in self.calls if call["fields"].get("method") == method]
