"""
Alipay Gateway Client

Version: 1.0.0

Signed-request / trusted-response client for the Alipay open platform
gateway:

- Canonical parameter assembly and RSA / RSA2 signing
- AES encryption of the business payload
- Response verification with a static gateway key, or in certificate mode
  with a trust store that follows the gateway's certificate rotation

Usage:
    from alipay_gateway import AlipayClient, AlipayOptions, AlipayRequest, TrustStore

    options = AlipayOptions(
        app_id="2021000000000000",
        app_private_key=private_key,
        alipay_public_key=alipay_public_key,
    )

    client = AlipayClient(trust_store=TrustStore())
    request = AlipayRequest(
        "alipay.trade.query",
        biz_model={"out_trade_no": "20150320010101001"},
    )
    response = client.execute(request, options)

    if response.is_error:
        print(response.sub_code, response.sub_msg)
"""

__version__ = "1.0.0"
__license__ = "Apache-2.0"

# Client
from .client import AlipayClient, ExecutionMode, check_options

# Options and configuration
from .options import AlipayOptions
from .config import load_options, validate_config

# Requests and responses
from .request import (
    AlipayRequest,
    AlipayUploadRequest,
    AlipayOpenAppAlipaycertDownloadRequest,
    FileItem,
)
from .response import AlipayResponse, AlipayOpenAppAlipaycertDownloadResponse
from .domain import serialize_biz_model

# Canonical parameters and signing
from .parameters import ParameterSet
from .signature import (
    build_sign_content,
    rsa_sign,
    rsa_verify,
    aes_encrypt,
    aes_decrypt,
)

# Trust
from .trust_store import TrustStore, CertificateDownload
from .verifier import ResponseVerifier
from .parser import AlipayJsonParser, SignItem, CertItem
from .certificates import get_cert_sn, get_root_cert_sn, is_trusted

# Transport
from .transport import Transport, RequestsTransport

# Errors
from .exceptions import (
    AlipayError,
    ConfigurationError,
    EncryptionPreconditionError,
    UnsupportedEncryptionError,
    SigningError,
    VerificationError,
    UntrustedCertificateError,
    DuplicateParameterError,
)


__all__ = [
    # Version
    "__version__",

    # Client
    "AlipayClient",
    "ExecutionMode",
    "check_options",

    # Options
    "AlipayOptions",
    "load_options",
    "validate_config",

    # Requests and responses
    "AlipayRequest",
    "AlipayUploadRequest",
    "AlipayOpenAppAlipaycertDownloadRequest",
    "FileItem",
    "AlipayResponse",
    "AlipayOpenAppAlipaycertDownloadResponse",
    "serialize_biz_model",

    # Signing
    "ParameterSet",
    "build_sign_content",
    "rsa_sign",
    "rsa_verify",
    "aes_encrypt",
    "aes_decrypt",

    # Trust
    "TrustStore",
    "CertificateDownload",
    "ResponseVerifier",
    "AlipayJsonParser",
    "SignItem",
    "CertItem",
    "get_cert_sn",
    "get_root_cert_sn",
    "is_trusted",

    # Transport
    "Transport",
    "RequestsTransport",

    # Errors
    "AlipayError",
    "ConfigurationError",
    "EncryptionPreconditionError",
    "UnsupportedEncryptionError",
    "SigningError",
    "VerificationError",
    "UntrustedCertificateError",
    "DuplicateParameterError",
]
