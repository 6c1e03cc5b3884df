"""
Alipay Signing Options

Per-merchant configuration consumed read-only by the client. Options are
immutable once constructed; certificate serial numbers and the gateway
public key are derived from the configured certificates when they are not
given explicitly.
"""

from dataclasses import dataclass, replace

from .certificates import (
    extract_public_key,
    get_cert_sn_from_content,
    get_root_cert_sn,
    load_certificate,
)
from .constants import (
    DEFAULT_CHARSET,
    DEFAULT_FORMAT,
    DEFAULT_SERVER_URL,
    DEFAULT_VERSION,
    SIGN_TYPE_RSA2,
)


@dataclass(frozen=True)
class AlipayOptions:
    """
    Merchant signing configuration.

    Key material is given as PEM text or bare base64 DER. Certificate
    fields hold PEM content, not file paths.
    """
    app_id: str = ""
    app_private_key: str = ""
    alipay_public_key: str = ""
    sign_type: str = SIGN_TYPE_RSA2
    charset: str = DEFAULT_CHARSET
    format: str = DEFAULT_FORMAT
    version: str = DEFAULT_VERSION
    server_url: str = DEFAULT_SERVER_URL

    # Optional payload encryption
    encrypt_key: str = ""
    encrypt_type: str = ""

    # Certificate mode
    app_cert: str = ""
    alipay_public_cert: str = ""
    root_cert: str = ""
    app_cert_sn: str = ""
    alipay_public_cert_sn: str = ""
    root_cert_sn: str = ""

    def __post_init__(self):
        if self.app_cert and not self.app_cert_sn:
            object.__setattr__(self, "app_cert_sn", get_cert_sn_from_content(self.app_cert))

        if self.root_cert and not self.root_cert_sn:
            object.__setattr__(self, "root_cert_sn", get_root_cert_sn(self.root_cert))

        if self.alipay_public_cert:
            cert = load_certificate(self.alipay_public_cert)
            if not self.alipay_public_cert_sn:
                object.__setattr__(self, "alipay_public_cert_sn", get_cert_sn_from_content(self.alipay_public_cert))
            if not self.alipay_public_key:
                object.__setattr__(self, "alipay_public_key", extract_public_key(cert))

    @property
    def certificate_mode(self) -> bool:
        """Whether certificate material is configured."""
        return bool(self.app_cert and self.alipay_public_cert and self.root_cert)

    def with_changes(self, **changes) -> "AlipayOptions":
        """
        Return a copy with some fields replaced.

        Derived serial numbers are carried over; clear them when swapping
        certificates.
        """
        return replace(self, **changes)

    def __repr__(self) -> str:
        return (
            f"AlipayOptions(app_id={self.app_id!r}, sign_type={self.sign_type!r}, "
            f"server_url={self.server_url!r}, certificate_mode={self.certificate_mode})"
        )
