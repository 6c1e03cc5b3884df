"""
Alipay Gateway Error Taxonomy

Every failure raised by the client is terminal for the in-flight call.
Nothing here is retried internally; each error carries the offending field
or certificate serial number so callers can diagnose without re-deriving
the signing content.
"""

from typing import Optional


class AlipayError(Exception):
    """Base class for all gateway client errors."""


class ConfigurationError(AlipayError):
    """Raised when a required option is missing or empty."""

    def __init__(self, field: str, message: Optional[str] = None):
        self.field = field
        self.message = message or "is required"
        super().__init__(f"{field}: {self.message}")


class EncryptionPreconditionError(ConfigurationError):
    """Raised when a request needs encryption but cannot be encrypted."""


class UnsupportedEncryptionError(AlipayError):
    """Raised for a missing or unrecognized encryption algorithm tag."""

    def __init__(self, encrypt_type: Optional[str], message: Optional[str] = None):
        self.encrypt_type = encrypt_type
        super().__init__(message or f"unsupported encrypt_type: {encrypt_type!r} (only AES is supported)")


class SigningError(AlipayError):
    """Raised for malformed key material or an unknown sign type."""


class VerificationError(AlipayError):
    """Raised when a response signature does not verify, including after the JSON fallback."""

    def __init__(self, message: str, cert_sn: Optional[str] = None):
        self.cert_sn = cert_sn
        if cert_sn:
            message = f"{message} (cert_sn={cert_sn})"
        super().__init__(message)


class UntrustedCertificateError(AlipayError):
    """Raised when a gateway certificate cannot be downloaded or fails chain validation."""

    def __init__(self, cert_sn: str, reason: str):
        self.cert_sn = cert_sn
        self.reason = reason
        super().__init__(f"untrusted gateway certificate {cert_sn}: {reason}")


class DuplicateParameterError(AlipayError, ValueError):
    """Raised when a parameter name is set twice on the same request."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"duplicate parameter: {key}")
