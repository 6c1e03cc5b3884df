"""
Alipay Response Verifier

Checks the gateway signature over the signed fragment of a response.

Policy:
- A business error reply without a signature is accepted unverified;
  the gateway does not sign some error paths.
- A failed verification is retried exactly once with every escaped
  slash (\\/) replaced by '/', to absorb a known JSON escaping difference.
  If that also fails, verification fails. No other heuristics.
- In certificate mode the signer's serial number must resolve to a trusted
  key (refreshing the trust store if needed) before verification runs.
"""

import logging
from typing import Callable, Optional

from .exceptions import SigningError, UntrustedCertificateError, VerificationError
from .logging_config import audit_log
from .options import AlipayOptions
from .parser import AlipayJsonParser, SignItem
from .request import AlipayRequest
from .signature import rsa_verify
from .trust_store import Downloader, TrustStore

logger = logging.getLogger(__name__)

ESCAPED_SLASH = "\\/"


class ResponseVerifier:
    """Verifies gateway responses with a static key or the trust store."""

    def __init__(self, parser: AlipayJsonParser, trust_store: TrustStore):
        self.parser = parser
        self.trust_store = trust_store

    def _fail(self, request: AlipayRequest, reason: str, cert_sn: Optional[str] = None):
        audit_log.verification_failed(request.api_name, reason, cert_sn)
        raise VerificationError(f"sign check fail: {reason}", cert_sn=cert_sn)

    def _verify(self, content: str, item: SignItem, public_key: str, options: AlipayOptions) -> bool:
        try:
            return rsa_verify(content, item.sign, public_key, options.charset, options.sign_type)
        except SigningError as e:
            raise VerificationError(f"sign check fail: {e}") from e

    def verify_item(
        self,
        request: AlipayRequest,
        item: SignItem,
        public_key: str,
        options: AlipayOptions,
        cert_sn: Optional[str] = None
    ) -> None:
        """
        Verify a sign item, with the single escaped-slash fallback.

        Raises:
            VerificationError: If neither the fragment nor its unescaped
                form verifies
        """
        if self._verify(item.sign_source, item, public_key, options):
            return

        if ESCAPED_SLASH not in item.sign_source:
            self._fail(request, "check sign and data fail", cert_sn)

        audit_log.verification_fallback(request.api_name)
        unescaped = item.sign_source.replace(ESCAPED_SLASH, "/")
        if not self._verify(unescaped, item, public_key, options):
            self._fail(request, "check sign and data fail, unescaped JSON also", cert_sn)

    def check_response_sign(
        self,
        request: AlipayRequest,
        body: str,
        is_error: bool,
        options: AlipayOptions
    ) -> None:
        """Verify a response against the statically configured gateway public key."""
        item = self.parser.get_sign_item(request, body)
        if item is None:
            self._fail(request, "response body has no signed content")

        if is_error and not item.sign:
            audit_log.verification_skipped(request.api_name, "unsigned error response")
            return

        self.verify_item(request, item, options.alipay_public_key, options)
        audit_log.response_verified(request.api_name)

    def check_response_cert_sign(
        self,
        request: AlipayRequest,
        body: str,
        is_error: bool,
        options: AlipayOptions,
        download: Downloader
    ) -> None:
        """Verify a response against the trusted key of its signing certificate."""
        item = self.parser.get_cert_item(request, body)
        if item is None:
            self._fail(request, "response body has no signed content")

        if is_error and not item.sign:
            audit_log.verification_skipped(request.api_name, "unsigned error response")
            return

        if not item.cert_sn:
            self._fail(request, "response names no signing certificate")

        public_key = self.trust_store.ensure_pinned(item.cert_sn, options, download)
        self.verify_item(request, item, public_key, options, cert_sn=item.cert_sn)
        audit_log.response_verified(request.api_name, item.cert_sn)

    def check_download_sign(
        self,
        request: AlipayRequest,
        body: str,
        options: AlipayOptions,
        cert_sn: str
    ) -> Optional[Callable[[str], None]]:
        """
        Verify a certificate download response without recursing into another refresh.

        A response signed by an already trusted certificate is verified now.
        A response signed by the certificate being downloaded can only be
        verified once that certificate validates; a check is returned for
        the trust store to run with the extracted key. Any other signer is
        untrusted.
        """
        item = self.parser.get_cert_item(request, body)
        if item is None or not item.sign or not item.cert_sn:
            raise UntrustedCertificateError(cert_sn, "certificate download response is not signed")

        known_key = self.trust_store.get(item.cert_sn)
        if known_key is not None:
            self.verify_item(request, item, known_key, options, cert_sn=item.cert_sn)
            return None

        if item.cert_sn != cert_sn:
            raise UntrustedCertificateError(
                cert_sn, f"certificate download response signed by unknown certificate {item.cert_sn}"
            )

        def pending_check(public_key: str) -> None:
            self.verify_item(request, item, public_key, options, cert_sn=cert_sn)
            logger.debug("download response for %s verified with downloaded key", cert_sn)

        return pending_check
