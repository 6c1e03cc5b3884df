"""
Alipay Certificate Trust Store

Shared cache of trusted gateway public keys keyed by certificate serial
number. The gateway rotates its signing certificate; when a response names
a serial number that is not yet trusted, the store downloads the
certificate, validates it against the configured root bundle and pins it.

Trust is monotonic: entries are added, never evicted, for the lifetime of
the store. One store is shared by every client using the same merchant
configuration.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, Optional

from .certificates import extract_public_key, get_cert_sn, is_trusted, load_certificates, order_chain
from .exceptions import UntrustedCertificateError, VerificationError
from .logging_config import audit_log
from .options import AlipayOptions

logger = logging.getLogger(__name__)


@dataclass
class CertificateDownload:
    """
    Result of a certificate download call.

    pending_check, when set, verifies the download response's own signature
    once the downloaded public key is known; it raises on failure.
    """
    cert_content: str
    pending_check: Optional[Callable[[str], None]] = None


Downloader = Callable[[str, AlipayOptions], CertificateDownload]


@dataclass
class _RefreshSlot:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


class TrustStore:
    """
    Thread-safe serial number -> public key cache.

    Reads and pins are guarded by one lock. Refreshes are serialized per
    serial number so concurrent callers trigger at most one download for the
    same unseen certificate, while refreshes of different serial numbers run
    independently. A refresh lock only exists while some caller is waiting
    on or running that refresh.
    """

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._lock = threading.RLock()
        self._keys: Dict[str, str] = dict(initial or {})
        self._refresh_locks: Dict[str, _RefreshSlot] = {}

    def contains(self, cert_sn: str) -> bool:
        with self._lock:
            return cert_sn in self._keys

    def get(self, cert_sn: str) -> Optional[str]:
        with self._lock:
            return self._keys.get(cert_sn)

    def pin(self, cert_sn: str, public_key: str) -> None:
        """Trust a public key for a serial number."""
        if not cert_sn or not public_key:
            raise ValueError("cert_sn and public_key are required")
        with self._lock:
            self._keys[cert_sn] = public_key

    @property
    def is_empty(self) -> bool:
        with self._lock:
            return not self._keys

    def snapshot(self) -> Dict[str, str]:
        """Copy of the current serial number -> key map."""
        with self._lock:
            return dict(self._keys)

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)

    def seed(self, options: AlipayOptions) -> None:
        """Pin the locally configured gateway certificate if the store is empty."""
        if not (options.alipay_public_cert_sn and options.alipay_public_key):
            return
        with self._lock:
            if not self._keys:
                self._keys[options.alipay_public_cert_sn] = options.alipay_public_key
                audit_log.certificate_pinned(options.alipay_public_cert_sn, "local configuration")

    @contextmanager
    def _refresh_slot(self, cert_sn: str) -> Iterator[None]:
        """Hold the refresh lock for cert_sn; the entry is dropped once no caller uses it."""
        with self._lock:
            slot = self._refresh_locks.get(cert_sn)
            if slot is None:
                slot = self._refresh_locks[cert_sn] = _RefreshSlot()
            slot.users += 1
        try:
            with slot.lock:
                yield
        finally:
            with self._lock:
                slot.users -= 1
                if not slot.users:
                    del self._refresh_locks[cert_sn]

    def ensure_pinned(self, cert_sn: str, options: AlipayOptions, download: Downloader) -> str:
        """
        Return the trusted public key for cert_sn, refreshing if needed.

        Args:
            cert_sn: Serial number named by a gateway response
            options: Merchant options (root bundle, local gateway cert)
            download: Fetches the certificate for a serial number

        Returns:
            Base64 DER public key

        Raises:
            UntrustedCertificateError: If the download fails, its response
                signature does not verify, or the certificate does not
                validate against the root bundle
        """
        self.seed(options)

        key = self.get(cert_sn)
        if key is not None:
            return key

        with self._refresh_slot(cert_sn):
            key = self.get(cert_sn)
            if key is not None:
                return key
            key = self._refresh(cert_sn, options, download)
            self.pin(cert_sn, key)
            audit_log.certificate_pinned(cert_sn, "certificate download")
            return key

    def _refresh(self, cert_sn: str, options: AlipayOptions, download: Downloader) -> str:
        audit_log.certificate_refresh(cert_sn)
        try:
            result = download(cert_sn, options)
        except VerificationError as e:
            return self._reject(cert_sn, f"download response signature: {e}")

        if not is_trusted(result.cert_content, options.root_cert):
            return self._reject(cert_sn, "certificate chain is not issued by a trusted root")

        chain = order_chain(load_certificates(result.cert_content))
        leaf = chain[0]
        downloaded_sn = get_cert_sn(leaf)
        if downloaded_sn != cert_sn:
            return self._reject(cert_sn, f"downloaded certificate has serial number {downloaded_sn}")

        public_key = extract_public_key(leaf)
        if result.pending_check is not None:
            try:
                result.pending_check(public_key)
            except VerificationError as e:
                return self._reject(cert_sn, f"download response signature: {e}")

        logger.info("validated gateway certificate %s", cert_sn)
        return public_key

    def _reject(self, cert_sn: str, reason: str) -> str:
        audit_log.certificate_rejected(cert_sn, reason)
        raise UntrustedCertificateError(cert_sn, reason)
