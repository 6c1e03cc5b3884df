"""
Alipay Certificate Utilities

Parses gateway and merchant X.509 certificates, derives the serial-number
identifiers the gateway uses on the wire, and validates a downloaded
gateway certificate chain against the locally configured root bundle.

Certificate SN = md5(issuer DN + decimal serial number), where the issuer
DN is rendered most-specific attribute first (CN=...,OU=...,O=...,C=...).
"""

import binascii
import logging
from datetime import datetime, timezone
from typing import List, Optional

from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization

from .util import b64d, b64e, is_pem, md5_hex

logger = logging.getLogger(__name__)

# Root bundles also carry SM2 roots; only RSA-signed roots identify the RSA chain.
RSA_SIGNATURE_OIDS = (
    "1.2.840.113549.1.1.5",   # sha1WithRSAEncryption
    "1.2.840.113549.1.1.11",  # sha256WithRSAEncryption
)


def load_certificates(content: str) -> List[x509.Certificate]:
    """
    Load every certificate in a PEM bundle.

    The certificate download endpoint returns the PEM base64 encoded a
    second time; both forms are accepted.

    Raises:
        ValueError: If no certificate can be parsed
    """
    if not content:
        raise ValueError("certificate content is empty")
    if is_pem(content):
        data = content.encode("ascii")
    else:
        try:
            data = b64d(content)
        except binascii.Error as e:
            raise ValueError(f"certificate content is neither PEM nor base64: {e}") from e
    return x509.load_pem_x509_certificates(data)


def load_certificate(content: str) -> x509.Certificate:
    """Load the first certificate of a PEM bundle."""
    return load_certificates(content)[0]


def issuer_dn(cert: x509.Certificate) -> str:
    """Render the issuer DN most-specific attribute first, unescaped."""
    parts = []
    for rdn in reversed(list(cert.issuer.rdns)):
        for attr in rdn:
            parts.append(f"{attr.rfc4514_attribute_name}={attr.value}")
    return ",".join(parts)


def get_cert_sn(cert: x509.Certificate) -> str:
    """Compute the gateway serial-number identifier of a certificate."""
    return md5_hex(issuer_dn(cert) + str(cert.serial_number))


def get_cert_sn_from_content(content: str) -> str:
    return get_cert_sn(load_certificate(content))


def get_root_cert_sn(root_content: str) -> str:
    """
    Compute the root certificate SN string.

    Only RSA-signed roots take part; their SNs are joined with '_'.
    """
    sns = [
        get_cert_sn(cert)
        for cert in load_certificates(root_content)
        if cert.signature_algorithm_oid.dotted_string in RSA_SIGNATURE_OIDS
    ]
    return "_".join(sns)


def extract_public_key(cert: x509.Certificate) -> str:
    """Return the certificate's public key as base64 DER SubjectPublicKeyInfo."""
    der = cert.public_key().public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo
    )
    return b64e(der)


def _is_valid_at(cert: x509.Certificate, now: datetime) -> bool:
    return cert.not_valid_before_utc <= now <= cert.not_valid_after_utc


def _issued_by(cert: x509.Certificate, issuer: x509.Certificate) -> bool:
    try:
        cert.verify_directly_issued_by(issuer)
        return True
    except (ValueError, TypeError, InvalidSignature, UnsupportedAlgorithm):
        return False


def _can_issue(issuer: x509.Certificate, intermediates: int) -> bool:
    """
    Check that a certificate may sign others.

    intermediates is the number of CA certificates between issuer and the
    leaf; it must fit the issuer's path length constraint.
    """
    try:
        constraints = issuer.extensions.get_extension_for_class(x509.BasicConstraints).value
    except x509.ExtensionNotFound:
        return False
    if not constraints.ca:
        return False
    if constraints.path_length is not None and intermediates > constraints.path_length:
        return False

    try:
        usage = issuer.extensions.get_extension_for_class(x509.KeyUsage).value
    except x509.ExtensionNotFound:
        return True
    return usage.key_cert_sign


def order_chain(chain: List[x509.Certificate]) -> Optional[List[x509.Certificate]]:
    """
    Order a certificate chain leaf first.

    Returns None when the certificates do not form a single linear chain.
    """
    if len(chain) == 1:
        return list(chain)

    subjects = {cert.subject: cert for cert in chain}
    issuers = {cert.issuer for cert in chain if cert.issuer != cert.subject}
    leaves = [cert for cert in chain if cert.subject not in issuers]
    if len(leaves) != 1:
        return None

    ordered = [leaves[0]]
    while len(ordered) < len(chain):
        parent = subjects.get(ordered[-1].issuer)
        if parent is None or parent in ordered:
            return None
        ordered.append(parent)
    return ordered


def is_trusted(cert_content: str, root_content: str, now: Optional[datetime] = None) -> bool:
    """
    Validate a gateway certificate chain against the trusted root bundle.

    Rules:
    - The chain must parse and form one linear chain (leaf first)
    - Every certificate must be inside its validity window
    - Every link must be signed by the next certificate in the chain
    - Every issuer must be a CA within its path length, with keyCertSign
      when it carries a KeyUsage extension
    - The top certificate must be a trusted root or directly issued by one

    Args:
        cert_content: PEM (or base64 PEM) of the downloaded chain
        root_content: PEM bundle of trusted roots
        now: Validation time (default: current UTC time)

    Returns:
        True if the chain is trusted, False otherwise
    """
    now = now or datetime.now(timezone.utc)
    try:
        chain = load_certificates(cert_content)
        roots = load_certificates(root_content)
    except ValueError as e:
        logger.warning("certificate parse failed: %s", e)
        return False

    ordered = order_chain(chain)
    if not ordered:
        logger.warning("certificate chain is not linear (%d certs)", len(chain))
        return False

    for cert in ordered:
        if not _is_valid_at(cert, now):
            logger.warning("certificate %s outside validity window", get_cert_sn(cert))
            return False

    for depth, (child, parent) in enumerate(zip(ordered, ordered[1:])):
        if not _issued_by(child, parent):
            logger.warning("certificate %s not signed by its issuer", get_cert_sn(child))
            return False
        if not _can_issue(parent, depth):
            logger.warning("certificate %s is not allowed to issue %s", get_cert_sn(parent), get_cert_sn(child))
            return False

    top = ordered[-1]
    for root in roots:
        if top == root:
            return True
        if (top.issuer == root.subject and _is_valid_at(root, now) and _issued_by(top, root)
                and _can_issue(root, len(ordered) - 1)):
            return True

    logger.warning("certificate chain does not end at a trusted root")
    return False
