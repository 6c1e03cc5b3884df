"""
Alipay Signature Engine

RSA signing and verification over the canonical signing content, and AES
encryption of the business payload.

- RSA  -> SHA1withRSA (legacy)
- RSA2 -> SHA256withRSA
- Padding is PKCS#1 v1.5; signatures are base64 encoded.
- AES is ECB with PKCS#7 padding; the key is base64 decoded before use.
"""

import binascii
from typing import Mapping, Union

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives import padding as sym_padding
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .constants import DEFAULT_CHARSET, ENCRYPT_TYPE_AES, SIGN, SIGN_TYPE_RSA, SIGN_TYPE_RSA2
from .exceptions import SigningError, UnsupportedEncryptionError
from .parameters import ParameterSet
from .util import b64d, b64e, is_pem

_HASHES = {
    SIGN_TYPE_RSA: hashes.SHA1,
    SIGN_TYPE_RSA2: hashes.SHA256,
}


def build_sign_content(params: Union[ParameterSet, Mapping[str, str]]) -> str:
    """
    Build the canonical signing content.

    Keys are sorted byte-wise, the sign field and empty values are
    excluded, and values are NOT URL-encoded. The verifier must rebuild
    exactly this string.
    """
    if not isinstance(params, ParameterSet):
        params = ParameterSet(params)
    return "&".join(
        f"{key}={value}"
        for key, value in params.sorted_view().items()
        if key != SIGN and value
    )


def _hash_for(sign_type: str) -> hashes.HashAlgorithm:
    try:
        return _HASHES[sign_type]()
    except KeyError:
        raise SigningError(f"unknown sign_type: {sign_type!r} (expected RSA or RSA2)") from None


def load_private_key(private_key: str) -> rsa.RSAPrivateKey:
    """
    Load an RSA private key.

    Accepts PEM text or bare base64 DER in PKCS#8 or PKCS#1 form, which
    is how the merchant console hands keys out.
    """
    if not private_key:
        raise SigningError("private key is empty")
    try:
        if is_pem(private_key):
            key = serialization.load_pem_private_key(private_key.encode("ascii"), password=None)
        else:
            key = serialization.load_der_private_key(b64d(private_key), password=None)
    except (ValueError, TypeError, binascii.Error, UnsupportedAlgorithm) as e:
        raise SigningError(f"cannot parse private key: {e}") from e
    if not isinstance(key, rsa.RSAPrivateKey):
        raise SigningError("private key is not an RSA key")
    return key


def load_public_key(public_key: str) -> rsa.RSAPublicKey:
    """Load an RSA public key from PEM text or base64 DER (SPKI or PKCS#1)."""
    if not public_key:
        raise SigningError("public key is empty")
    try:
        if is_pem(public_key):
            key = serialization.load_pem_public_key(public_key.encode("ascii"))
        else:
            key = serialization.load_der_public_key(b64d(public_key))
    except (ValueError, TypeError, binascii.Error, UnsupportedAlgorithm) as e:
        raise SigningError(f"cannot parse public key: {e}") from e
    if not isinstance(key, rsa.RSAPublicKey):
        raise SigningError("public key is not an RSA key")
    return key


def rsa_sign(
    content: str,
    private_key: str,
    charset: str = DEFAULT_CHARSET,
    sign_type: str = SIGN_TYPE_RSA2
) -> str:
    """
    Sign content with the app private key.

    Args:
        content: Canonical signing content
        private_key: PEM or base64 DER private key
        charset: Encoding applied to content before hashing
        sign_type: RSA or RSA2

    Returns:
        Base64-encoded signature

    Raises:
        SigningError: If the key cannot be parsed or sign_type is unknown
    """
    algorithm = _hash_for(sign_type)
    key = load_private_key(private_key)
    signature = key.sign(content.encode(charset), padding.PKCS1v15(), algorithm)
    return b64e(signature)


def rsa_verify(
    content: str,
    sign: str,
    public_key: str,
    charset: str = DEFAULT_CHARSET,
    sign_type: str = SIGN_TYPE_RSA2
) -> bool:
    """
    Verify a base64 RSA signature over content.

    Returns False for a signature that simply does not match. Raises
    SigningError only for malformed key or signature encoding.
    """
    algorithm = _hash_for(sign_type)
    key = load_public_key(public_key)
    try:
        signature = b64d(sign)
    except (ValueError, binascii.Error) as e:
        raise SigningError(f"signature is not valid base64: {e}") from e
    try:
        key.verify(signature, content.encode(charset), padding.PKCS1v15(), algorithm)
        return True
    except InvalidSignature:
        return False


def check_encrypt_type(encrypt_type: str) -> None:
    """Reject any encryption algorithm tag other than AES."""
    if encrypt_type != ENCRYPT_TYPE_AES:
        raise UnsupportedEncryptionError(encrypt_type)


def _aes_cipher(key: str) -> Cipher:
    try:
        raw = b64d(key)
        return Cipher(algorithms.AES(raw), modes.ECB())
    except (ValueError, binascii.Error) as e:
        raise UnsupportedEncryptionError(ENCRYPT_TYPE_AES, f"invalid AES key: {e}") from e


def aes_encrypt(plaintext: str, key: str, charset: str = DEFAULT_CHARSET) -> str:
    """Encrypt a payload field; returns base64 ciphertext."""
    encryptor = _aes_cipher(key).encryptor()
    padder = sym_padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(plaintext.encode(charset)) + padder.finalize()
    return b64e(encryptor.update(padded) + encryptor.finalize())


def aes_decrypt(ciphertext: str, key: str, charset: str = DEFAULT_CHARSET) -> str:
    """Decrypt a base64 payload field produced by aes_encrypt or the gateway."""
    decryptor = _aes_cipher(key).decryptor()
    try:
        padded = decryptor.update(b64d(ciphertext)) + decryptor.finalize()
        unpadder = sym_padding.PKCS7(algorithms.AES.block_size).unpadder()
        plain = (unpadder.update(padded) + unpadder.finalize()).decode(charset)
    except (ValueError, binascii.Error) as e:
        raise UnsupportedEncryptionError(ENCRYPT_TYPE_AES, f"cannot decrypt payload: {e}") from e
    return plain
