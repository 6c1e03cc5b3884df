"""
Configuration module for the Alipay gateway client.

Centralizes environment-driven configuration. Keys and certificates may
be supplied inline (ALIPAY_APP_PRIVATE_KEY) or as a file path
(ALIPAY_APP_PRIVATE_KEY_PATH); the inline value wins.
"""

import os
from pathlib import Path
from typing import Dict, Optional

from .constants import DEFAULT_CHARSET, DEFAULT_FORMAT, DEFAULT_SERVER_URL, DEFAULT_VERSION, SIGN_TYPE_RSA2
from .options import AlipayOptions

# ============================================================
# Environment Configuration
# ============================================================

ENV = os.getenv("ALIPAY_ENV", "dev")  # dev|sandbox|prod

SANDBOX_SERVER_URL = "https://openapi-sandbox.dl.alipaydev.com/gateway.do"

SERVER_URL = os.getenv(
    "ALIPAY_SERVER_URL",
    SANDBOX_SERVER_URL if ENV == "sandbox" else DEFAULT_SERVER_URL
)
SIGN_TYPE = os.getenv("ALIPAY_SIGN_TYPE", SIGN_TYPE_RSA2)
CHARSET = os.getenv("ALIPAY_CHARSET", DEFAULT_CHARSET)
FORMAT = os.getenv("ALIPAY_FORMAT", DEFAULT_FORMAT)
VERSION = os.getenv("ALIPAY_VERSION", DEFAULT_VERSION)

# Transport timeout (seconds)
HTTP_TIMEOUT = float(os.getenv("ALIPAY_HTTP_TIMEOUT", "15"))

# Key and certificate material: inline variable, then *_PATH file variable
MATERIAL_VARIABLES = {
    "app_private_key": "ALIPAY_APP_PRIVATE_KEY",
    "alipay_public_key": "ALIPAY_PUBLIC_KEY",
    "app_cert": "ALIPAY_APP_CERT",
    "alipay_public_cert": "ALIPAY_PUBLIC_CERT",
    "root_cert": "ALIPAY_ROOT_CERT",
    "encrypt_key": "ALIPAY_ENCRYPT_KEY",
}


# ============================================================
# Loaders
# ============================================================

def read_material(name: str, environ: Optional[Dict[str, str]] = None) -> str:
    """
    Read one key or certificate from the environment.

    Args:
        name: Variable name, e.g. "ALIPAY_APP_CERT"
        environ: Mapping to read from (default: os.environ)

    Returns:
        Inline value, else the content of the file named by NAME_PATH, else ""
    """
    environ = os.environ if environ is None else environ
    inline = environ.get(name, "")
    if inline:
        return inline.strip()

    path = environ.get(f"{name}_PATH", "")
    if path:
        return Path(path).read_text(encoding="utf-8").strip()

    return ""


def load_options(environ: Optional[Dict[str, str]] = None) -> AlipayOptions:
    """
    Build AlipayOptions from ALIPAY_* environment variables.

    Missing values are left empty; the client reports them as
    ConfigurationError when a call needs them.
    """
    environ = os.environ if environ is None else environ
    material = {field: read_material(var, environ) for field, var in MATERIAL_VARIABLES.items()}

    return AlipayOptions(
        app_id=environ.get("ALIPAY_APP_ID", ""),
        sign_type=environ.get("ALIPAY_SIGN_TYPE", SIGN_TYPE),
        charset=environ.get("ALIPAY_CHARSET", CHARSET),
        format=environ.get("ALIPAY_FORMAT", FORMAT),
        version=environ.get("ALIPAY_VERSION", VERSION),
        server_url=environ.get("ALIPAY_SERVER_URL", SERVER_URL),
        encrypt_type=environ.get("ALIPAY_ENCRYPT_TYPE", ""),
        app_cert_sn=environ.get("ALIPAY_APP_CERT_SN", ""),
        alipay_public_cert_sn=environ.get("ALIPAY_PUBLIC_CERT_SN", ""),
        root_cert_sn=environ.get("ALIPAY_ROOT_CERT_SN", ""),
        **material,
    )


# ============================================================
# Validation
# ============================================================

def validate_config(options: AlipayOptions) -> Dict[str, bool]:
    """
    Report which options are present.
    Returns dict of option name -> configured.
    """
    checks = {
        "app_id": bool(options.app_id),
        "app_private_key": bool(options.app_private_key),
        "server_url": bool(options.server_url),
        "alipay_public_key": bool(options.alipay_public_key),
    }

    if options.app_cert or options.alipay_public_cert or options.root_cert:
        checks["app_cert"] = bool(options.app_cert)
        checks["alipay_public_cert"] = bool(options.alipay_public_cert)
        checks["root_cert"] = bool(options.root_cert)

    if options.encrypt_type or options.encrypt_key:
        checks["encrypt_key"] = bool(options.encrypt_key)
        checks["encrypt_type"] = bool(options.encrypt_type)

    return checks


# ============================================================
# Feature Flags
# ============================================================

def is_production() -> bool:
    """Check if running in production mode."""
    return ENV == "prod"


def is_debug() -> bool:
    """Check if debug mode is enabled."""
    return os.getenv("ALIPAY_DEBUG", "").lower() in ("1", "true", "yes")
