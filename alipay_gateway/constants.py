"""
Alipay Gateway Wire Constants

Field names and tags exactly as the gateway expects them on the wire.
"""

# Protocol request fields
APP_ID = "app_id"
FORMAT = "format"
METHOD = "method"
TIMESTAMP = "timestamp"
VERSION = "version"
SIGN_TYPE = "sign_type"
ACCESS_TOKEN = "auth_token"
SIGN = "sign"
TERMINAL_TYPE = "terminal_type"
TERMINAL_INFO = "terminal_info"
CHARSET = "charset"
NOTIFY_URL = "notify_url"
RETURN_URL = "return_url"
ENCRYPT_TYPE = "encrypt_type"
BIZ_CONTENT = "biz_content"
APP_AUTH_TOKEN = "app_auth_token"
PROD_CODE = "prod_code"
APP_CERT_SN = "app_cert_sn"
ALIPAY_ROOT_CERT_SN = "alipay_root_cert_sn"

# Response envelope
RESPONSE_SUFFIX = "_response"
ERROR_RESPONSE = "error_response"
ALIPAY_CERT_SN = "alipay_cert_sn"

# Sign types
SIGN_TYPE_RSA = "RSA"
SIGN_TYPE_RSA2 = "RSA2"

# Encryption
ENCRYPT_TYPE_AES = "AES"

# Defaults
DEFAULT_FORMAT = "json"
DEFAULT_CHARSET = "utf-8"
DEFAULT_VERSION = "1.0"
DEFAULT_SERVER_URL = "https://openapi.alipay.com/gateway.do"

DATE_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

# Certificate download endpoint used by the trust store refresh
CERT_DOWNLOAD_METHOD = "alipay.open.app.alipaycert.download"
