"""
Alipay Gateway Client

Builds, signs and sends gateway requests, and verifies the replies.

Execution modes:
- page_execute:        browser redirect; returns a URL (GET) or an
                       auto-submitting HTML form (POST). No network call.
- execute:             server-to-server; reply verified with the static
                       gateway public key.
- certificate_execute: server-to-server; reply verified with the key of
                       the certificate that signed it (trust store).
- sdk_execute:         returns the signed, URL-encoded query string for a
                       client-side SDK. No network call.

Every mode produces the same canonical signing content for the same
parameters. All option checks happen before any crypto or network work.
"""

import html
import logging
from datetime import datetime
from enum import Enum
from typing import Callable, Optional, Tuple

from .constants import (
    ACCESS_TOKEN,
    ALIPAY_ROOT_CERT_SN,
    APP_AUTH_TOKEN,
    APP_CERT_SN,
    APP_ID,
    BIZ_CONTENT,
    CHARSET,
    ENCRYPT_TYPE,
    FORMAT,
    METHOD,
    NOTIFY_URL,
    PROD_CODE,
    RETURN_URL,
    SIGN,
    SIGN_TYPE,
    TERMINAL_INFO,
    TERMINAL_TYPE,
    TIMESTAMP,
    VERSION,
)
from .domain import serialize_biz_model
from .exceptions import ConfigurationError, EncryptionPreconditionError, UntrustedCertificateError
from .logging_config import audit_log
from .options import AlipayOptions
from .parameters import ParameterSet
from .parser import AlipayJsonParser
from .request import AlipayOpenAppAlipaycertDownloadRequest, AlipayRequest
from .response import AlipayResponse
from .signature import aes_encrypt, build_sign_content, check_encrypt_type, rsa_sign
from .transport import RequestsTransport, Transport
from .trust_store import CertificateDownload, TrustStore
from .verifier import ResponseVerifier

logger = logging.getLogger(__name__)


class ExecutionMode(str, Enum):
    PAGE = "page"
    EXECUTE = "execute"
    CERTIFICATE = "certificate"
    SDK = "sdk"


_BASE_OPTIONS = ("app_id", "sign_type", "app_private_key", "server_url")

REQUIRED_OPTIONS = {
    ExecutionMode.PAGE: _BASE_OPTIONS,
    ExecutionMode.SDK: _BASE_OPTIONS,
    ExecutionMode.EXECUTE: ("app_id", "sign_type", "alipay_public_key", "app_private_key", "server_url"),
    ExecutionMode.CERTIFICATE: (
        "app_id", "sign_type", "app_private_key", "app_cert", "alipay_public_cert", "root_cert", "server_url"
    ),
}


def check_options(options: Optional[AlipayOptions], mode: ExecutionMode) -> AlipayOptions:
    """
    Validate the options a mode needs.

    Raises:
        ConfigurationError: Naming the first missing option
    """
    if options is None:
        raise ConfigurationError("options")
    for name in REQUIRED_OPTIONS[mode]:
        if not getattr(options, name):
            raise ConfigurationError(name)
    return options


def build_html_request(params: ParameterSet, server_url: str, charset: str, method: str) -> str:
    """Build an auto-submitting HTML form posting params to the gateway."""
    separator = "&" if "?" in server_url else "?"
    action = html.escape(f"{server_url}{separator}charset={charset}", quote=True)
    parts = [f"<form id='submit' name='submit' action='{action}' method='{method}' style='display:none;'>"]
    for key, value in params.items():
        parts.append(f"<input  name='{html.escape(key, quote=True)}' value='{html.escape(value, quote=True)}'/>")
    parts.append("<input type='submit' style='display:none;'></form>")
    parts.append("<script>document.forms['submit'].submit();</script>")
    return "".join(parts)


def build_get_url(params: ParameterSet, server_url: str, charset: str) -> str:
    """Append the URL-encoded parameters (insertion order) to the gateway URL."""
    if not len(params):
        return server_url
    separator = "&" if "?" in server_url else "?"
    return server_url + separator + params.to_query_string(charset=charset)


class AlipayClient:
    """
    Gateway client.

    One client may serve many concurrent callers. The trust store is passed
    in so every client built for the same merchant shares one cache of
    trusted gateway certificates.

    Args:
        transport: Posts signed form fields (default: RequestsTransport)
        trust_store: Shared certificate trust store (default: a new one)
        parser: Response parser (default: AlipayJsonParser)
        clock: Returns the request timestamp (default: datetime.now)
    """

    def __init__(
        self,
        transport: Optional[Transport] = None,
        trust_store: Optional[TrustStore] = None,
        parser: Optional[AlipayJsonParser] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.transport = transport if transport is not None else RequestsTransport()
        self.trust_store = trust_store if trust_store is not None else TrustStore()
        self.parser = parser if parser is not None else AlipayJsonParser()
        self.verifier = ResponseVerifier(self.parser, self.trust_store)
        self._clock = clock or datetime.now

    # ============================================================
    # Request construction
    # ============================================================

    def build_request_params(
        self,
        request: AlipayRequest,
        options: AlipayOptions,
        mode: ExecutionMode,
        access_token: Optional[str] = None,
        app_auth_token: Optional[str] = None
    ) -> ParameterSet:
        """
        Merge protocol fields with the request's business fields.

        The result is ready to sign: biz_content is serialized and, when
        the request asks for it, encrypted.
        """
        params = ParameterSet(request.get_parameters())
        params.set(METHOD, request.api_name)
        params.set(VERSION, request.api_version or options.version)
        params.set(APP_ID, options.app_id)
        params.set(FORMAT, options.format)
        params.set(TIMESTAMP, self._clock())
        params.set(ACCESS_TOKEN, access_token)
        params.set(SIGN_TYPE, options.sign_type)
        params.set(TERMINAL_TYPE, request.terminal_type)
        params.set(TERMINAL_INFO, request.terminal_info)
        params.set(PROD_CODE, request.prod_code)
        params.set(NOTIFY_URL, request.notify_url)
        params.set(CHARSET, options.charset)

        if mode in (ExecutionMode.PAGE, ExecutionMode.SDK):
            params.set(RETURN_URL, request.return_url)

        if mode != ExecutionMode.EXECUTE:
            params.set(ALIPAY_ROOT_CERT_SN, options.root_cert_sn)
            params.set(APP_CERT_SN, options.app_cert_sn)

        if BIZ_CONTENT not in params and request.biz_model is not None:
            params.set(BIZ_CONTENT, serialize_biz_model(request.biz_model))

        params.set(APP_AUTH_TOKEN, app_auth_token)

        if request.need_encrypt:
            self._encrypt_biz_content(params, options)

        return params

    def _encrypt_biz_content(self, params: ParameterSet, options: AlipayOptions) -> None:
        content = params.get(BIZ_CONTENT)
        if not content:
            raise EncryptionPreconditionError(BIZ_CONTENT, "must not be empty when encryption is requested")
        if not options.encrypt_key:
            raise EncryptionPreconditionError("encrypt_key", "is required when encryption is requested")
        check_encrypt_type(options.encrypt_type)

        params.remove(BIZ_CONTENT)
        params.set(BIZ_CONTENT, aes_encrypt(content, options.encrypt_key, options.charset))
        params.set(ENCRYPT_TYPE, options.encrypt_type)

    def _sign(self, params: ParameterSet, request: AlipayRequest, options: AlipayOptions, mode: ExecutionMode) -> None:
        content = build_sign_content(params)
        params.set(SIGN, rsa_sign(content, options.app_private_key, options.charset, options.sign_type))
        audit_log.request_signed(request.api_name, options.app_id, mode.value, options.sign_type)

    def _send(self, request: AlipayRequest, options: AlipayOptions, params: ParameterSet) -> str:
        files = request.get_file_parameters()
        if files:
            return self.transport.post(options.server_url, params.to_dict(), files, options.charset)
        return self.transport.post(options.server_url, params.to_dict(), charset=options.charset)

    def _post_signed(
        self,
        request: AlipayRequest,
        options: AlipayOptions,
        mode: ExecutionMode,
        access_token: Optional[str],
        app_auth_token: Optional[str]
    ) -> Tuple[str, AlipayResponse]:
        params = self.build_request_params(request, options, mode, access_token, app_auth_token)
        self._sign(params, request, options, mode)
        body = self._send(request, options, params)

        item = self.parser.parse_item(request, body, options.encrypt_type, options.encrypt_key, options.charset)
        return item.resp_content, self.parser.parse(request, item.real_content)

    # ============================================================
    # Execution modes
    # ============================================================

    def page_execute(
        self,
        request: AlipayRequest,
        options: AlipayOptions,
        access_token: Optional[str] = None,
        req_method: str = "POST",
        app_auth_token: Optional[str] = None
    ) -> AlipayResponse:
        """
        Build a browser redirect.

        Returns a response whose body is the gateway URL with the signed
        query string (GET) or an auto-submitting HTML form (POST). Upload
        requests are posted directly. No response verification happens.
        """
        check_options(options, ExecutionMode.PAGE)
        params = self.build_request_params(request, options, ExecutionMode.PAGE, access_token, app_auth_token)
        self._sign(params, request, options, ExecutionMode.PAGE)

        if request.get_file_parameters():
            body = self._send(request, options, params)
        elif req_method.upper() == "GET":
            body = build_get_url(params, options.server_url, options.charset)
        else:
            body = build_html_request(params, options.server_url, options.charset, req_method)

        return self.parser.parse(request, body)

    def execute(
        self,
        request: AlipayRequest,
        options: AlipayOptions,
        access_token: Optional[str] = None,
        app_auth_token: Optional[str] = None
    ) -> AlipayResponse:
        """
        Send a signed request and verify the reply with the static gateway key.

        Raises:
            ConfigurationError: Missing option
            EncryptionPreconditionError, UnsupportedEncryptionError: Bad encryption setup
            SigningError: Malformed private key
            VerificationError: Reply signature does not verify
        """
        check_options(options, ExecutionMode.EXECUTE)
        body, response = self._post_signed(request, options, ExecutionMode.EXECUTE, access_token, app_auth_token)
        self.verifier.check_response_sign(request, body, response.is_error, options)
        return response

    def certificate_execute(
        self,
        request: AlipayRequest,
        options: AlipayOptions,
        access_token: Optional[str] = None,
        app_auth_token: Optional[str] = None
    ) -> AlipayResponse:
        """
        Send a signed request in certificate mode.

        The reply is verified with the key of the gateway certificate that
        signed it; an unseen certificate is downloaded, validated against
        the root bundle and pinned first.

        Raises:
            UntrustedCertificateError: The signing certificate cannot be trusted
            VerificationError: Reply signature does not verify
        """
        check_options(options, ExecutionMode.CERTIFICATE)
        body, response = self._post_signed(request, options, ExecutionMode.CERTIFICATE, access_token, app_auth_token)
        self.verifier.check_response_cert_sign(request, body, response.is_error, options, self._download_certificate)
        return response

    def sdk_execute(self, request: AlipayRequest, options: AlipayOptions) -> AlipayResponse:
        """
        Build the signed query string for a client-side SDK.

        Parameters are signed and emitted in key order; the string is
        returned as the response body. No network call is made.
        """
        check_options(options, ExecutionMode.SDK)
        params = self.build_request_params(request, options, ExecutionMode.SDK).sorted_view()
        self._sign(params, request, options, ExecutionMode.SDK)

        response = request.response_class()
        response.body = params.to_query_string(charset=options.charset)
        return response

    # ============================================================
    # Certificate refresh
    # ============================================================

    def _download_certificate(self, cert_sn: str, options: AlipayOptions) -> CertificateDownload:
        """
        Download a gateway certificate for the trust store.

        Signed with the local app credentials in certificate mode. The reply
        is checked with already trusted keys only, so the download never
        triggers another refresh.
        """
        request = AlipayOpenAppAlipaycertDownloadRequest(alipay_cert_sn=cert_sn)
        body, response = self._post_signed(request, options, ExecutionMode.CERTIFICATE, None, None)

        if response.is_error:
            audit_log.certificate_rejected(cert_sn, f"download failed: {response.sub_code}")
            raise UntrustedCertificateError(
                cert_sn, f"certificate download failed: {response.sub_code} {response.sub_msg}".strip()
            )

        cert_content = getattr(response, "alipay_cert_content", "")
        if not cert_content:
            raise UntrustedCertificateError(cert_sn, "certificate download returned no certificate")

        pending_check = self.verifier.check_download_sign(request, body, options, cert_sn)
        return CertificateDownload(cert_content=cert_content, pending_check=pending_check)
