"""
Alipay JSON Response Parser

Gateway replies look like:

    {"alipay_trade_query_response":{...},"alipay_cert_sn":"...","sign":"..."}

The gateway signs the literal text of the response node value, so the
signable fragment is cut out of the body exactly as received rather than
re-serialized. Error replies use the "error_response" node instead.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from .constants import ALIPAY_CERT_SN, DEFAULT_CHARSET, ERROR_RESPONSE, RESPONSE_SUFFIX, SIGN
from .request import AlipayRequest
from .response import AlipayResponse
from .signature import aes_decrypt, check_encrypt_type

logger = logging.getLogger(__name__)

_decoder = json.JSONDecoder()


@dataclass
class SignItem:
    """Signed fragment of a response and its signature."""
    sign_source: str
    sign: str


@dataclass
class CertItem(SignItem):
    """Signed fragment, signature and the signer's certificate SN."""
    cert_sn: str = ""


@dataclass
class ResponseParseItem:
    """Content used to build the response object, and the raw body."""
    real_content: str
    resp_content: str


def root_node_name(request: AlipayRequest) -> str:
    """Response node name for a request, e.g. alipay_trade_query_response."""
    return request.api_name.replace(".", "_") + RESPONSE_SUFFIX


def _load(body: str) -> Optional[Dict[str, Any]]:
    if not body:
        return None
    try:
        data = json.loads(body)
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def _locate_node(body: str, node: str) -> Optional[Tuple[int, int]]:
    """Return (start, end) of the literal JSON value of a top-level node."""
    key = f'"{node}"'
    index = body.find(key)
    if index < 0:
        return None

    pos = index + len(key)
    while pos < len(body) and body[pos] in " \t\r\n":
        pos += 1
    if pos >= len(body) or body[pos] != ":":
        return None
    pos += 1
    while pos < len(body) and body[pos] in " \t\r\n":
        pos += 1

    try:
        _, end = _decoder.raw_decode(body, pos)
    except ValueError:
        return None
    return pos, end


class AlipayJsonParser:
    """Parses gateway JSON replies and extracts their signed fragments."""

    def parse(self, request: AlipayRequest, body: str) -> AlipayResponse:
        """
        Build the request's response object.

        Bodies that are not JSON (page mode URLs and forms, SDK strings)
        produce an empty response carrying only the body.
        """
        response_class = request.response_class
        data = _load(body)
        if data is None:
            return response_class(body=body)

        node = data.get(root_node_name(request))
        if node is None:
            node = data.get(ERROR_RESPONSE)
        if not isinstance(node, dict):
            node = {}
        return response_class.from_dict(node, body=body)

    def _signed_fragment(self, request: AlipayRequest, body: str) -> Optional[Tuple[str, Dict[str, Any]]]:
        data = _load(body)
        if data is None:
            return None

        for node in (root_node_name(request), ERROR_RESPONSE):
            if node in data:
                span = _locate_node(body, node)
                if span is None:
                    return None
                start, end = span
                return body[start:end], data
        return None

    def get_sign_item(self, request: AlipayRequest, body: str) -> Optional[SignItem]:
        fragment = self._signed_fragment(request, body)
        if fragment is None:
            return None
        source, data = fragment
        return SignItem(sign_source=source, sign=data.get(SIGN) or "")

    def get_cert_item(self, request: AlipayRequest, body: str) -> Optional[CertItem]:
        fragment = self._signed_fragment(request, body)
        if fragment is None:
            return None
        source, data = fragment
        return CertItem(
            sign_source=source,
            sign=data.get(SIGN) or "",
            cert_sn=data.get(ALIPAY_CERT_SN) or ""
        )

    def decrypt_source_data(
        self,
        request: AlipayRequest,
        body: str,
        encrypt_type: str,
        encrypt_key: str,
        charset: str = DEFAULT_CHARSET
    ) -> str:
        """
        Decrypt an encrypted response node.

        The node value is a JSON string holding base64 ciphertext; the result
        is {"<node>":<plaintext>}. Unencrypted nodes (error replies) are
        returned unchanged.
        """
        check_encrypt_type(encrypt_type)
        data = _load(body)
        node = root_node_name(request)
        if data is None or not isinstance(data.get(node), str):
            return body

        plaintext = aes_decrypt(data[node], encrypt_key, charset)
        logger.debug("decrypted %s node (%d chars)", node, len(plaintext))
        return '{"' + node + '":' + plaintext + '}'

    def parse_item(
        self,
        request: AlipayRequest,
        body: str,
        encrypt_type: str = "",
        encrypt_key: str = "",
        charset: str = DEFAULT_CHARSET
    ) -> ResponseParseItem:
        """Pair the raw body with the content the response object is built from."""
        if request.need_encrypt:
            real_content = self.decrypt_source_data(request, body, encrypt_type, encrypt_key, charset)
        else:
            real_content = body
        return ResponseParseItem(real_content=real_content, resp_content=body)
