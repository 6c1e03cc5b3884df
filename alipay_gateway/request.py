"""
Alipay Request Types

A request carries the API name, business payload and per-request protocol
fields. The client never inspects request types; it queries capabilities:

- get_file_parameters()  -> attachments for a multipart upload, or None
- need_encrypt           -> whether biz_content must be AES encrypted
- api_version            -> explicit version overriding the options default
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional, Type

from .constants import BIZ_CONTENT, CERT_DOWNLOAD_METHOD
from .domain import AlipayOpenAppAlipaycertDownloadModel, BizModel
from .response import AlipayOpenAppAlipaycertDownloadResponse, AlipayResponse


@dataclass
class FileItem:
    """A file attachment of an upload request."""
    file_name: str
    content: bytes
    mime_type: str = "application/octet-stream"

    @classmethod
    def from_path(cls, path: str, mime_type: str = "application/octet-stream") -> "FileItem":
        with open(path, "rb") as f:
            return cls(file_name=os.path.basename(path), content=f.read(), mime_type=mime_type)


class AlipayRequest:
    """
    Generic gateway request.

    Args:
        api_name: Gateway method, e.g. "alipay.trade.query"
        biz_model: Business model serialized into biz_content
        biz_content: Raw biz_content; takes precedence over biz_model
        text_params: Additional top-level form fields
        notify_url: Asynchronous notification URL
        return_url: Browser return URL (page mode)
        api_version: Overrides options.version
        terminal_type, terminal_info, prod_code: Optional protocol fields
        need_encrypt: AES-encrypt biz_content before signing
        response_class: Response type built from the gateway reply
    """

    api_name: str = ""
    response_class: Type[AlipayResponse] = AlipayResponse

    def __init__(
        self,
        api_name: Optional[str] = None,
        biz_model: Optional[BizModel] = None,
        biz_content: Optional[str] = None,
        text_params: Optional[Dict[str, Any]] = None,
        notify_url: Optional[str] = None,
        return_url: Optional[str] = None,
        api_version: Optional[str] = None,
        terminal_type: Optional[str] = None,
        terminal_info: Optional[str] = None,
        prod_code: Optional[str] = None,
        need_encrypt: bool = False,
        response_class: Optional[Type[AlipayResponse]] = None
    ):
        if api_name:
            self.api_name = api_name
        if response_class:
            self.response_class = response_class
        self.biz_model = biz_model
        self.biz_content = biz_content
        self.text_params = dict(text_params or {})
        self.notify_url = notify_url
        self.return_url = return_url
        self.api_version = api_version
        self.terminal_type = terminal_type
        self.terminal_info = terminal_info
        self.prod_code = prod_code
        self.need_encrypt = need_encrypt

    def get_parameters(self) -> Dict[str, Any]:
        """Business-level form fields (biz_content plus any extra text params)."""
        params = dict(self.text_params)
        if self.biz_content:
            params[BIZ_CONTENT] = self.biz_content
        return params

    def get_file_parameters(self) -> Optional[Dict[str, FileItem]]:
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(api_name={self.api_name!r})"


class AlipayUploadRequest(AlipayRequest):
    """Request that posts file attachments as multipart/form-data."""

    def __init__(self, api_name: Optional[str] = None, file_params: Optional[Dict[str, FileItem]] = None, **kwargs):
        super().__init__(api_name, **kwargs)
        self.file_params = dict(file_params or {})

    def get_file_parameters(self) -> Optional[Dict[str, FileItem]]:
        return {name: item for name, item in self.file_params.items() if item is not None}


class AlipayOpenAppAlipaycertDownloadRequest(AlipayRequest):
    """Downloads a gateway public key certificate by serial number."""

    api_name = CERT_DOWNLOAD_METHOD
    response_class = AlipayOpenAppAlipaycertDownloadResponse

    def __init__(self, alipay_cert_sn: str, **kwargs):
        super().__init__(biz_model=AlipayOpenAppAlipaycertDownloadModel(alipay_cert_sn=alipay_cert_sn), **kwargs)
