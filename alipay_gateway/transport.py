"""
Alipay HTTP Transport

Sends form fields (and optional attachments) to the gateway and returns
the response body as text. Carries no protocol knowledge; timeouts and
HTTP errors surface as requests exceptions, unchanged.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Mapping, Optional

import requests

from .config import HTTP_TIMEOUT
from .constants import DEFAULT_CHARSET
from .request import FileItem

logger = logging.getLogger(__name__)


class Transport(ABC):
    """Abstract interface for posting a signed request."""

    @abstractmethod
    def post(
        self,
        url: str,
        fields: Mapping[str, str],
        files: Optional[Mapping[str, FileItem]] = None,
        charset: str = DEFAULT_CHARSET
    ) -> str:
        """
        Post form fields to url.

        Args:
            url: Gateway URL
            fields: Form fields, already signed
            files: Attachments; when present the body is multipart/form-data
            charset: Charset of the request and response

        Returns:
            Response body text
        """
        pass


class RequestsTransport(Transport):
    """Transport backed by a requests.Session."""

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = HTTP_TIMEOUT):
        self._session = session if session is not None else requests.Session()
        self._timeout = timeout

    def post(
        self,
        url: str,
        fields: Mapping[str, str],
        files: Optional[Mapping[str, FileItem]] = None,
        charset: str = DEFAULT_CHARSET
    ) -> str:
        multipart: Optional[Dict[str, tuple]] = None
        if files:
            multipart = {
                name: (item.file_name, item.content, item.mime_type)
                for name, item in files.items()
            }

        logger.debug("POST %s (%d fields, %d files)", url, len(fields), len(multipart or {}))
        response = self._session.post(
            url,
            data={key: value.encode(charset) for key, value in fields.items()},
            files=multipart,
            headers=None if multipart else {
                "Content-Type": f"application/x-www-form-urlencoded;charset={charset}"
            },
            timeout=self._timeout,
        )
        response.raise_for_status()
        return response.content.decode(charset)

    def close(self) -> None:
        self._session.close()
