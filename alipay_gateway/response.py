"""
Alipay Response Types

Response objects are data carriers. The client only relies on the common
envelope fields and the is_error flag; endpoint responses add their own
fields by subclassing.
"""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional


@dataclass
class AlipayResponse:
    """Common gateway response envelope."""
    code: str = ""
    msg: str = ""
    sub_code: str = ""
    sub_msg: str = ""
    body: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_error(self) -> bool:
        """A non-empty sub_code marks a business-level error."""
        return bool(self.sub_code)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]], body: str = "") -> "AlipayResponse":
        """Build a response from a decoded response node; unknown keys land in extra."""
        data = data or {}
        known = {f.name for f in fields(cls)} - {"body", "extra"}
        kwargs = {k: v for k, v in data.items() if k in known}
        extra = {k: v for k, v in data.items() if k not in known}
        return cls(body=body, extra=extra, **kwargs)


@dataclass
class AlipayOpenAppAlipaycertDownloadResponse(AlipayResponse):
    """Gateway certificate download result (base64 encoded PEM chain)."""
    alipay_cert_content: str = ""
