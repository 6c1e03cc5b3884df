"""
Alipay Business Models and Payload Serialization

Business models are plain dataclasses (or dicts) serialized into the
biz_content field. The serialization policy is part of what gets signed:

- Compact form, no whitespace between tokens
- None values omitted at every nesting level
- Minimal escaping: non-ASCII, '/', '<', '>' and '&' are written as-is
- Field order preserved as declared
"""

import json
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .constants import DATE_TIME_FORMAT

BizModel = Union[Dict[str, Any], Any]


def serialize_biz_model(model: BizModel) -> str:
    """
    Serialize a business model into the biz_content JSON text.

    Dataclass fields may rename themselves on the wire with
    field(metadata={"json": "wire_name"}).
    """
    return json.dumps(_to_wire(model), separators=(',', ':'), ensure_ascii=False)


def _to_wire(value: Any) -> Any:
    """Recursively convert a value to JSON-ready data, dropping None."""
    if isinstance(value, Enum):
        return _to_wire(value.value)
    elif value is None or isinstance(value, (bool, int, float, str)):
        return value
    elif isinstance(value, Decimal):
        return str(value)
    elif isinstance(value, datetime):
        return value.strftime(DATE_TIME_FORMAT)
    elif isinstance(value, date):
        return value.isoformat()
    elif is_dataclass(value) and not isinstance(value, type):
        return _dataclass_to_wire(value)
    elif isinstance(value, dict):
        return {str(k): _to_wire(v) for k, v in value.items() if v is not None}
    elif isinstance(value, (list, tuple)):
        return [_to_wire(item) for item in value]
    else:
        raise ValueError(f"Cannot serialize type: {type(value)}")


def _dataclass_to_wire(obj: Any) -> Dict[str, Any]:
    result = {}
    for f in fields(obj):
        value = getattr(obj, f.name)
        if value is None:
            continue
        result[f.metadata.get("json", f.name)] = _to_wire(value)
    return result


@dataclass
class AlipayOpenAppAlipaycertDownloadModel:
    """Business model of the gateway certificate download."""
    alipay_cert_sn: str


@dataclass
class Participant:
    """Transfer payee or payer."""
    identity: Optional[str] = None
    identity_type: Optional[str] = None
    name: Optional[str] = None
    bankcard_ext_info: Optional[Dict[str, Any]] = None


@dataclass
class TransOrderDetail:
    """One transfer order inside a batch transfer."""
    out_biz_no: Optional[str] = None
    trans_amount: Optional[str] = None
    order_title: Optional[str] = None
    payee_info: Optional[Participant] = None
    remark: Optional[str] = None
    business_params: Optional[str] = None
    passback_params: Optional[str] = None


@dataclass
class AlipayFundBatchUniTransferModel:
    """Business model of a batch transfer."""
    out_batch_no: Optional[str] = None
    product_code: Optional[str] = None
    biz_scene: Optional[str] = None
    order_title: Optional[str] = None
    total_trans_amount: Optional[str] = None
    total_count: Optional[str] = None
    trans_order_list: List[TransOrderDetail] = field(default_factory=list)
    remark: Optional[str] = None
