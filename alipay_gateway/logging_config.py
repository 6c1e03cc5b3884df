"""
Logging setup for the Alipay gateway client.

Two pieces:

- GatewayLogFormatter renders every record as one JSON line, tagged with
  the trace id of the current gateway call when one is bound.
- AuditLogger records the protocol events an operator needs to answer
  "what did we sign, what did we trust, and why did a reply fail?".

Key material, signatures and payloads are never passed to either.
"""

import json
import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .util import mask_sensitive

AUDIT_LOGGER_NAME = "alipay_gateway.audit"

trace_id_var: ContextVar[str] = ContextVar("alipay_trace_id", default="")


class GatewayLogFormatter(logging.Formatter):
    """One JSON object per line; audit fields are merged in at top level."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        trace_id = trace_id_var.get()
        if trace_id:
            entry["trace_id"] = trace_id

        audit = getattr(record, "audit", None)
        if audit:
            entry.update(audit)

        if record.exc_info:
            entry["error"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


class AuditLogger:
    """
    Gateway audit events, keyed by API method and certificate SN.

    Each event is a normal log record on the audit logger carrying an
    "audit" dict (event name plus fields) for GatewayLogFormatter.
    """

    def __init__(self, name: str = AUDIT_LOGGER_NAME):
        self._logger = logging.getLogger(name)

    def _emit(self, level: int, event: str, summary: str, **fields: Any) -> None:
        if not self._logger.isEnabledFor(level):
            return
        audit = {"event": event}
        audit.update((k, v) for k, v in fields.items() if v is not None)
        self._logger.log(level, "%s: %s", event, summary, extra={"audit": audit})

    def request_signed(self, method: str, app_id: str, mode: str, sign_type: str) -> None:
        self._emit(
            logging.INFO, "REQUEST_SIGNED", f"{mode} request for {method}",
            method=method, app_id=mask_sensitive(app_id), mode=mode, sign_type=sign_type
        )

    def response_verified(self, method: str, cert_sn: Optional[str] = None) -> None:
        self._emit(logging.INFO, "RESPONSE_VERIFIED", f"reply to {method}", method=method, cert_sn=cert_sn)

    def verification_skipped(self, method: str, reason: str) -> None:
        """An unsigned business-error reply accepted as is."""
        self._emit(logging.WARNING, "VERIFICATION_SKIPPED", f"{method}: {reason}", method=method, reason=reason)

    def verification_fallback(self, method: str) -> None:
        self._emit(
            logging.WARNING, "VERIFICATION_FALLBACK", f"{method}: retrying with unescaped slashes", method=method
        )

    def verification_failed(self, method: str, reason: str, cert_sn: Optional[str] = None) -> None:
        self._emit(
            logging.ERROR, "VERIFICATION_FAILED", f"{method}: {reason}",
            method=method, reason=reason, cert_sn=cert_sn
        )

    def certificate_refresh(self, cert_sn: str) -> None:
        self._emit(logging.INFO, "CERTIFICATE_REFRESH", f"downloading {cert_sn}", cert_sn=cert_sn)

    def certificate_pinned(self, cert_sn: str, source: str) -> None:
        self._emit(logging.INFO, "CERTIFICATE_PINNED", f"{cert_sn} from {source}", cert_sn=cert_sn, source=source)

    def certificate_rejected(self, cert_sn: str, reason: str) -> None:
        self._emit(
            logging.ERROR, "CERTIFICATE_REJECTED", f"{cert_sn}: {reason}", cert_sn=cert_sn, reason=reason
        )


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: Optional[str] = None
) -> None:
    """
    Install handlers on the root logger, replacing any already there.

    Args:
        level: Level name, e.g. "DEBUG"
        json_format: GatewayLogFormatter when true, plain text otherwise
        log_file: Also write to this file
    """
    if json_format:
        formatter: logging.Formatter = GatewayLogFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s %(levelname)-8s %(name)s: %(message)s")

    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=level.upper(), handlers=handlers, force=True)


def bind_trace_id(trace_id: Optional[str] = None) -> str:
    """Tag subsequent log records in this context; generates an id when none is given."""
    trace_id = trace_id or uuid.uuid4().hex
    trace_id_var.set(trace_id)
    return trace_id


def current_trace_id() -> str:
    return trace_id_var.get()


audit_log = AuditLogger()
