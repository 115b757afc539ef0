"""
Audit trail for SignalFriend.

Wallet logins, webhook signature checks, admin moderation and denied access
are written as one JSON object per line to the ``audit`` logger, so they can
be shipped and queried separately from application logs.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

_logger = logging.getLogger("audit")
_audit_logger = None


def init_audit_logger():
    global _audit_logger

    _logger.setLevel(logging.INFO)
    if not _logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s AUDIT %(levelname)s %(message)s"))
        _logger.addHandler(handler)
        # Audit lines have their own handler; keep them out of the root JSON log
        _logger.propagate = False

    _audit_logger = AuditLogger()


def get_audit_logger():
    if _audit_logger is None:
        init_audit_logger()
    return _audit_logger


def _short(address: Optional[str]) -> str:
    if not address:
        return "anonymous"
    return f"{address[:10]}..." if len(address) > 10 else address


class AuditLogger:
    """Structured security events. Every method emits exactly one record."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or _logger

    def _emit(self, level: int, event: str, fields: Dict[str, Any]) -> None:
        payload = {"event": event, **fields, "timestamp": datetime.now(timezone.utc).isoformat()}
        line = json.dumps(payload, default=str)
        if level >= logging.ERROR:
            self.logger.error(line)
        elif level >= logging.WARNING:
            self.logger.warning(line)
        else:
            self.logger.info(line)

    def log_event(self, event: str, **details: Any) -> None:
        self._emit(logging.INFO, event, details)

    def log_auth_attempt(self, address: str, method: str, success: bool, ip_address: Optional[str] = None):
        self._emit(
            logging.INFO,
            "auth.attempt",
            {"address": address, "method": method, "success": success, "ip": ip_address},
        )

    def log_token_issued(self, address: str, token_type: str = "jwt", expires_in: Optional[int] = None):
        self._emit(logging.INFO, "auth.token_issued", {"address": address, "type": token_type, "expiresIn": expires_in})

    def log_webhook_signature(self, success: bool, reason: Optional[str] = None, ip_address: Optional[str] = None):
        fields = {"success": success, "ip": ip_address}
        if reason:
            fields["reason"] = reason
        self._emit(logging.INFO if success else logging.WARNING, "webhook.signature", fields)

    def log_admin_action(self, admin: str, action: str, target: str, details: Optional[Dict[str, Any]] = None):
        fields: Dict[str, Any] = {"admin": _short(admin), "target": target}
        if details:
            fields["details"] = details
        self._emit(logging.INFO, f"admin.{action}", fields)

    def log_security_event(self, event_type: str, severity: str, details: Dict[str, Any]):
        self._emit(logging.WARNING, f"security.{event_type}", {"severity": severity, "details": details})

    def log_rate_limit_exceeded(self, ip_address: str, endpoint: str):
        self._emit(logging.WARNING, "security.rate_limit_exceeded", {"ip": ip_address, "endpoint": endpoint})

    def log_error(self, error_type: str, error_msg: str, context: Optional[Dict[str, Any]] = None):
        fields: Dict[str, Any] = {"type": error_type, "message": error_msg}
        if context:
            fields["context"] = context
        self._emit(logging.ERROR, "app.error", fields)
