"""Logging utilities.

構造化ログ（structlog + JSON）の初期化をまとめて提供する。
"""

from typing import Any

import logging
import structlog
from structlog import contextvars as structlog_contextvars
from .config import settings


_SENSITIVE_KEYWORDS = ("dsn", "token", "secret", "authorization", "password")
_MASK_PLACEHOLDER = "***"


def _mask_secret_value(raw: object) -> str:
    """Return a masked representation of a secret-like value.

    短い値は `***` に、一定長以上は先頭4文字+末尾4文字だけを残し中間を隠す。
    """

    if raw is None:
        return _MASK_PLACEHOLDER
    text = str(raw).strip()
    if len(text) <= 8:
        return _MASK_PLACEHOLDER
    return f"{text[:4]}…{text[-4:]}"


def _sanitize_event_dict(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Mask values whose key looks like a credential (`sentry_dsn` など)."""

    for key, value in list(event_dict.items()):
        lowered = str(key).lower()
        if any(keyword in lowered for keyword in _SENSITIVE_KEYWORDS):
            event_dict[key] = _mask_secret_value(value)
    return event_dict


def configure_logging() -> None:
    """Configure structlog for application-wide logging.

    アプリ全体のロギング設定を行う。標準 logging を INFO レベルで初期化し、
    structlog で ISO タイムスタンプと JSON 形式の出力を有効化する。
    """
    # stdlib 側の出力にプレフィックス（"INFO:logger:" など）を付けない
    logging.basicConfig(
        level=logging.INFO,
        format="%(message)s",
        handlers=[logging.StreamHandler()],
        force=True,
    )
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog_contextvars.merge_contextvars,
            _sanitize_event_dict,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
    )

    # Optional: Sentry integration (enabled if DSN is provided)
    try:
        if settings.sentry_dsn:
            import sentry_sdk  # type: ignore
            from sentry_sdk.integrations.logging import LoggingIntegration  # type: ignore

            sentry_logging = LoggingIntegration(
                level=logging.INFO,
                event_level=logging.ERROR,
            )
            sentry_sdk.init(dsn=settings.sentry_dsn, integrations=[sentry_logging])
    except Exception as exc:
        # Sentry の初期化失敗でもアプリは継続
        logger.warning("sentry_init_failed", error=repr(exc))


logger = structlog.get_logger()
