"""Observability helpers (Sentry init & common scrubbing).

Keeps initialisation a no-op if the SDK or DSN are missing.  Every helper
here is best-effort: a Sentry problem must never fail a request.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from receipt_enrichment.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

try:  # Optional import
	import sentry_sdk  # type: ignore
	from sentry_sdk.integrations.fastapi import FastApiIntegration  # type: ignore
	from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration  # type: ignore
	_SENTRY_AVAILABLE = True
except Exception:  # pragma: no cover
	_SENTRY_AVAILABLE = False

_SCRUBBED_HEADERS = ("authorization", "cookie", "set-cookie", "x-api-key")

_initialised = False


def _before_send(event: Dict[str, Any], hint: Dict[str, Any] | None = None):  # type: ignore[override]
	"""Scrub obvious PII / secrets before sending to Sentry.

	- Drop Authorization & Cookie headers
	- Remove request data/body (keep method + URL)
	"""
	try:
		req = event.get("request") or {}
		headers = req.get("headers") or {}
		for k in list(headers.keys()):
			if k.lower() in _SCRUBBED_HEADERS:
				headers.pop(k, None)
		if "data" in req:
			# Receipt bodies may carry purchase history
			req.pop("data", None)
		event["request"] = req
	except Exception:  # best effort
		logger.debug("Sentry event scrubbing failed", exc_info=True)
	return event


def sentry_enabled(settings: Optional[Settings] = None) -> bool:
	cfg = settings or default_settings
	return bool(_SENTRY_AVAILABLE and cfg.SENTRY_DSN)


def init_sentry(service: str, settings: Optional[Settings] = None) -> bool:
	"""Initialise Sentry once for a given process.

	Returns True if Sentry was initialised; False otherwise.
	"""
	global _initialised
	cfg = settings or default_settings
	if not sentry_enabled(cfg):
		return False
	if _initialised:  # prevent duplicate init in same process
		return True
	sentry_sdk.init(
		dsn=cfg.SENTRY_DSN,
		integrations=[FastApiIntegration(), SqlalchemyIntegration()],
		traces_sample_rate=float(cfg.SENTRY_TRACES_SAMPLE_RATE or 0),
		profiles_sample_rate=float(cfg.SENTRY_PROFILES_SAMPLE_RATE or 0),
		environment=cfg.ENVIRONMENT,
		release=cfg.SENTRY_RELEASE,
		before_send=_before_send,
	)
	sentry_sdk.set_tag("service", service)
	_initialised = True
	return True


def sentry_set_tags(tags: Dict[str, Any]) -> None:
	"""Best-effort: set tags on the current Sentry scope (strings only)."""
	if not sentry_enabled():
		return
	try:
		for k, v in (tags or {}).items():
			# Coerce to short strings to avoid large payloads
			sentry_sdk.set_tag(str(k), str(v)[:128] if v is not None else "")
	except Exception:
		logger.debug("Unable to set Sentry tags", exc_info=True)


def sentry_breadcrumb(category: str, message: str, level: str = "info", data: Optional[Dict[str, Any]] = None) -> None:
	"""Best-effort: add a breadcrumb for important lifecycle steps."""
	if not sentry_enabled():
		return
	try:
		sentry_sdk.add_breadcrumb(
			category=category,
			message=message,
			level=level,
			data=data or {},
		)
	except Exception:
		logger.debug("Unable to record Sentry breadcrumb", exc_info=True)


def sentry_capture_exception(exc: BaseException) -> None:
	"""Best-effort: report an unexpected exception."""
	if not sentry_enabled():
		return
	try:
		sentry_sdk.capture_exception(exc)
	except Exception:
		logger.debug("Unable to capture exception in Sentry", exc_info=True)


__all__ = [
	"init_sentry",
	"sentry_enabled",
	"sentry_set_tags",
	"sentry_breadcrumb",
	"sentry_capture_exception",
]
