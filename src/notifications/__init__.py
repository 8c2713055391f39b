"""Proactive notifications — Slack and Discord webhooks.

Fires on supervisor state transitions:
- starting → healthy (info)
- anything → unhealthy (critical)
- unhealthy → healthy (recovery)
- anything → stopped (warning)

Webhook failures are logged and never propagate to the supervisor loop.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any

import httpx

from src.config import settings

logger = logging.getLogger(__name__)


class NotifyLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"
    RECOVERY = "recovery"


_EMOJI = {
    NotifyLevel.INFO: "ℹ️",
    NotifyLevel.WARNING: "⚠️",
    NotifyLevel.CRITICAL: "🔴",
    NotifyLevel.RECOVERY: "✅",
}


def transition_level(old_state: str, new_state: str) -> NotifyLevel | None:
    """Map a supervisor transition to a notification level (None = stay quiet)."""
    if new_state == "unhealthy":
        return NotifyLevel.CRITICAL
    if new_state == "healthy" and old_state == "unhealthy":
        return NotifyLevel.RECOVERY
    if new_state == "healthy":
        return NotifyLevel.INFO
    if new_state == "stopped":
        return NotifyLevel.WARNING
    return None


class NotificationManager:
    """Central dispatcher for Slack / Discord notifications."""

    def __init__(self, slack_webhook: str = "", discord_webhook: str = "") -> None:
        self.slack_webhook = slack_webhook or settings.slack_webhook_url
        self.discord_webhook = discord_webhook or settings.discord_webhook_url
        self._enabled = bool(self.slack_webhook or self.discord_webhook)

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    def status(self) -> dict[str, Any]:
        return {
            "enabled": self._enabled,
            "slack_configured": bool(self.slack_webhook),
            "discord_configured": bool(self.discord_webhook),
        }

    async def notify_health_transition(
        self,
        old_state: str,
        new_state: str,
        message: str = "",
        path: str = "",
    ) -> None:
        """Notify on a supervisor state transition."""
        level = transition_level(old_state, new_state)
        if level is None:
            return

        text = (
            f"{_EMOJI[level]} *Health Alert*\n"
            f"State: {old_state} → *{new_state}*\n"
        )
        if path:
            text += f"Record: `{path}`\n"
        if message:
            text += f"Detail: {message}\n"

        await self._send(text)

    # -- Low-level dispatch -------------------------------------------------

    async def _send(self, text: str) -> None:
        """Dispatch to all configured channels."""
        if not self._enabled:
            return
        tasks = []
        if self.slack_webhook:
            tasks.append(self._send_slack(text))
        if self.discord_webhook:
            tasks.append(self._send_discord(text))
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _send_slack(self, text: str) -> None:
        """POST to Slack incoming webhook."""
        try:
            async with httpx.AsyncClient(timeout=10) as client:
                resp = await client.post(
                    self.slack_webhook,
                    json={"text": text, "mrkdwn": True},
                )
                if resp.status_code != 200:
                    logger.warning("Slack webhook returned %d: %s", resp.status_code, resp.text[:200])
        except Exception as exc:
            logger.warning("Slack notification failed: %s", exc)

    async def _send_discord(self, text: str) -> None:
        """POST to Discord webhook (204 on success)."""
        try:
            async with httpx.AsyncClient(timeout=10) as client:
                resp = await client.post(self.discord_webhook, json={"content": text[:2000]})
                if resp.status_code not in (200, 204):
                    logger.warning("Discord webhook returned %d: %s", resp.status_code, resp.text[:200])
        except Exception as exc:
            logger.warning("Discord notification failed: %s", exc)


# -- Singleton -----------------------------------------------------------------

_notifier: NotificationManager | None = None


def get_notifier() -> NotificationManager:
    """Return the process-level notification manager."""
    global _notifier
    if _notifier is None:
        _notifier = NotificationManager()
    return _notifier
