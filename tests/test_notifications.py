"""Tests for supervisor transition notifications."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from src.notifications import NotificationManager, NotifyLevel, transition_level


class TestTransitionLevel:
    @pytest.mark.parametrize("old,new,level", [
        ("starting", "unhealthy", NotifyLevel.CRITICAL),
        ("healthy", "unhealthy", NotifyLevel.CRITICAL),
        ("unhealthy", "healthy", NotifyLevel.RECOVERY),
        ("starting", "healthy", NotifyLevel.INFO),
        ("healthy", "stopped", NotifyLevel.WARNING),
        ("healthy", "starting", None),
    ])
    def test_levels(self, old: str, new: str, level: NotifyLevel | None) -> None:
        assert transition_level(old, new) == level


class TestNotificationManager:
    def test_disabled_without_webhooks(self) -> None:
        with patch("src.notifications.settings") as s:
            s.slack_webhook_url = ""
            s.discord_webhook_url = ""
            nm = NotificationManager()
        assert not nm.is_enabled
        assert nm.status()["enabled"] is False

    def test_disabled_sends_nothing(self) -> None:
        with patch("src.notifications.settings") as s:
            s.slack_webhook_url = ""
            s.discord_webhook_url = ""
            nm = NotificationManager()
        with patch.object(nm, "_send_slack", new=AsyncMock()) as slack:
            asyncio.run(nm.notify_health_transition("healthy", "unhealthy"))
        slack.assert_not_called()

    def test_transition_dispatches_to_both(self) -> None:
        nm = NotificationManager(
            slack_webhook="https://hooks.slack.test/x",
            discord_webhook="https://discord.test/api/webhooks/1/abc",
        )
        with patch.object(nm, "_send_slack", new=AsyncMock()) as slack, \
                patch.object(nm, "_send_discord", new=AsyncMock()) as discord:
            asyncio.run(nm.notify_health_transition(
                "healthy", "unhealthy", message="Unhealthy record: OK: false", path="/tmp/x",
            ))
        text = slack.call_args.args[0]
        assert "healthy → *unhealthy*" in text
        assert "/tmp/x" in text
        assert "OK: false" in text
        discord.assert_awaited_once_with(text)

    def test_quiet_transition(self) -> None:
        nm = NotificationManager(slack_webhook="https://hooks.slack.test/x")
        with patch.object(nm, "_send_slack", new=AsyncMock()) as slack:
            asyncio.run(nm.notify_health_transition("healthy", "starting"))
        slack.assert_not_called()

    def test_webhook_failure_is_swallowed(self) -> None:
        nm = NotificationManager(discord_webhook="https://discord.test/api/webhooks/1/abc")
        with patch("src.notifications.httpx.AsyncClient.post", side_effect=httpx.ConnectError("refused")):
            asyncio.run(nm.notify_health_transition("starting", "unhealthy"))
