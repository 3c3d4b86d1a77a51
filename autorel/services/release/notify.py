"""Best-effort terminal status notification (Slack-compatible incoming webhook)."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Literal

from autorel.core.config import NotifyConfig
from autorel.core.result import Err
from autorel.output.console import ConsoleProtocol, Style
from autorel.platform.http import HttpClient

NotifyStatus = Literal["success", "failure"]


def render_status_text(*, project: str, status: NotifyStatus, summary: Mapping[str, str]) -> str:
    headline = "succeeded" if status == "success" else "failed"
    lines = [f"{project} release pipeline {headline}", ""]
    lines.extend(f"- {stage}: {result}" for stage, result in summary.items())
    return "\n".join(lines)


def send_notification(
    *,
    http: HttpClient,
    config: NotifyConfig,
    project: str,
    status: NotifyStatus,
    summary: Mapping[str, str],
    console: ConsoleProtocol,
) -> bool:
    """POST ``{"text", "status"}`` to the webhook. Failures are reported, never raised."""
    if not config.webhook_url:
        console.print("notification webhook not configured, skipping", Style.DIM)
        return False

    payload: dict[str, object] = {
        "text": render_status_text(project=project, status=status, summary=summary),
        "status": status,
    }
    result = http.post_json(config.webhook_url, payload, timeout=config.timeout_seconds)
    if isinstance(result, Err):
        console.warning(f"notification not delivered: {result.error.message}")
        return False
    console.print("notification sent", Style.DIM)
    return True
