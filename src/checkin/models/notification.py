"""Notification channel contract and dispatch result models."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .enums import NotificationChannel


class OutboundMessage(BaseModel):
    """Message handed to a channel. SMS channels only use text."""

    model_config = ConfigDict(frozen=True)

    text: str
    blocks: list[dict[str, Any]] | None = Field(
        default=None, description="Rich layout for team-chat channels"
    )


class SendResult(BaseModel):
    """Outcome of one channel send call."""

    success: bool
    error: str | None = None
    message_id: str | None = None


class ChannelResult(BaseModel):
    """Outcome of one attempted channel delivery within a dispatch."""

    channel: NotificationChannel
    target: str
    success: bool
    error: str | None = None


class DispatchResult(BaseModel):
    """Per-channel outcomes of a dispatch.

    Callers use this to decide what to log; a failed channel never rolls back
    the state change that triggered the dispatch.
    """

    results: list[ChannelResult] = Field(default_factory=list)

    @property
    def attempted(self) -> bool:
        return bool(self.results)

    @property
    def all_succeeded(self) -> bool:
        return all(result.success for result in self.results)

    @property
    def failures(self) -> list[ChannelResult]:
        return [result for result in self.results if not result.success]

    def for_channel(self, channel: NotificationChannel) -> ChannelResult | None:
        """Get the result for a channel, or None if it was not attempted."""
        for result in self.results:
            if result.channel == channel:
                return result
        return None

    def summary(self) -> str:
        """One-line summary suitable for audit notes."""
        if not self.results:
            return "notifications: none"
        parts = []
        for result in self.results:
            outcome = "ok" if result.success else f"failed ({result.error})"
            parts.append(f"{result.channel.value}={outcome}")
        return "notifications: " + ", ".join(parts)
