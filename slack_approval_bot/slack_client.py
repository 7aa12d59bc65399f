"""Thin wrapper around the Slack WebClient; the only place outbound calls happen."""

from __future__ import annotations

from typing import Any, Callable, Mapping, Sequence

from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError, SlackClientError

from .errors import OutboundError, OutboundErrorKind
from .registry import MessageRef


def _api_error_code(exc: SlackApiError) -> str:
    response = getattr(exc, "response", None)
    if response is None:
        return str(exc)
    try:
        return response.get("error") or str(exc)
    except AttributeError:
        return str(exc)


class SlackClient:
    """Encapsulate Slack WebClient interactions and normalise their failures."""

    def __init__(self, *, token: str | None = None, client: WebClient | None = None) -> None:
        if client is None and token is None:
            raise ValueError("Either an instantiated client or a bot token must be provided.")

        self._client = client or WebClient(token=token)

    @property
    def client(self) -> WebClient:
        """Expose the underlying WebClient for advanced use cases."""

        return self._client

    def _call(self, operation: str, func: Callable[..., Any], **kwargs: Any) -> Any:
        try:
            return func(**kwargs)
        except SlackApiError as exc:
            raise OutboundError(
                OutboundErrorKind.API,
                operation=operation,
                cause=exc,
                error=_api_error_code(exc),
            ) from exc
        except (SlackClientError, OSError) as exc:
            raise OutboundError(OutboundErrorKind.TRANSPORT, operation=operation, cause=exc) from exc

    def post_message(
        self,
        *,
        channel: str,
        text: str,
        blocks: Sequence[Mapping[str, Any]],
    ) -> MessageRef:
        """Post a message with Block Kit content and return where it landed."""

        response = self._call(
            "post_message",
            self._client.chat_postMessage,
            channel=channel,
            text=text,
            blocks=list(blocks),
        )
        channel_id = response.get("channel")
        ts = response.get("ts")
        if not channel_id or not ts:
            raise OutboundError(
                OutboundErrorKind.MALFORMED_RESPONSE,
                operation="post_message",
                error="response missing channel or ts",
            )
        return MessageRef(channel=channel_id, ts=ts)

    def update_message(
        self,
        *,
        ref: MessageRef,
        text: str,
        blocks: Sequence[Mapping[str, Any]],
    ) -> None:
        """Update an existing Slack message."""

        self._call(
            "update_message",
            self._client.chat_update,
            channel=ref.channel,
            ts=ref.ts,
            text=text,
            blocks=list(blocks),
        )

    def open_view(self, *, trigger_id: str, view: Mapping[str, Any]) -> None:
        """Open a modal in response to an interaction trigger."""

        self._call("open_view", self._client.views_open, trigger_id=trigger_id, view=dict(view))
