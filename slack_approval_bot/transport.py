"""Socket Mode connection wrapper delivering raw frames to the bot."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Mapping

import structlog
from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError, SlackClientError
from slack_sdk.socket_mode import SocketModeClient
from slack_sdk.socket_mode.request import SocketModeRequest
from slack_sdk.socket_mode.response import SocketModeResponse

from .errors import ConfigError, TransportError

FrameCallback = Callable[[Mapping[str, Any]], None]


def request_to_frame(request: SocketModeRequest) -> Dict[str, Any]:
    """Flatten a SocketModeRequest into the mapping the decoder reads."""

    return {
        "type": request.type,
        "envelope_id": request.envelope_id,
        "payload": request.payload,
        "retry_attempt": request.retry_attempt,
    }


class SocketModeTransport:
    """Connect, reconnect and acknowledge; everything else is the bot's job.

    The underlying client runs listeners with ``concurrency=1`` so frames
    reach ``on_frame`` in the order Slack delivered them.
    """

    def __init__(
        self,
        *,
        app_token: str,
        web_client: WebClient,
        on_frame: FrameCallback,
        trace_enabled: bool = False,
        client: SocketModeClient | None = None,
    ) -> None:
        self._on_frame = on_frame
        self._client = client or SocketModeClient(
            app_token=app_token,
            web_client=web_client,
            logger=logging.getLogger("slack_approval_bot.socket_mode"),
            trace_enabled=trace_enabled,
            concurrency=1,
        )
        self._client.socket_mode_request_listeners.append(self._handle_request)

    @property
    def client(self) -> SocketModeClient:
        return self._client

    def _handle_request(self, client: SocketModeClient, request: SocketModeRequest) -> None:
        self._on_frame(request_to_frame(request))

    def acknowledge(self, envelope_id: str) -> None:
        try:
            self._client.send_socket_mode_response(SocketModeResponse(envelope_id=envelope_id))
        except (SlackClientError, OSError) as exc:
            raise TransportError(f"Failed to acknowledge envelope {envelope_id}: {exc}") from exc

    def connect(self) -> None:
        try:
            self._client.connect()
        except SlackApiError as exc:
            error = exc.response.get("error") if getattr(exc, "response", None) else str(exc)
            raise ConfigError(f"SLACK_APP_TOKEN was rejected: {error}") from exc
        except (SlackClientError, OSError) as exc:
            raise TransportError(f"Failed to open Socket Mode connection: {exc}") from exc
        structlog.get_logger().info("socket_mode_connected")

    def is_connected(self) -> bool:
        try:
            return bool(self._client.is_connected())
        except (SlackClientError, OSError):
            return False

    def close(self) -> None:
        """Stop receiving frames; in-flight handling is not awaited."""

        try:
            self._client.close()
        except (SlackClientError, OSError) as exc:
            structlog.get_logger().warning("socket_mode_close_failed", error=str(exc))
