"""Wire the decoder, gate, router and worker into one running bot."""

from __future__ import annotations

import threading
from typing import Any, Mapping

import structlog
from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError

from .ack import AcknowledgmentGate, Delivery
from .config import AppSettings
from .errors import ConfigError, DispatchError
from .events import decode_frame
from .registry import ApprovalRegistry
from .router import EventRouter
from .slack_client import SlackClient
from .transport import SocketModeTransport
from .worker import DispatchWorker


def resolve_identity(web_client: WebClient) -> tuple[str, str | None]:
    """Return the bot's ``(user_id, bot_id)`` via ``auth.test``."""

    try:
        response = web_client.auth_test()
    except SlackApiError as exc:
        error = exc.response.get("error") if getattr(exc, "response", None) else str(exc)
        raise ConfigError(f"SLACK_BOT_TOKEN is invalid: {error}") from exc

    user_id = response.get("user_id")
    if not user_id:
        raise ConfigError("SLACK_BOT_TOKEN is invalid: auth.test returned no user_id")
    return user_id, response.get("bot_id")


class ApprovalBot:
    """Explicitly constructed context owning every bot component.

    Frames arrive on the transport thread, are decoded and acknowledged there,
    then queued for the single dispatch worker that runs the router.
    """

    def __init__(
        self,
        *,
        settings: AppSettings,
        web_client: WebClient,
        self_user_id: str,
        self_bot_id: str | None = None,
        verbose: bool = False,
        socket_client: Any | None = None,
    ) -> None:
        self.settings = settings
        self.registry = ApprovalRegistry()
        self.gateway = SlackClient(client=web_client)
        self.router = EventRouter(
            registry=self.registry,
            gateway=self.gateway,
            self_user_id=self_user_id,
            self_bot_id=self_bot_id,
            approval_channel=settings.approval_channel,
            greeting_keyword=settings.greeting_keyword,
            shortcut_callback_id=settings.shortcut_callback_id,
        )
        self.worker = DispatchWorker(self.router.dispatch)
        self.transport = SocketModeTransport(
            app_token=settings.app_token,
            web_client=web_client,
            on_frame=self.receive,
            trace_enabled=verbose,
            client=socket_client,
        )
        self.gate = AcknowledgmentGate(self.transport.acknowledge)
        self._started = False

    @classmethod
    def from_settings(cls, settings: AppSettings, *, verbose: bool = False) -> "ApprovalBot":
        web_client = WebClient(token=settings.bot_token)
        user_id, bot_id = resolve_identity(web_client)
        structlog.get_logger().info("bot_identity_resolved", user_id=user_id, bot_id=bot_id)
        return cls(
            settings=settings,
            web_client=web_client,
            self_user_id=user_id,
            self_bot_id=bot_id,
            verbose=verbose,
        )

    def receive(self, frame: Mapping[str, Any]) -> Delivery:
        """Decode and acknowledge *frame*, then hand it to the worker."""

        event = decode_frame(frame)
        delivery = self.gate.admit(event)
        self.worker.submit(delivery)
        return delivery

    def start(self) -> None:
        self.worker.start()
        self._started = True
        self.transport.connect()

    def stop(self) -> None:
        if not self._started:
            return
        self._started = False
        self.transport.close()
        self.worker.stop(timeout=self.settings.shutdown_timeout)
        structlog.get_logger().info("bot_stopped", pending_requests=self.registry.pending_count())

    def health(self) -> dict[str, Any]:
        connected = self.transport.is_connected()
        worker_alive = self.worker.is_alive
        return {
            "ok": connected and worker_alive,
            "connected": connected,
            "worker_alive": worker_alive,
            "pending_requests": self.registry.pending_count(),
            "ack_failures": self.gate.failures,
            "events_processed": self.worker.processed,
        }

    def run(
        self,
        stop_event: threading.Event,
        *,
        channel: str | None = None,
        message: str | None = None,
    ) -> None:
        """Run until *stop_event* is set, watching connection health."""

        log = structlog.get_logger()
        try:
            self.start()
            if channel and message:
                self.router.request_approval(channel, message)

            was_connected = True
            while not stop_event.wait(self.settings.supervise_interval):
                connected = self.transport.is_connected()
                if connected != was_connected:
                    if connected:
                        log.info("socket_mode_recovered")
                    else:
                        log.warning("socket_mode_disconnected")
                    was_connected = connected
                if not self.worker.is_alive:
                    log.error("dispatch_worker_dead")
                    raise DispatchError("Dispatch worker stopped unexpectedly")
        finally:
            self.stop()
