"""Acknowledge envelopes before any handler logic runs."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable

import structlog

from .events import InboundEvent

AckSender = Callable[[str], None]


class AckStatus(str, Enum):
    ACKED = "acked"
    FAILED = "failed"
    NOT_REQUIRED = "not_required"
    DUPLICATE = "duplicate"


@dataclass(frozen=True)
class Delivery:
    """An event paired with the outcome of its acknowledgment."""

    event: InboundEvent
    ack_status: AckStatus

    @property
    def ack_failed(self) -> bool:
        return self.ack_status is AckStatus.FAILED


class AcknowledgmentGate:
    """Send exactly one acknowledgment per handle, synchronously.

    A failed acknowledgment is recorded on the returned ``Delivery`` and in
    ``failures``; the event still proceeds to dispatch.
    """

    def __init__(self, sender: AckSender) -> None:
        self._sender = sender
        self._lock = threading.Lock()
        self._failures = 0

    @property
    def failures(self) -> int:
        return self._failures

    def admit(self, event: InboundEvent) -> Delivery:
        handle = event.ack
        if handle is None:
            return Delivery(event=event, ack_status=AckStatus.NOT_REQUIRED)

        if not handle.consume():
            structlog.get_logger().warning("ack_duplicate", envelope_id=handle.envelope_id)
            return Delivery(event=event, ack_status=AckStatus.DUPLICATE)

        try:
            self._sender(handle.envelope_id)
        except Exception as exc:
            with self._lock:
                self._failures += 1
            structlog.get_logger().warning(
                "ack_failed",
                envelope_id=handle.envelope_id,
                event_kind=event.kind.value,
                error=str(exc),
            )
            return Delivery(event=event, ack_status=AckStatus.FAILED)

        return Delivery(event=event, ack_status=AckStatus.ACKED)
