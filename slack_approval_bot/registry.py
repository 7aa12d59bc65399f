"""In-memory registry of approval requests and their state transitions."""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Callable, Dict
from uuid import uuid4


class ApprovalState(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"  # reserved; nothing schedules expiry yet

    @property
    def is_terminal(self) -> bool:
        return self is not ApprovalState.PENDING


@dataclass(frozen=True)
class MessageRef:
    """Location of a posted Slack message."""

    channel: str
    ts: str


@dataclass(frozen=True)
class ApprovalRequest:
    """Snapshot of one pending or decided approval."""

    request_id: str
    channel: str
    text: str
    created_at: datetime
    state: ApprovalState = ApprovalState.PENDING
    requested_by: str | None = None
    message: MessageRef | None = None
    decided_by: str | None = None
    decided_at: datetime | None = None


@dataclass(frozen=True)
class ResolveResult:
    previous_state: ApprovalState | None
    applied: bool
    request: ApprovalRequest | None


class ApprovalRegistry:
    """Own every ApprovalRequest and serialise all writes behind one lock.

    Records are immutable snapshots; the registry swaps them on change, so a
    caller holding a snapshot can never alter committed state.
    """

    def __init__(
        self,
        *,
        id_factory: Callable[[], str] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._id_factory = id_factory or (lambda: uuid4().hex)
        self._clock = clock or (lambda: datetime.now(UTC))
        self._lock = threading.Lock()
        self._requests: Dict[str, ApprovalRequest] = {}
        self._issued: set[str] = set()

    def create(self, text: str, channel: str, *, requested_by: str | None = None) -> str:
        """Store a new Pending request and return its identifier."""

        with self._lock:
            request_id = self._id_factory()
            while request_id in self._issued:
                request_id = self._id_factory()
            self._issued.add(request_id)
            self._requests[request_id] = ApprovalRequest(
                request_id=request_id,
                channel=channel,
                text=text,
                created_at=self._clock(),
                requested_by=requested_by,
            )
        return request_id

    def try_resolve(
        self,
        request_id: str,
        outcome: ApprovalState,
        *,
        decided_by: str | None = None,
    ) -> ResolveResult:
        """Move a Pending request to *outcome*; first writer wins.

        Unknown identifiers and already-decided requests are reported with
        ``applied=False`` and left untouched.
        """

        if not outcome.is_terminal:
            raise ValueError(f"{outcome.value} is not a terminal state")

        with self._lock:
            current = self._requests.get(request_id)
            if current is None:
                return ResolveResult(previous_state=None, applied=False, request=None)

            if current.state is not ApprovalState.PENDING:
                return ResolveResult(previous_state=current.state, applied=False, request=current)

            resolved = replace(
                current,
                state=outcome,
                decided_by=decided_by,
                decided_at=self._clock(),
            )
            self._requests[request_id] = resolved

        return ResolveResult(previous_state=ApprovalState.PENDING, applied=True, request=resolved)

    def get(self, request_id: str) -> ApprovalRequest | None:
        with self._lock:
            return self._requests.get(request_id)

    def attach_message(self, request_id: str, message: MessageRef) -> ApprovalRequest:
        with self._lock:
            current = self._requests.get(request_id)
            if current is None:
                raise KeyError(request_id)
            updated = replace(current, message=message)
            self._requests[request_id] = updated
        return updated

    def discard(self, request_id: str) -> bool:
        """Drop a Pending request whose message never made it to Slack.

        The identifier stays reserved so it is never handed out again.
        """

        with self._lock:
            current = self._requests.get(request_id)
            if current is None or current.message is not None or current.state.is_terminal:
                return False
            del self._requests[request_id]
            return True

    def pending_count(self) -> int:
        with self._lock:
            return sum(1 for item in self._requests.values() if item.state is ApprovalState.PENDING)

    def __len__(self) -> int:
        with self._lock:
            return len(self._requests)
