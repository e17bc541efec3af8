"""
Event System Module

Publish/subscribe dispatcher for the notifications the ledger emits
(Transfer, Approval) and those of the optional ownership collaborator.
Observers and indexers subscribe here; the ledger never knows who listens.
"""

from enum import Enum
from typing import Callable, Dict, List, Any, Optional
from dataclasses import dataclass, field
from datetime import datetime, timezone
import uuid
import logging
from threading import RLock


class LedgerEvent(Enum):
    """Notifications that can be emitted"""

    # Ledger notifications
    TRANSFER = "Transfer"
    APPROVAL = "Approval"

    # Ownership collaborator notifications
    OWNERSHIP_TRANSFER_STARTED = "OwnershipTransferStarted"
    OWNERSHIP_TRANSFERRED = "OwnershipTransferred"


@dataclass
class EventPayload:
    """Payload for a single notification"""
    event_type: LedgerEvent
    data: Dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            'event_type': self.event_type.value,
            'data': dict(self.data),
            'timestamp': self.timestamp.isoformat(),
            'event_id': self.event_id
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EventPayload':
        """Create from dictionary"""
        return cls(
            event_type=LedgerEvent(data['event_type']),
            data=dict(data['data']),
            timestamp=datetime.fromisoformat(data['timestamp']) if isinstance(data['timestamp'], str) else data['timestamp'],
            event_id=data['event_id']
        )


class EventDispatcher:
    """Central event dispatcher, publish/subscribe pattern"""

    def __init__(self):
        self._handlers: Dict[LedgerEvent, List[Callable]] = {}
        self._global_handlers: List[Callable] = []  # catch-all handlers
        self._lock = RLock()
        self.logger = logging.getLogger("token_ledger.events")

    @staticmethod
    def _handler_name(handler: Callable) -> str:
        return getattr(handler, "__name__", repr(handler))

    def subscribe(self, event_type: LedgerEvent, handler: Callable) -> None:
        """Subscribe to a specific event type"""
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)
            self.logger.debug(f"Subscribed handler {self._handler_name(handler)} to {event_type.value}")

    def subscribe_all(self, handler: Callable) -> None:
        """Subscribe to ALL events"""
        with self._lock:
            self._global_handlers.append(handler)
            self.logger.debug(f"Subscribed global handler {self._handler_name(handler)}")

    def unsubscribe(self, event_type: LedgerEvent, handler: Callable) -> None:
        """Unsubscribe from a specific event type"""
        with self._lock:
            try:
                self._handlers.get(event_type, []).remove(handler)
                self.logger.debug(f"Unsubscribed handler {self._handler_name(handler)} from {event_type.value}")
            except ValueError:
                self.logger.warning(f"Handler {self._handler_name(handler)} was not subscribed to {event_type.value}")

    def unsubscribe_all(self, handler: Callable) -> None:
        """Remove a catch-all handler"""
        with self._lock:
            try:
                self._global_handlers.remove(handler)
                self.logger.debug(f"Unsubscribed global handler {self._handler_name(handler)}")
            except ValueError:
                self.logger.warning(f"Global handler {self._handler_name(handler)} was not subscribed")

    def publish(self, event: EventPayload) -> None:
        """
        Publish event to all subscribers

        Handlers run synchronously in subscription order, specific handlers
        first. A failing handler is logged and skipped; it never propagates
        into the operation that emitted the event.
        """
        with self._lock:
            handlers = list(self._handlers.get(event.event_type, []))
            global_handlers = list(self._global_handlers)

        self.logger.debug(f"Publishing {event.event_type.value} {event.event_id}")

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                self.logger.error(f"Error in event handler {self._handler_name(handler)} for {event.event_type.value}: {e}")

        for handler in global_handlers:
            try:
                handler(event)
            except Exception as e:
                self.logger.error(f"Error in global event handler {self._handler_name(handler)} for {event.event_type.value}: {e}")

    def clear(self) -> None:
        """Clear all handlers"""
        with self._lock:
            self._handlers.clear()
            self._global_handlers.clear()
            self.logger.info("All event handlers cleared")

    def get_handler_count(self, event_type: Optional[LedgerEvent] = None) -> int:
        """Get count of handlers for a specific event type or all"""
        with self._lock:
            if event_type:
                return len(self._handlers.get(event_type, []))
            total = sum(len(handlers) for handlers in self._handlers.values())
            return total + len(self._global_handlers)


def create_transfer_event(sender: str, recipient: str, value: int) -> EventPayload:
    """Transfer(from, to, value)"""
    return EventPayload(
        event_type=LedgerEvent.TRANSFER,
        data={"from": sender, "to": recipient, "value": value}
    )


def create_approval_event(owner: str, spender: str, value: int) -> EventPayload:
    """Approval(owner, spender, value)"""
    return EventPayload(
        event_type=LedgerEvent.APPROVAL,
        data={"owner": owner, "spender": spender, "value": value}
    )


def create_ownership_event(event_type: LedgerEvent, previous_owner: Optional[str],
                           new_owner: Optional[str]) -> EventPayload:
    """OwnershipTransferStarted / OwnershipTransferred(previous_owner, new_owner)"""
    return EventPayload(
        event_type=event_type,
        data={"previous_owner": previous_owner, "new_owner": new_owner}
    )
