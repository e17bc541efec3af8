"""
Ownership Module

Optional owner role kept next to the ledger, never inside it: nothing in
TokenLedger consults it. Supports two-step transfer (propose, then accept)
and renouncement.
"""

import threading
from typing import Optional

from .accounts import is_null_account, require_account
from .events import EventDispatcher, LedgerEvent, create_ownership_event
from .exceptions import InvalidConfiguration, NotOwner
from .logging_config import get_logger, log_action


class Ownership:
    """Owner role with two-step handover"""

    def __init__(self, owner: str, event_dispatcher: Optional[EventDispatcher] = None):
        if is_null_account(owner):
            raise InvalidConfiguration("Initial owner must be a non-null account")
        self._owner: Optional[str] = owner
        self._pending_owner: Optional[str] = None
        self._lock = threading.Lock()
        self.event_dispatcher = event_dispatcher or EventDispatcher()
        self.logger = get_logger("token_ledger.ownership")

        self.event_dispatcher.publish(
            create_ownership_event(LedgerEvent.OWNERSHIP_TRANSFERRED, None, owner)
        )

    @property
    def owner(self) -> Optional[str]:
        """Current owner, None once renounced"""
        return self._owner

    @property
    def pending_owner(self) -> Optional[str]:
        return self._pending_owner

    def _require_owner(self, caller: str) -> None:
        if self._owner is None or caller != self._owner:
            raise NotOwner(f"{caller} is not the owner")

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        """
        Propose new_owner; the role moves only when they accept

        Proposing the null account cancels a pending handover.

        Raises:
            NotOwner: If caller is not the current owner
        """
        caller = require_account(caller)
        with self._lock:
            self._require_owner(caller)
            self._pending_owner = None if is_null_account(new_owner) else new_owner
            pending = self._pending_owner

        log_action(self.logger, "info", "Ownership transfer started",
                   user_id=caller, action="transfer_ownership",
                   extra={"pending_owner": pending})
        self.event_dispatcher.publish(
            create_ownership_event(LedgerEvent.OWNERSHIP_TRANSFER_STARTED, caller, pending)
        )

    def accept_ownership(self, caller: str) -> None:
        """
        Complete a handover started by transfer_ownership

        Raises:
            NotOwner: If caller is not the pending owner
        """
        caller = require_account(caller)
        with self._lock:
            if self._pending_owner is None or caller != self._pending_owner:
                raise NotOwner(f"{caller} is not the pending owner")
            previous = self._owner
            self._owner = caller
            self._pending_owner = None

        log_action(self.logger, "info", "Ownership accepted",
                   user_id=caller, action="accept_ownership",
                   extra={"previous_owner": previous})
        self.event_dispatcher.publish(
            create_ownership_event(LedgerEvent.OWNERSHIP_TRANSFERRED, previous, caller)
        )

    def renounce_ownership(self, caller: str) -> None:
        """Give up the role for good; clears any pending handover"""
        caller = require_account(caller)
        with self._lock:
            self._require_owner(caller)
            self._owner = None
            self._pending_owner = None

        log_action(self.logger, "info", "Ownership renounced",
                   user_id=caller, action="renounce_ownership")
        self.event_dispatcher.publish(
            create_ownership_event(LedgerEvent.OWNERSHIP_TRANSFERRED, caller, None)
        )
