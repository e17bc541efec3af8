"""
Test suite for the optional owner role

Tests two-step handover, cancellation and renouncement.
"""

import pytest

from token_ledger.events import EventDispatcher, LedgerEvent
from token_ledger.exceptions import InvalidConfiguration, NotOwner
from token_ledger.ownership import Ownership


ALICE = "alice"
BOB = "bob"
CAROL = "carol"


class TestOwnership:
    """Test ownership lifecycle"""

    def setup_method(self):
        self.dispatcher = EventDispatcher()
        self.events = []
        self.dispatcher.subscribe_all(self.events.append)
        self.ownership = Ownership(ALICE, self.dispatcher)

    def test_initial_owner(self):
        """Test construction announces the first owner"""
        assert self.ownership.owner == ALICE
        assert self.ownership.pending_owner is None
        assert self.events[0].event_type == LedgerEvent.OWNERSHIP_TRANSFERRED
        assert self.events[0].data == {"previous_owner": None, "new_owner": ALICE}

    def test_null_owner_rejected(self):
        with pytest.raises(InvalidConfiguration):
            Ownership("0x" + "0" * 40)

    def test_two_step_transfer(self):
        """Test the role moves only on acceptance"""
        self.ownership.transfer_ownership(ALICE, BOB)
        assert self.ownership.owner == ALICE
        assert self.ownership.pending_owner == BOB

        self.ownership.accept_ownership(BOB)

        assert self.ownership.owner == BOB
        assert self.ownership.pending_owner is None
        assert [e.event_type for e in self.events[1:]] == [
            LedgerEvent.OWNERSHIP_TRANSFER_STARTED,
            LedgerEvent.OWNERSHIP_TRANSFERRED
        ]
        assert self.events[-1].data == {"previous_owner": ALICE, "new_owner": BOB}

    def test_only_owner_may_propose(self):
        with pytest.raises(NotOwner):
            self.ownership.transfer_ownership(BOB, BOB)
        assert self.ownership.pending_owner is None

    def test_only_pending_owner_may_accept(self):
        self.ownership.transfer_ownership(ALICE, BOB)

        with pytest.raises(NotOwner, match="pending owner"):
            self.ownership.accept_ownership(CAROL)
        assert self.ownership.owner == ALICE

    def test_accept_without_proposal(self):
        with pytest.raises(NotOwner):
            self.ownership.accept_ownership(BOB)

    def test_proposing_null_cancels(self):
        """Test a null proposal clears the pending handover"""
        self.ownership.transfer_ownership(ALICE, BOB)
        self.ownership.transfer_ownership(ALICE, "0x" + "0" * 40)

        assert self.ownership.pending_owner is None
        with pytest.raises(NotOwner):
            self.ownership.accept_ownership(BOB)

    def test_renounce(self):
        """Test renouncing leaves no owner and no pending owner"""
        self.ownership.transfer_ownership(ALICE, BOB)
        self.ownership.renounce_ownership(ALICE)

        assert self.ownership.owner is None
        assert self.ownership.pending_owner is None
        assert self.events[-1].data == {"previous_owner": ALICE, "new_owner": None}

        with pytest.raises(NotOwner):
            self.ownership.transfer_ownership(ALICE, BOB)
        with pytest.raises(NotOwner):
            self.ownership.accept_ownership(BOB)

    def test_not_owner_is_permission_error(self):
        with pytest.raises(PermissionError):
            self.ownership.renounce_ownership(BOB)
