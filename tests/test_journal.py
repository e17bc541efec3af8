"""
Test suite for the notification journal

Tests hash chaining, tamper detection, persistence and rebuilding the
ledger tables from notifications alone.
"""

import pytest

from token_ledger.accounts import NULL_ACCOUNT
from token_ledger.events import EventDispatcher, LedgerEvent, create_transfer_event
from token_ledger.journal import EventJournal, JournalRecord
from token_ledger.ledger import TokenLedger
from token_ledger.storage import InMemoryStorage, SQLiteStorage


ALICE = "alice"
BOB = "bob"
CAROL = "carol"
SPENDER = "spender"


class TestEventJournal:
    """Test journal recording fed by a ledger"""

    def setup_method(self):
        self.dispatcher = EventDispatcher()
        self.journal = EventJournal()
        self.journal.attach(self.dispatcher)
        self.ledger = TokenLedger(ALICE, 1000, event_dispatcher=self.dispatcher)

    def test_genesis_recorded(self):
        """Test the genesis Transfer is the first record"""
        records = self.journal.entries()

        assert len(records) == 1
        assert records[0].sequence == 1
        assert records[0].event_type == LedgerEvent.TRANSFER
        assert records[0].data == {"from": NULL_ACCOUNT, "to": ALICE, "value": 1000}
        assert records[0].previous_hash == ""

    def test_chain_links(self):
        """Test each record points at its predecessor"""
        self.ledger.transfer(ALICE, BOB, 10)
        self.ledger.approve(ALICE, SPENDER, 5)

        records = self.journal.entries()
        assert [r.sequence for r in records] == [1, 2, 3]
        assert records[1].previous_hash == records[0].current_hash
        assert records[2].previous_hash == records[1].current_hash
        assert self.journal.verify_integrity() == {'valid': True, 'total_records': 3}

    def test_failed_operations_not_recorded(self):
        """Test rejected calls leave no notification"""
        with pytest.raises(ValueError):
            self.ledger.transfer(BOB, ALICE, 1)

        assert len(self.journal) == 1

    def test_tampering_detected(self):
        """Test editing a recorded value breaks the chain"""
        self.ledger.transfer(ALICE, BOB, 10)
        self.ledger.transfer(BOB, CAROL, 4)

        self.journal._records[1].data["value"] = 1_000_000

        result = self.journal.verify_integrity()
        assert result['valid'] is False
        assert result['broken_at'] == 2
        assert result['reason'] == 'hash mismatch'

    def test_relinking_detected(self):
        """Test a rehashed record still breaks the next link"""
        self.ledger.transfer(ALICE, BOB, 10)
        self.ledger.transfer(BOB, CAROL, 4)

        forged = self.journal._records[1]
        forged.data["value"] = 11
        forged.current_hash = forged.calculate_hash()

        result = self.journal.verify_integrity()
        assert result['valid'] is False
        assert result['broken_at'] == 3
        assert result['reason'] == 'chain link mismatch'

    def test_filter_by_account_and_type(self):
        self.ledger.transfer(ALICE, BOB, 10)
        self.ledger.approve(BOB, SPENDER, 3)
        self.ledger.transfer(ALICE, CAROL, 1)

        assert [r.sequence for r in self.journal.entries(account=BOB)] == [2, 3]
        assert [r.sequence for r in self.journal.entries(event_type=LedgerEvent.APPROVAL)] == [3]
        assert [r.sequence for r in self.journal.entries(limit=2)] == [3, 4]
        assert self.journal.entries(limit=0) == []

    def test_replay_balances_matches_ledger(self):
        """Test an indexer rebuilds the exact balance table"""
        self.ledger.transfer(ALICE, BOB, 300)
        self.ledger.approve(BOB, SPENDER, 200)
        self.ledger.transfer_from(SPENDER, BOB, CAROL, 150)
        self.ledger.transfer(CAROL, CAROL, 50)
        self.ledger.transfer(CAROL, ALICE, 150)

        assert self.journal.replay_balances() == self.ledger.holders()

    def test_replay_allowances(self):
        """Test the last Approval per pair wins"""
        self.ledger.approve(ALICE, SPENDER, 50)
        self.ledger.approve(ALICE, SPENDER, 30)
        self.ledger.approve(ALICE, BOB, 5)
        self.ledger.approve(ALICE, BOB, 0)

        assert self.journal.replay_allowances() == {(ALICE, SPENDER): 30}

    def test_detach_stops_recording(self):
        self.journal.detach()
        self.ledger.transfer(ALICE, BOB, 1)
        assert len(self.journal) == 1


class TestJournalPersistence:
    """Test journals backed by storage"""

    @pytest.mark.parametrize("storage_factory", [InMemoryStorage, SQLiteStorage])
    def test_chain_continues_after_reload(self, storage_factory):
        """Test a reopened journal extends the stored chain"""
        storage = storage_factory()
        first = EventJournal(storage)
        first.record(create_transfer_event(NULL_ACCOUNT, ALICE, 10 ** 27))
        first.record(create_transfer_event(ALICE, BOB, 5))

        reopened = EventJournal(storage)
        reopened.record(create_transfer_event(BOB, CAROL, 2))

        records = reopened.entries()
        assert [r.sequence for r in records] == [1, 2, 3]
        assert records[0].data["value"] == 10 ** 27
        assert reopened.verify_integrity()['valid'] is True
        assert reopened.replay_balances() == {ALICE: 10 ** 27 - 5, BOB: 3, CAROL: 2}

    def test_involves(self):
        """Test address fields match and amounts never do"""
        journal = EventJournal()
        record = journal.record(create_transfer_event(ALICE, BOB, 10))

        assert record.involves(ALICE)
        assert record.involves(BOB)
        assert not record.involves(CAROL)
        assert not record.involves("10")

    def test_record_round_trip(self):
        """Test to_dict/from_dict keeps the hash valid"""
        journal = EventJournal()
        record = journal.record(create_transfer_event(ALICE, BOB, 2 ** 200))

        restored = JournalRecord.from_dict(record.to_dict())

        assert restored.data == record.data
        assert restored.verify_hash()
