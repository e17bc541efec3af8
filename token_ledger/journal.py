"""
Notification Journal Module

Hash-chained, append-only record of every notification the ledger emits,
with SHA-256 chaining for tamper detection. Acts as the reference indexer:
the balance and allowance tables can be rebuilt from the journal alone.
"""

import hashlib
import json
import threading
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from .accounts import is_null_account
from .events import EventDispatcher, EventPayload, LedgerEvent
from .storage import StorageInterface


@dataclass
class JournalRecord:
    """One notification, chained to the record before it"""
    sequence: int
    event_id: str
    event_type: LedgerEvent
    data: Dict[str, Any]
    timestamp: datetime
    previous_hash: str
    current_hash: str = ""

    def calculate_hash(self) -> str:
        """
        Calculate SHA-256 hash of this record
        Hash includes all fields except current_hash to prevent circular reference
        """
        hash_data = {
            'sequence': self.sequence,
            'event_id': self.event_id,
            'event_type': self.event_type.value,
            'data': self.data,
            'timestamp': self.timestamp.isoformat(),
            'previous_hash': self.previous_hash
        }
        # Deterministic JSON; large ints stay exact
        json_data = json.dumps(hash_data, sort_keys=True, separators=(',', ':'), default=str)
        return hashlib.sha256(json_data.encode('utf-8')).hexdigest()

    def verify_hash(self) -> bool:
        return self.current_hash == self.calculate_hash()

    def involves(self, account: str) -> bool:
        """True when account is named in any address field of the record"""
        return any(value == account for value in self.data.values() if isinstance(value, str))

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result['event_type'] = self.event_type.value
        result['timestamp'] = self.timestamp.isoformat()
        # Amounts as strings so every backend round-trips them exactly
        result['data'] = {k: str(v) if isinstance(v, int) else v for k, v in self.data.items()}
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'JournalRecord':
        payload = dict(data['data'])
        if 'value' in payload:
            payload['value'] = int(payload['value'])
        return cls(
            sequence=data['sequence'],
            event_id=data['event_id'],
            event_type=LedgerEvent(data['event_type']),
            data=payload,
            timestamp=datetime.fromisoformat(data['timestamp']),
            previous_hash=data['previous_hash'],
            current_hash=data['current_hash']
        )


class EventJournal:
    """
    Append-only journal fed by an EventDispatcher

    When storage is given, records are persisted and an existing chain is
    picked up where it left off.
    """

    def __init__(self, storage: Optional[StorageInterface] = None, table_name: str = "journal"):
        self.storage = storage
        self.table_name = table_name
        self._records: List[JournalRecord] = []
        self._lock = threading.Lock()
        self._dispatcher: Optional[EventDispatcher] = None

        if storage is not None:
            self._records = [JournalRecord.from_dict(r) for r in storage.load_all(table_name)]
            self._records.sort(key=lambda r: r.sequence)

    def attach(self, dispatcher: EventDispatcher) -> None:
        """Start recording everything published on dispatcher"""
        dispatcher.subscribe_all(self.record)
        self._dispatcher = dispatcher

    def detach(self) -> None:
        if self._dispatcher is not None:
            self._dispatcher.unsubscribe_all(self.record)
            self._dispatcher = None

    def record(self, event: EventPayload) -> JournalRecord:
        """Append one notification to the chain"""
        with self._lock:
            previous_hash = self._records[-1].current_hash if self._records else ""
            entry = JournalRecord(
                sequence=len(self._records) + 1,
                event_id=event.event_id,
                event_type=event.event_type,
                data=dict(event.data),
                timestamp=event.timestamp,
                previous_hash=previous_hash
            )
            entry.current_hash = entry.calculate_hash()

            if self.storage is not None:
                self.storage.save(self.table_name, str(entry.sequence), entry.to_dict())
            self._records.append(entry)
            return entry

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def entries(
        self,
        account: Optional[str] = None,
        event_type: Optional[LedgerEvent] = None,
        limit: Optional[int] = None
    ) -> List[JournalRecord]:
        """
        Journal records in sequence order

        Args:
            account: Only records naming this account in any field
            event_type: Only records of this type
            limit: Keep only the most recent `limit` matches
        """
        with self._lock:
            records = list(self._records)

        if account is not None:
            records = [r for r in records if r.involves(account)]
        if event_type is not None:
            records = [r for r in records if r.event_type == event_type]
        if limit is not None:
            records = records[-limit:] if limit > 0 else []
        return records

    def verify_integrity(self) -> Dict[str, Any]:
        """
        Walk the chain and report the first broken link, if any

        Returns:
            Dictionary with 'valid', 'total_records' and, on failure,
            'broken_at' (sequence number) and 'reason'
        """
        with self._lock:
            records = list(self._records)

        previous_hash = ""
        for expected_sequence, entry in enumerate(records, start=1):
            if entry.sequence != expected_sequence:
                return {'valid': False, 'total_records': len(records),
                        'broken_at': entry.sequence, 'reason': 'sequence gap'}
            if entry.previous_hash != previous_hash:
                return {'valid': False, 'total_records': len(records),
                        'broken_at': entry.sequence, 'reason': 'chain link mismatch'}
            if not entry.verify_hash():
                return {'valid': False, 'total_records': len(records),
                        'broken_at': entry.sequence, 'reason': 'hash mismatch'}
            previous_hash = entry.current_hash

        return {'valid': True, 'total_records': len(records)}

    def replay_balances(self) -> Dict[str, int]:
        """Rebuild non-zero balances from Transfer records only"""
        balances: Dict[str, int] = {}
        for entry in self.entries(event_type=LedgerEvent.TRANSFER):
            sender, recipient, value = entry.data['from'], entry.data['to'], entry.data['value']
            if not is_null_account(sender):
                balances[sender] = balances.get(sender, 0) - value
            balances[recipient] = balances.get(recipient, 0) + value
        return {account: balance for account, balance in balances.items() if balance}

    def replay_allowances(self) -> Dict[Tuple[str, str], int]:
        """
        Last approved value per (owner, spender)

        Approval records carry the value after each change. Allowance spent
        by delegated transfers is not visible here: Transfer records do not
        name the spender.
        """
        allowances: Dict[Tuple[str, str], int] = {}
        for entry in self.entries(event_type=LedgerEvent.APPROVAL):
            allowances[(entry.data['owner'], entry.data['spender'])] = entry.data['value']
        return {key: value for key, value in allowances.items() if value}
