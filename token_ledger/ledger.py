"""
Token Ledger Engine

Authoritative balance and allowance tables for a single fixed-supply token.
The whole supply is credited to one holder at construction; afterwards
tokens only move between accounts, so the sum of all balances always equals
the total supply. Every subtraction is checked, every mutating call runs
under the reentrancy guard, and notifications go out only after the new
state is committed.
"""

import functools
import json
import threading
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .accounts import NULL_ACCOUNT, is_null_account, require_account, short_account
from .amounts import (
    DEFAULT_DECIMALS, UINT8_MAX, checked_add, checked_sub, is_uint256, require_amount
)
from .events import (
    EventDispatcher, EventPayload, create_approval_event, create_transfer_event
)
from .exceptions import (
    InsufficientAllowance, InsufficientBalance, InvalidConfiguration, InvalidRecipient,
    InvalidSender, InvalidSpender, InvariantViolation, LedgerError
)
from .guard import ReentrancyGuard
from .logging_config import get_logger, log_action
from .storage import StorageInterface


TOKEN_TABLE = "token"
BALANCES_TABLE = "balances"
ALLOWANCES_TABLE = "allowances"
TOKEN_RECORD_ID = "token"


@dataclass(frozen=True)
class TokenMetadata:
    """Descriptive token metadata, echoed verbatim by the accessors"""
    name: str
    symbol: str
    decimals: int = DEFAULT_DECIMALS


def _mutating(operation: str):
    """Run a ledger entry point under the guard and log rejections"""
    def decorator(method):
        @functools.wraps(method)
        def wrapper(self, caller, *args, **kwargs):
            try:
                with self._guard.enter(operation):
                    return method(self, caller, *args, **kwargs)
            except LedgerError as e:
                log_action(
                    self.logger, "warning", f"{operation} rejected: {e}",
                    user_id=caller if isinstance(caller, str) else None,
                    action=operation,
                    extra={"error": type(e).__name__}
                )
                raise
        return wrapper
    return decorator


def _allowance_record_id(owner: str, spender: str) -> str:
    return json.dumps([owner, spender])


class TokenLedger:
    """
    Fixed-supply fungible token ledger

    Balances and allowances live in this instance only; create as many
    ledgers as needed. Attach a StorageInterface to have every commit
    written through to it.
    """

    def __init__(
        self,
        initial_holder: str,
        total_supply: int,
        name: str = "",
        symbol: str = "",
        decimals: int = DEFAULT_DECIMALS,
        event_dispatcher: Optional[EventDispatcher] = None,
        storage: Optional[StorageInterface] = None
    ):
        """
        Create the ledger and credit the whole supply to initial_holder

        Args:
            initial_holder: Account receiving the entire supply
            total_supply: Fixed supply in smallest units
            name: Token name
            symbol: Token symbol
            decimals: Denomination scale (0-255)
            event_dispatcher: Where notifications are published
            storage: Optional backend the state is written through to

        Raises:
            InvalidConfiguration: Null holder, supply outside uint256,
                decimals outside uint8, or storage already holding a ledger
        """
        if not isinstance(initial_holder, (str, type(None))) or is_null_account(initial_holder):
            raise InvalidConfiguration("Initial holder must be a non-null account")
        if not is_uint256(total_supply):
            raise InvalidConfiguration(f"Total supply must be an integer in [0, 2**256 - 1], got {total_supply!r}")
        if isinstance(decimals, bool) or not isinstance(decimals, int) or not 0 <= decimals <= UINT8_MAX:
            raise InvalidConfiguration(f"Decimals must be an integer in [0, 255], got {decimals!r}")
        if storage is not None and storage.exists(TOKEN_TABLE, TOKEN_RECORD_ID):
            raise InvalidConfiguration("Storage already holds a ledger; use TokenLedger.restore")

        self._setup(
            metadata=TokenMetadata(name=name, symbol=symbol, decimals=decimals),
            total_supply=total_supply,
            initial_holder=initial_holder,
            event_dispatcher=event_dispatcher,
            storage=storage
        )
        self._genesis()

    def _setup(
        self,
        metadata: TokenMetadata,
        total_supply: int,
        initial_holder: str,
        event_dispatcher: Optional[EventDispatcher],
        storage: Optional[StorageInterface]
    ) -> None:
        self._metadata = metadata
        self._total_supply = total_supply
        self.initial_holder = initial_holder
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}
        self._guard = ReentrancyGuard()
        # Held only while writes are applied, so readers never see half a transfer
        self._state_lock = threading.Lock()
        self.event_dispatcher = event_dispatcher or EventDispatcher()
        self.storage = storage
        self.logger = get_logger("token_ledger.ledger")

    def _genesis(self) -> None:
        with self._guard.enter("construct"):
            if self.storage is not None:
                with self.storage.atomic():
                    self.storage.save(TOKEN_TABLE, TOKEN_RECORD_ID, {
                        "name": self._metadata.name,
                        "symbol": self._metadata.symbol,
                        "decimals": self._metadata.decimals,
                        "total_supply": str(self._total_supply),
                        "initial_holder": self.initial_holder
                    })
                    self._persist_balance(self.initial_holder, self._total_supply)

            with self._state_lock:
                if self._total_supply:
                    self._balances[self.initial_holder] = self._total_supply

            log_action(
                self.logger, "info", "Ledger created",
                user_id=self.initial_holder, action="construct",
                resource=f"token:{self._metadata.symbol}",
                extra={"total_supply": str(self._total_supply), "decimals": self._metadata.decimals}
            )
            # Mint-at-genesis convention: Transfer from the null account
            self._emit(create_transfer_event(NULL_ACCOUNT, self.initial_holder, self._total_supply))

    @classmethod
    def from_config(
        cls,
        config,
        event_dispatcher: Optional[EventDispatcher] = None,
        storage: Optional[StorageInterface] = None
    ) -> 'TokenLedger':
        """Build a ledger from a LedgerConfig"""
        return cls(
            initial_holder=config.initial_holder,
            total_supply=config.total_supply,
            name=config.token_name,
            symbol=config.token_symbol,
            decimals=config.token_decimals,
            event_dispatcher=event_dispatcher,
            storage=storage
        )

    @classmethod
    def restore(
        cls,
        storage: StorageInterface,
        event_dispatcher: Optional[EventDispatcher] = None
    ) -> 'TokenLedger':
        """
        Rebuild a ledger from previously persisted state

        No genesis notification is emitted.

        Raises:
            InvalidConfiguration: If storage holds no ledger or the stored
                balances do not add up to the stored supply
        """
        token = storage.load(TOKEN_TABLE, TOKEN_RECORD_ID)
        if not token:
            raise InvalidConfiguration("Storage holds no ledger to restore")

        ledger = cls.__new__(cls)
        ledger._setup(
            metadata=TokenMetadata(
                name=token["name"],
                symbol=token["symbol"],
                decimals=int(token["decimals"])
            ),
            total_supply=int(token["total_supply"]),
            initial_holder=token["initial_holder"],
            event_dispatcher=event_dispatcher,
            storage=storage
        )

        for record in storage.load_all(BALANCES_TABLE):
            balance = int(record["balance"])
            if not is_uint256(balance):
                raise InvalidConfiguration(f"Stored balance out of range for {record['account']}")
            if balance:
                ledger._balances[record["account"]] = balance

        for record in storage.load_all(ALLOWANCES_TABLE):
            value = int(record["amount"])
            if not is_uint256(value):
                raise InvalidConfiguration(f"Stored allowance out of range for {record['owner']}")
            if value:
                ledger._allowances[(record["owner"], record["spender"])] = value

        stored_sum = sum(ledger._balances.values())
        if stored_sum != ledger._total_supply:
            raise InvalidConfiguration(
                f"Stored balances sum to {stored_sum}, expected total supply {ledger._total_supply}"
            )

        log_action(
            ledger.logger, "info", "Ledger restored from storage",
            action="restore", resource=f"token:{ledger.symbol}",
            extra={"holders": len(ledger._balances), "allowances": len(ledger._allowances)}
        )
        return ledger

    # Read-only queries

    @property
    def metadata(self) -> TokenMetadata:
        return self._metadata

    @property
    def name(self) -> str:
        return self._metadata.name

    @property
    def symbol(self) -> str:
        return self._metadata.symbol

    @property
    def decimals(self) -> int:
        return self._metadata.decimals

    @property
    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, account: str) -> int:
        """Balance of an account, 0 for accounts never seen"""
        with self._state_lock:
            return self._balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        """Amount spender may still move out of owner's balance"""
        with self._state_lock:
            return self._allowances.get((owner, spender), 0)

    def holders(self) -> Dict[str, int]:
        """Consistent snapshot of every non-zero balance"""
        with self._state_lock:
            return dict(self._balances)

    def check_invariants(self) -> None:
        """
        Verify conservation of supply and non-negativity

        Raises:
            InvariantViolation: If any invariant does not hold
        """
        with self._state_lock:
            balances = dict(self._balances)
            allowances = dict(self._allowances)

        for account, balance in balances.items():
            if not is_uint256(balance):
                raise InvariantViolation(f"Balance of {account} out of range: {balance}")
        for (owner, spender), value in allowances.items():
            if not is_uint256(value):
                raise InvariantViolation(f"Allowance {owner}->{spender} out of range: {value}")

        total = sum(balances.values())
        if total != self._total_supply:
            raise InvariantViolation(f"Balances sum to {total}, total supply is {self._total_supply}")

    # Mutating entry points

    @_mutating("transfer")
    def transfer(self, caller: str, to: str, amount: int) -> bool:
        """
        Move amount from caller's balance to `to`

        Self-transfers are allowed; they leave balances unchanged but still
        require the balance and still emit Transfer.

        Raises:
            InvalidRecipient: If `to` is the null account
            InvalidSender: If caller is the null account
            InvalidAmount: If amount is not a uint256
            InsufficientBalance: If caller holds less than amount
            ReentrantCall: If another mutating call is in progress
        """
        caller = require_account(caller)
        self._require_recipient(to)
        require_amount(amount)
        if is_null_account(caller):
            raise InvalidSender("Transfer from the null account")

        self._require_balance(caller, amount)

        self._commit(balances=self._debit_credit(caller, to, amount))

        log_action(
            self.logger, "info", f"Transferred {amount} to {short_account(to)}",
            user_id=caller, action="transfer", resource=f"account:{to}",
            extra={"from": caller, "to": to, "amount": str(amount)}
        )
        self._emit(create_transfer_event(caller, to, amount))
        return True

    @_mutating("approve")
    def approve(self, caller: str, spender: str, amount: int) -> bool:
        """
        Set spender's allowance over caller's balance to exactly amount

        This overwrites; it never adds to the previous value. Change a
        non-zero allowance by approving 0 first to avoid the front-running
        double spend, or use increase_allowance / decrease_allowance.

        Raises:
            InvalidSpender: If spender is the null account
            InvalidSender: If caller is the null account
            InvalidAmount: If amount is not a uint256
        """
        caller = require_account(caller)
        self._require_spender(spender)
        require_amount(amount)
        if is_null_account(caller):
            raise InvalidSender("Approval from the null account")

        self._set_allowance(caller, spender, amount, action="approve")
        return True

    @_mutating("transfer_from")
    def transfer_from(self, caller: str, from_account: str, to: str, amount: int) -> bool:
        """
        Move amount from from_account to `to`, spending caller's allowance

        Both the balance and the allowance are checked before anything is
        written.

        Raises:
            InvalidRecipient: If `to` is the null account
            InvalidSender: If from_account or caller is the null account
            InvalidAmount: If amount is not a uint256
            InsufficientBalance: If from_account holds less than amount
            InsufficientAllowance: If caller may move less than amount
        """
        caller = require_account(caller)
        from_account = require_account(from_account)
        self._require_recipient(to)
        require_amount(amount)
        if is_null_account(from_account) or is_null_account(caller):
            raise InvalidSender("Delegated transfer involving the null account")

        self._require_balance(from_account, amount)
        current = self._allowances.get((from_account, caller), 0)
        if current < amount:
            raise InsufficientAllowance(from_account, caller, current, amount)

        self._commit(
            balances=self._debit_credit(from_account, to, amount),
            allowances={(from_account, caller): checked_sub(current, amount)}
        )

        log_action(
            self.logger, "info", f"Delegated transfer of {amount} to {short_account(to)}",
            user_id=caller, action="transfer_from", resource=f"account:{to}",
            extra={"from": from_account, "to": to, "spender": caller, "amount": str(amount)}
        )
        self._emit(create_transfer_event(from_account, to, amount))
        return True

    @_mutating("increase_allowance")
    def increase_allowance(self, caller: str, spender: str, added: int) -> bool:
        """Raise spender's allowance by `added`; emits Approval with the new value"""
        caller = require_account(caller)
        self._require_spender(spender)
        require_amount(added)
        if is_null_account(caller):
            raise InvalidSender("Approval from the null account")

        current = self._allowances.get((caller, spender), 0)
        self._set_allowance(caller, spender, checked_add(current, added), action="increase_allowance")
        return True

    @_mutating("decrease_allowance")
    def decrease_allowance(self, caller: str, spender: str, subtracted: int) -> bool:
        """
        Lower spender's allowance by `subtracted`; emits Approval with the new value

        Raises:
            InsufficientAllowance: If the current allowance is below subtracted
        """
        caller = require_account(caller)
        self._require_spender(spender)
        require_amount(subtracted)
        if is_null_account(caller):
            raise InvalidSender("Approval from the null account")

        current = self._allowances.get((caller, spender), 0)
        if current < subtracted:
            raise InsufficientAllowance(caller, spender, current, subtracted)

        self._set_allowance(caller, spender, checked_sub(current, subtracted), action="decrease_allowance")
        return True

    # Internals. Callers hold the guard.

    def _require_recipient(self, to: str) -> None:
        if is_null_account(to):
            raise InvalidRecipient("Cannot transfer to the null account")

    def _require_spender(self, spender: str) -> None:
        if is_null_account(spender):
            raise InvalidSpender("Cannot approve the null account")

    def _require_balance(self, account: str, amount: int) -> None:
        balance = self._balances.get(account, 0)
        if balance < amount:
            raise InsufficientBalance(account, balance, amount)

    def _debit_credit(self, sender: str, recipient: str, amount: int) -> Dict[str, int]:
        """New balances after moving amount; a self-transfer nets to the old value"""
        updates = {sender: checked_sub(self._balances.get(sender, 0), amount)}
        recipient_balance = updates.get(recipient, self._balances.get(recipient, 0))
        updates[recipient] = checked_add(recipient_balance, amount)
        return updates

    def _set_allowance(self, owner: str, spender: str, value: int, action: str) -> None:
        self._commit(allowances={(owner, spender): value})

        log_action(
            self.logger, "info", f"Allowance for {short_account(spender)} set to {value}",
            user_id=owner, action=action, resource=f"allowance:{spender}",
            extra={"owner": owner, "spender": spender, "amount": str(value)}
        )
        self._emit(create_approval_event(owner, spender, value))

    def _commit(
        self,
        balances: Optional[Dict[str, int]] = None,
        allowances: Optional[Dict[Tuple[str, str], int]] = None
    ) -> None:
        """Write changes to storage first, then to the in-memory tables"""
        balances = balances or {}
        allowances = allowances or {}

        if self.storage is not None:
            with self.storage.atomic():
                for account, balance in balances.items():
                    self._persist_balance(account, balance)
                for (owner, spender), value in allowances.items():
                    self._persist_allowance(owner, spender, value)

        with self._state_lock:
            for account, balance in balances.items():
                if balance:
                    self._balances[account] = balance
                else:
                    self._balances.pop(account, None)
            for key, value in allowances.items():
                if value:
                    self._allowances[key] = value
                else:
                    self._allowances.pop(key, None)

    def _persist_balance(self, account: str, balance: int) -> None:
        if balance:
            self.storage.save(BALANCES_TABLE, account, {"account": account, "balance": str(balance)})
        else:
            self.storage.delete(BALANCES_TABLE, account)

    def _persist_allowance(self, owner: str, spender: str, value: int) -> None:
        record_id = _allowance_record_id(owner, spender)
        if value:
            self.storage.save(ALLOWANCES_TABLE, record_id, {
                "owner": owner, "spender": spender, "amount": str(value)
            })
        else:
            self.storage.delete(ALLOWANCES_TABLE, record_id)

    def _emit(self, event: EventPayload) -> None:
        self.event_dispatcher.publish(event)
