"""
Ledger system wiring and caller-identity dependencies
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..config import LedgerConfig, get_config
from ..events import EventDispatcher
from ..exceptions import LedgerError, NotOwner, ReentrantCall
from ..journal import EventJournal
from ..ledger import TOKEN_RECORD_ID, TOKEN_TABLE, TokenLedger
from ..ownership import Ownership
from ..storage import StorageInterface, create_storage


security = HTTPBearer(auto_error=False)


class LedgerSystem:
    """Ledger with its storage, dispatcher, journal and optional ownership"""

    def __init__(self, config: Optional[LedgerConfig] = None,
                 storage: Optional[StorageInterface] = None):
        self.config = config or get_config()
        self.storage = storage or create_storage(self.config.database_url)
        self.event_dispatcher = EventDispatcher()

        # Journal subscribes first so it sees the genesis Transfer
        self.journal: Optional[EventJournal] = None
        if self.config.enable_journal:
            self.journal = EventJournal(self.storage)
            self.journal.attach(self.event_dispatcher)

        if self.storage.exists(TOKEN_TABLE, TOKEN_RECORD_ID):
            self.ledger = TokenLedger.restore(self.storage, self.event_dispatcher)
        else:
            self.ledger = TokenLedger.from_config(self.config, self.event_dispatcher, self.storage)

        self.ownership: Optional[Ownership] = None
        if self.config.enable_ownership:
            self.ownership = Ownership(self.ledger.initial_holder, self.event_dispatcher)

    def close(self) -> None:
        if self.journal is not None:
            self.journal.detach()
        self.storage.close()


# Global ledger system instance, built on first use
_ledger_system: Optional[LedgerSystem] = None


def get_ledger_system() -> LedgerSystem:
    global _ledger_system
    if _ledger_system is None:
        _ledger_system = LedgerSystem()
    return _ledger_system


def get_caller(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    system: LedgerSystem = Depends(get_ledger_system)
) -> str:
    """
    Resolve the account invoking the operation

    With auth enabled the caller is the `sub` claim of a bearer JWT;
    otherwise it is taken from the configured caller header.
    """
    config = system.config
    if not config.auth_enabled:
        caller = request.headers.get(config.caller_header)
        if not caller:
            raise HTTPException(status_code=401, detail=f"Missing {config.caller_header} header")
        return caller

    if not credentials:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        payload = jwt.decode(credentials.credentials, config.jwt_secret, algorithms=[config.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")

    caller = payload.get("sub")
    if not caller:
        raise HTTPException(status_code=401, detail="Invalid token")
    return caller


def issue_caller_token(account: str, config: Optional[LedgerConfig] = None) -> str:
    """Sign a bearer token naming account as the caller"""
    config = config or get_config()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": account,
        "iat": now,
        "exp": now + timedelta(hours=config.jwt_expiry_hours)
    }
    return jwt.encode(payload, config.jwt_secret, algorithm=config.jwt_algorithm)


def ledger_http_error(error: LedgerError) -> HTTPException:
    """Map a ledger failure onto an HTTP error response"""
    if isinstance(error, ReentrantCall):
        status_code = status.HTTP_409_CONFLICT
    elif isinstance(error, NotOwner):
        status_code = status.HTTP_403_FORBIDDEN
    else:
        status_code = status.HTTP_400_BAD_REQUEST
    return HTTPException(
        status_code=status_code,
        detail={"error": type(error).__name__, "message": str(error)}
    )
