# pixelmint/ledger.py
"""
Registration ledger and committer.

The ledger is the authoritative record of registrations. Each entry
references a description record by locator and carries the registering
identity's signature over its terms.

Commits are never retried here: resubmitting risks a duplicate
registration.
"""

import asyncio
import json
import logging
import threading
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import AuthorizationError, CommitError
from .identity import SigningCapability, address_for, verify_signature
from .record import Creator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistrationTerms:
    """
    What is being registered besides the record locator.

    Attributes:
        name: Human name of the asset
        symbol: Collection symbol
        seller_fee_basis_points: Royalty in basis points
        creators: Royalty/share table (shares must sum to 100)
        is_mutable: Whether the record reference may be updated later
    """
    name: str
    symbol: str = "PXCAN"
    seller_fee_basis_points: int = 0
    creators: List[Creator] = field(default_factory=list)
    is_mutable: bool = True


@dataclass(frozen=True)
class CommitReceipt:
    """Ledger acknowledgement of a committed registration."""
    registration_id: str
    record_locator: str
    signature: Dict[str, Any]


@dataclass
class Registration:
    """
    A committed ledger entry.

    Attributes:
        registration_id: Unique identifier assigned at commit
        uri: Locator of the description record
        name: Human name
        symbol: Collection symbol
        seller_fee_basis_points: Royalty in basis points
        creators: Royalty/share table
        is_mutable: Mutability flag
        owner: Address of the registering identity
        public_key: PEM public key of the owner
        signature: Owner's signature over payload()
        created_at: Commit timestamp
    """
    registration_id: str
    uri: str
    name: str
    symbol: str
    seller_fee_basis_points: int
    creators: List[Creator]
    is_mutable: bool
    owner: str
    public_key: bytes = b""
    signature: Dict[str, Any] = field(default_factory=dict)
    created_at: float = field(default_factory=time.time)

    def payload(self) -> Dict[str, Any]:
        """The signed portion of the registration."""
        return {
            "registration_id": self.registration_id,
            "uri": self.uri,
            "name": self.name,
            "symbol": self.symbol,
            "seller_fee_basis_points": self.seller_fee_basis_points,
            "creators": [c.to_dict() for c in self.creators],
            "is_mutable": self.is_mutable,
            "owner": self.owner,
        }

    def to_dict(self) -> Dict[str, Any]:
        data = self.payload()
        data["public_key"] = self.public_key.decode("utf-8")
        data["signature"] = self.signature
        data["created_at"] = self.created_at
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Registration":
        return cls(
            registration_id=data["registration_id"],
            uri=data["uri"],
            name=data["name"],
            symbol=data.get("symbol", ""),
            seller_fee_basis_points=data.get("seller_fee_basis_points", 0),
            creators=[Creator(**c) for c in data.get("creators", [])],
            is_mutable=data.get("is_mutable", True),
            owner=data["owner"],
            public_key=data.get("public_key", "").encode("utf-8"),
            signature=data.get("signature", {}),
            created_at=data.get("created_at", time.time()),
        )


class Ledger:
    """
    File-backed registration ledger.

    Structure:
        ledger_dir/
            ledger.json     # All registrations, keyed by registration_id
    """

    def __init__(self, ledger_dir: Path | str):
        self.ledger_dir = Path(ledger_dir)
        self.ledger_dir.mkdir(parents=True, exist_ok=True)
        self._registrations: Dict[str, Registration] = {}
        self._lock = threading.Lock()
        self._load()

    def _index_path(self) -> Path:
        return self.ledger_dir / "ledger.json"

    def _load(self):
        index_path = self._index_path()
        if index_path.exists():
            try:
                with open(index_path) as f:
                    data = json.load(f)
                self._registrations = {
                    reg_id: Registration.from_dict(reg_data)
                    for reg_id, reg_data in data.get("registrations", {}).items()
                }
            except (ValueError, KeyError, TypeError, AttributeError) as e:
                logger.warning(f"Failed to load ledger index: {e}")
                self._registrations = {}

    def _save(self):
        data = {
            "version": "1.0",
            "registrations": {
                reg_id: reg.to_dict() for reg_id, reg in self._registrations.items()
            },
        }
        with open(self._index_path(), "w") as f:
            json.dump(data, f, indent=2)

    def add(self, registration: Registration) -> Registration:
        with self._lock:
            if registration.registration_id in self._registrations:
                raise ValueError(f"Registration {registration.registration_id} already exists")
            self._registrations[registration.registration_id] = registration
            try:
                self._save()
            except OSError:
                del self._registrations[registration.registration_id]
                raise
        return registration

    def get(self, registration_id: str) -> Optional[Registration]:
        return self._registrations.get(registration_id)

    def list(self) -> List[Registration]:
        return list(self._registrations.values())

    def find_by_uri(self, uri: str) -> List[Registration]:
        return [r for r in self._registrations.values() if r.uri == uri]

    def verify(self, registration: Registration) -> bool:
        """Check the owner's signature and that the key matches the owner."""
        if address_for(registration.public_key) != registration.owner:
            return False
        return verify_signature(registration.payload(), registration.signature, registration.public_key)

    def __contains__(self, registration_id: str) -> bool:
        return registration_id in self._registrations

    def __len__(self) -> int:
        return len(self._registrations)


class RegistrationCommitter(ABC):
    """Commits a signed registration referencing a record locator."""

    @abstractmethod
    async def commit(
        self,
        record_locator: str,
        authorization: Optional[SigningCapability],
        terms: RegistrationTerms,
    ) -> CommitReceipt:
        pass


def _validate_terms(record_locator: str, terms: RegistrationTerms) -> List[str]:
    errors = []
    if not isinstance(record_locator, str) or not record_locator.strip():
        errors.append("malformed record reference")
    if not terms.name:
        errors.append("registration requires a name")
    if terms.creators and sum(c.share for c in terms.creators) != 100:
        errors.append("creator shares must sum to 100")
    if not 0 <= terms.seller_fee_basis_points <= 10000:
        errors.append("seller_fee_basis_points must be between 0 and 10000")
    return errors


class LedgerCommitter(RegistrationCommitter):
    """
    Commits registrations to a local Ledger.

    Signing (which may prompt the user) and the ledger write both run in
    a worker thread.
    """

    def __init__(self, ledger: Ledger):
        self.ledger = ledger

    def _commit_sync(
        self,
        record_locator: str,
        authorization: SigningCapability,
        terms: RegistrationTerms,
    ) -> CommitReceipt:
        errors = _validate_terms(record_locator, terms)
        if errors:
            raise CommitError(f"Registration rejected: {'; '.join(errors)}")

        registration = Registration(
            registration_id=uuid.uuid4().hex,
            uri=record_locator,
            name=terms.name,
            symbol=terms.symbol,
            seller_fee_basis_points=terms.seller_fee_basis_points,
            creators=list(terms.creators),
            is_mutable=terms.is_mutable,
            owner=authorization.address,
            public_key=authorization.public_key,
        )
        registration.signature = authorization.sign(registration.payload())

        if not self.ledger.verify(registration):
            raise CommitError("Registration rejected: signature verification failed")

        try:
            self.ledger.add(registration)
        except (OSError, ValueError) as e:
            raise CommitError(f"Ledger write failed: {e}") from e

        logger.info(f"Registered {terms.name} as {registration.registration_id}")
        return CommitReceipt(
            registration_id=registration.registration_id,
            record_locator=record_locator,
            signature=registration.signature,
        )

    async def commit(
        self,
        record_locator: str,
        authorization: Optional[SigningCapability],
        terms: RegistrationTerms,
    ) -> CommitReceipt:
        if authorization is None:
            raise AuthorizationError("No signing capability supplied")
        return await asyncio.to_thread(self._commit_sync, record_locator, authorization, terms)
