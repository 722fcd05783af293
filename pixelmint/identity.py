# pixelmint/identity.py
"""
Local identities and the signing capability used for registration.

An Identity is:
- Username and display name
- RSA key pair for signing
- An address derived from the public key

The pipeline only asks an IdentityProvider whether it is authorized and
for a SigningCapability, which it hands to the committer unopened.
"""

import base64
import hashlib
import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from .errors import AuthorizationError

logger = logging.getLogger(__name__)

SIGNATURE_TYPE = "RsaSignature2017"

# Called with the payload about to be signed; False means the user declined
ApprovalCallback = Callable[[Dict[str, Any]], bool]


def _generate_keypair() -> tuple[bytes, bytes]:
    """Generate RSA key pair for signing."""
    private_key = rsa.generate_private_key(
        public_exponent=65537,
        key_size=2048,
    )
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return private_pem, public_pem


def _canonicalize(data: Dict[str, Any]) -> str:
    """Canonical JSON for signing: sorted keys, no whitespace."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"))


def _hash_sha256(data: str) -> bytes:
    return hashlib.sha256(data.encode()).digest()


def address_for(public_key_pem: bytes) -> str:
    """Stable address of a public key (SHA3-256 of the PEM)."""
    return hashlib.sha3_256(public_key_pem).hexdigest()


@dataclass
class Identity:
    """
    A local signing identity.

    Attributes:
        username: Unique username
        display_name: Human-readable name
        public_key: PEM-encoded public key
        private_key: PEM-encoded private key (kept secret)
        created_at: Timestamp of creation
    """
    username: str
    display_name: str
    public_key: bytes
    private_key: bytes
    created_at: float = field(default_factory=time.time)

    @property
    def address(self) -> str:
        return address_for(self.public_key)

    @property
    def key_id(self) -> str:
        return f"{self.address}#main-key"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for storage."""
        return {
            "username": self.username,
            "display_name": self.display_name,
            "public_key": self.public_key.decode("utf-8"),
            "private_key": self.private_key.decode("utf-8"),
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Identity":
        """Deserialize from storage."""
        return cls(
            username=data["username"],
            display_name=data["display_name"],
            public_key=data["public_key"].encode("utf-8"),
            private_key=data["private_key"].encode("utf-8"),
            created_at=data.get("created_at", time.time()),
        )

    @classmethod
    def create(cls, username: str, display_name: str = None) -> "Identity":
        """Create a new identity with generated keys."""
        private_pem, public_pem = _generate_keypair()
        return cls(
            username=username,
            display_name=display_name or username,
            public_key=public_pem,
            private_key=private_pem,
        )


class IdentityStore:
    """
    Persistent storage for identities.

    Structure:
        store_dir/
            identities.json   # Index of all identities (with keys)
    """

    def __init__(self, store_dir: Path | str):
        self.store_dir = Path(store_dir)
        self.store_dir.mkdir(parents=True, exist_ok=True)
        self._identities: Dict[str, Identity] = {}
        self._load()

    def _index_path(self) -> Path:
        return self.store_dir / "identities.json"

    def _load(self):
        index_path = self._index_path()
        if index_path.exists():
            try:
                with open(index_path) as f:
                    data = json.load(f)
                self._identities = {
                    username: Identity.from_dict(identity_data)
                    for username, identity_data in data.get("identities", {}).items()
                }
            except (ValueError, KeyError, TypeError, AttributeError) as e:
                logger.warning(f"Failed to load identity index: {e}")
                self._identities = {}

    def _save(self):
        data = {
            "version": "1.0",
            "identities": {
                username: identity.to_dict()
                for username, identity in self._identities.items()
            },
        }
        with open(self._index_path(), "w") as f:
            json.dump(data, f, indent=2)

    def create(self, username: str, display_name: str = None) -> Identity:
        """Create and store a new identity."""
        if username in self._identities:
            raise ValueError(f"Identity {username} already exists")

        identity = Identity.create(username, display_name)
        self._identities[username] = identity
        self._save()
        return identity

    def get(self, username: str) -> Optional[Identity]:
        return self._identities.get(username)

    def list(self) -> List[Identity]:
        return list(self._identities.values())

    def __contains__(self, username: str) -> bool:
        return username in self._identities

    def __len__(self) -> int:
        return len(self._identities)


class SigningCapability:
    """
    Authority to sign on behalf of an identity.

    Args:
        identity: The identity whose key signs
        approve: Optional callback asked before each signature; returning
            False rejects the request
    """

    def __init__(self, identity: Identity, approve: ApprovalCallback = None):
        self._identity = identity
        self._approve = approve

    @property
    def address(self) -> str:
        return self._identity.address

    @property
    def public_key(self) -> bytes:
        return self._identity.public_key

    def sign(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Sign a payload after asking for approval.

        Returns:
            Signature block (type, creator, created, signatureValue)

        Raises:
            AuthorizationError: if the request is rejected
        """
        if self._approve is not None and not self._approve(payload):
            raise AuthorizationError("User rejected the signature request")

        private_key = serialization.load_pem_private_key(
            self._identity.private_key,
            password=None,
        )

        options = {
            "type": SIGNATURE_TYPE,
            "creator": self._identity.key_id,
            "created": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        }
        to_sign = _hash_sha256(_canonicalize(options)) + _hash_sha256(_canonicalize(payload))

        signature_bytes = private_key.sign(
            to_sign,
            padding.PKCS1v15(),
            hashes.SHA256(),
        )
        options["signatureValue"] = base64.b64encode(signature_bytes).decode("utf-8")
        return options


def verify_signature(payload: Dict[str, Any], signature: Dict[str, Any], public_key_pem: bytes) -> bool:
    """
    Verify a signature block produced by SigningCapability.sign().

    Args:
        payload: The signed payload
        signature: Signature block
        public_key_pem: PEM-encoded public key

    Returns:
        True if signature is valid
    """
    if not signature:
        return False

    try:
        public_key = serialization.load_pem_public_key(public_key_pem)

        options = {
            "type": signature["type"],
            "creator": signature["creator"],
            "created": signature["created"],
        }
        signed_data = _hash_sha256(_canonicalize(options)) + _hash_sha256(_canonicalize(payload))

        signature_bytes = base64.b64decode(signature["signatureValue"])
        public_key.verify(
            signature_bytes,
            signed_data,
            padding.PKCS1v15(),
            hashes.SHA256(),
        )
        return True

    except (InvalidSignature, KeyError, ValueError, TypeError):
        return False


class IdentityProvider(ABC):
    """Supplies the authorization the final registration needs."""

    @abstractmethod
    def is_authorized(self) -> bool:
        pass

    @abstractmethod
    def signing_capability(self) -> SigningCapability:
        pass


class LocalIdentityProvider(IdentityProvider):
    """
    Identity provider backed by a locally held key.

    Args:
        identity: Connected identity, or None for a disconnected provider
        approve: Approval callback passed to every capability
    """

    def __init__(self, identity: Identity = None, approve: ApprovalCallback = None):
        self.identity = identity
        self.approve = approve

    def connect(self, identity: Identity):
        self.identity = identity
        logger.info(f"Identity connected: {identity.username} ({identity.address[:12]}...)")

    def disconnect(self):
        self.identity = None

    def is_authorized(self) -> bool:
        return self.identity is not None

    def signing_capability(self) -> SigningCapability:
        if self.identity is None:
            raise AuthorizationError("Identity not connected")
        return SigningCapability(self.identity, approve=self.approve)
