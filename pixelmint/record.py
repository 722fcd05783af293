# pixelmint/record.py
"""
Description records published alongside an image.
"""

import json
import random
import string
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

CATEGORY = "image"


def random_name(length: int = 5, rng: Optional[random.Random] = None) -> str:
    """Random uppercase name, e.g. "QZKAB"."""
    rng = rng or random.Random()
    return "".join(rng.choice(string.ascii_uppercase) for _ in range(length))


@dataclass(frozen=True)
class Creator:
    """A royalty recipient and its percentage share."""
    address: str
    share: int = 100

    def to_dict(self) -> Dict[str, Any]:
        return {"address": self.address, "share": self.share}


@dataclass(frozen=True)
class DescriptionRecord:
    """
    Metadata document referencing an uploaded image.

    Attributes:
        name: Human name of the asset
        symbol: Collection symbol
        description: Human-readable description
        image: Locator of the uploaded image (with extension hint)
        media_type: Media type of the image
        seller_fee_basis_points: Royalty in basis points
        creators: Attribution/royalty table
    """
    name: str
    symbol: str
    description: str
    image: str
    media_type: str = "image/png"
    seller_fee_basis_points: int = 0
    creators: List[Creator] = field(default_factory=list)

    @classmethod
    def for_asset(
        cls,
        name: str,
        asset_locator: str,
        symbol: str,
        description: str,
        media_type: str = "image/png",
        extension: str = "png",
        seller_fee_basis_points: int = 0,
        creators: List[Creator] = None,
    ) -> "DescriptionRecord":
        return cls(
            name=name,
            symbol=symbol,
            description=description,
            image=f"{asset_locator}?ext={extension}",
            media_type=media_type,
            seller_fee_basis_points=seller_fee_basis_points,
            creators=list(creators or []),
        )

    @property
    def asset_locator(self) -> str:
        """The image locator without the "?ext=" hint."""
        return self.image.split("?ext=", 1)[0]

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "name": self.name,
            "symbol": self.symbol,
            "description": self.description,
            "image": self.image,
            "seller_fee_basis_points": self.seller_fee_basis_points,
            "properties": {
                "files": [{"uri": self.image, "type": self.media_type}],
                "category": CATEGORY,
            },
        }
        if self.creators:
            data["properties"]["creators"] = [c.to_dict() for c in self.creators]
        return data

    def to_bytes(self) -> bytes:
        """Canonical JSON encoding (stable across calls)."""
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":")).encode("utf-8")

    @property
    def filename(self) -> str:
        return f"{self.name}.json"
