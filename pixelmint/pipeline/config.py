# pixelmint/pipeline/config.py
"""
Timing and content policy for a publication run.

Example YAML:

    asset_propagation_delay: 3.0
    record_propagation_delay: 8.0
    max_record_attempts: 3
    record_backoff_base: 2.0
    symbol: PXCAN
"""

import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, List

import yaml

logger = logging.getLogger(__name__)


@dataclass
class PipelineConfig:
    """
    Pipeline policy.

    Attributes:
        asset_propagation_delay: Seconds to wait after the image upload
        record_propagation_delay: Seconds to wait after the metadata upload
        max_record_attempts: Metadata upload attempts before giving up
        record_backoff_base: Backoff after failed attempt k is k * base seconds
        scale: Pixels per raster cell in the encoded image
        background: Fill color for unpainted cells
        symbol: Collection symbol written to metadata and registration
        description: Metadata description
        seller_fee_basis_points: Royalty in basis points
        is_mutable: Registration mutability flag
        name_length: Length of generated asset names
    """
    asset_propagation_delay: float = 3.0
    record_propagation_delay: float = 8.0
    max_record_attempts: int = 3
    record_backoff_base: float = 2.0
    scale: int = 20
    background: str = "#FFFFFF"
    symbol: str = "PXCAN"
    description: str = "Pixel art from Pixel Canvas"
    seller_fee_basis_points: int = 0
    is_mutable: bool = True
    name_length: int = 5

    def validate(self) -> List[str]:
        """Return a list of problems (empty if valid)."""
        errors = []
        for name in ("asset_propagation_delay", "record_propagation_delay", "record_backoff_base"):
            if getattr(self, name) < 0:
                errors.append(f"{name} must be >= 0")
        if self.max_record_attempts < 1:
            errors.append("max_record_attempts must be >= 1")
        if self.scale < 1:
            errors.append("scale must be >= 1")
        if self.name_length < 1:
            errors.append("name_length must be >= 1")
        if not 0 <= self.seller_fee_basis_points <= 10000:
            errors.append("seller_fee_basis_points must be between 0 and 10000")
        return errors

    def backoff(self, attempt: int) -> float:
        """Delay after failed metadata attempt number `attempt` (1-indexed)."""
        return attempt * self.record_backoff_base

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PipelineConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown pipeline config keys: {sorted(unknown)}")
        config = cls(**data)
        try:
            errors = config.validate()
        except TypeError as e:
            raise ValueError(f"Invalid pipeline config: {e}") from e
        if errors:
            raise ValueError(f"Invalid pipeline config: {errors}")
        if config.record_propagation_delay < config.asset_propagation_delay:
            logger.warning(
                "record_propagation_delay is shorter than asset_propagation_delay; "
                "metadata may not be visible when registered"
            )
        return config

    @classmethod
    def from_yaml(cls, yaml_content: str) -> "PipelineConfig":
        data = yaml.safe_load(yaml_content) or {}
        if not isinstance(data, dict):
            raise ValueError("Pipeline config must be a mapping")
        return cls.from_dict(data)

    @classmethod
    def from_file(cls, path: Path | str) -> "PipelineConfig":
        with open(path, "r") as f:
            return cls.from_yaml(f.read())

    @classmethod
    def immediate(cls, **overrides) -> "PipelineConfig":
        """Config with every delay set to zero."""
        values = {
            "asset_propagation_delay": 0.0,
            "record_propagation_delay": 0.0,
            "record_backoff_base": 0.0,
        }
        values.update(overrides)
        return cls.from_dict(values)
