# pixelmint - Paint a small raster and publish it as a registered asset
#
# Publication runs as a sequential pipeline: the raster is encoded to an
# image, the image is uploaded to a content-addressed store, a description
# record referencing it is uploaded, and a signed registration referencing
# the record is committed to a ledger.
#
# Core concepts:
# - Raster: The 32x32 grid of painted colors
# - Encoder: Raster -> validated image bytes
# - Publishers: Upload images and records, returning stable locators
# - Committer: Commits a signed registration for a record locator
# - PublicationPipeline: Sequences the above with propagation waits and retries

from .raster import Raster, RasterStore
from .encoder import Encoder, EncodedAsset
from .errors import (
    AuthorizationError,
    CommitError,
    EncodingError,
    PublicationError,
    PublishError,
)
from .record import Creator, DescriptionRecord
from .storage import ContentStore, StoreAssetPublisher, StoreRecordPublisher
from .identity import Identity, IdentityStore, LocalIdentityProvider, SigningCapability
from .ledger import Ledger, LedgerCommitter, RegistrationTerms
from .pipeline import (
    Failure,
    Phase,
    PipelineConfig,
    PublicationPipeline,
    RegistrationConfirmation,
    Success,
)

__all__ = [
    "Raster",
    "RasterStore",
    "Encoder",
    "EncodedAsset",
    "AuthorizationError",
    "CommitError",
    "EncodingError",
    "PublicationError",
    "PublishError",
    "Creator",
    "DescriptionRecord",
    "ContentStore",
    "StoreAssetPublisher",
    "StoreRecordPublisher",
    "Identity",
    "IdentityStore",
    "LocalIdentityProvider",
    "SigningCapability",
    "Ledger",
    "LedgerCommitter",
    "RegistrationTerms",
    "Failure",
    "Phase",
    "PipelineConfig",
    "PublicationPipeline",
    "RegistrationConfirmation",
    "Success",
]

__version__ = "0.1.0"
