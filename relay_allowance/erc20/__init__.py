"""ERC-20 call surface: calldata codecs plus local and relay token clients."""

from .client import Receipt, TokenClient  # noqa: F401
from .local import AssociationRegistry, LocalTokenClient  # noqa: F401
from .relay import RelayTokenClient, transact  # noqa: F401

__all__ = [
    "Receipt",
    "TokenClient",
    "AssociationRegistry",
    "LocalTokenClient",
    "RelayTokenClient",
    "transact",
]
