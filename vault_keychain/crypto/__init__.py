"""
Cryptographic provider layer.

The key hierarchy only talks to ``CryptoProvider``; ``CryptographyProvider``
is the bundled backend built on the ``cryptography`` package.
"""
from .provider import CryptoProvider
from .backend import CryptographyProvider
from .armor import MESSAGE, PRIVATE_KEY, PUBLIC_KEY, SIGNATURE
from ..conf import KeychainConfig


def get_provider(config: KeychainConfig | None = None) -> CryptoProvider:
    """Return a provider configured from ``config`` or the environment."""
    return CryptographyProvider(config or KeychainConfig.from_env())


__all__ = [
    "CryptoProvider",
    "CryptographyProvider",
    "get_provider",
    "MESSAGE",
    "PRIVATE_KEY",
    "PUBLIC_KEY",
    "SIGNATURE",
]
