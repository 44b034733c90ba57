"""Vault Key Hierarchy — Signed, passphrase-wrapped keys protecting a vault.

Security Note (Threat Model):
    Generated passphrases and unlocked keys exist in process memory only
    for the duration of the call that produces the request. They are
    returned to the caller, never retained here. A memory dump taken
    during a build could expose them; mitigation requires HSM/secure
    enclave integration which is out of scope.
"""

from .wrapper import KeyWrapper
from .hierarchy import VaultKeyHierarchyBuilder, build_create_vault_request
from .opener import VaultOpener, open_vault

__all__ = [
    "KeyWrapper",
    "VaultKeyHierarchyBuilder",
    "build_create_vault_request",
    "VaultOpener",
    "open_vault",
]
