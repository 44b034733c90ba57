"""
Share Key Rewrapper — Re-addresses existing key passphrases to a recipient.

Sharing never regenerates keys: the recipient receives the passphrase of
the existing vault or item key, wrapped to their public key, and checks
the same fingerprint signature chain the creator produced.
"""
import logging
from collections.abc import Iterable

from ..crypto.provider import CryptoProvider
from ..exceptions import CryptoFailure, PassphraseEncryptionFailure
from ..models import AsymmetricKey, WrappedPassphrase
from ..vault.wrapper import KeyWrapper, public_of

logger = logging.getLogger("keychain.sharing")


class ShareKeyRewrapper:
    """Wraps already-decrypted key passphrases for share recipients.

    Args:
        provider: Cryptographic provider performing the primitives.
    """

    def __init__(self, provider: CryptoProvider):
        self.provider = provider
        self.wrapper = KeyWrapper(provider)

    def rewrap(
        self,
        existing_key: AsymmetricKey,
        existing_passphrase: str,
        recipient_public_key: AsymmetricKey | str,
    ) -> WrappedPassphrase:
        """Wrap ``existing_passphrase`` for ``recipient_public_key``.

        Args:
            existing_key: Vault or item key held by the sharing user.
            existing_passphrase: Plaintext passphrase of ``existing_key``.
            recipient_public_key: Public key of the invited recipient.

        Returns:
            A fresh key packet / data packet pair for the recipient.

        Raises:
            PassphraseEncryptionFailure: If the passphrase does not unlock
                ``existing_key`` or cannot be encrypted.
            MessageSplitFailure: If the encrypted message cannot be split.
        """
        artifact = f"{existing_key.label}_passphrase"
        try:
            if not self.provider.check_passphrase(existing_key.private_key, existing_passphrase):
                raise PassphraseEncryptionFailure(
                    "Passphrase does not unlock the key being shared"
                )
            wrapped = self.wrapper.wrap_passphrase(
                existing_passphrase, public_of(recipient_public_key),
            )
        except CryptoFailure as err:
            logger.error(
                "Re-wrapping failed: key=%s reason=%s",
                existing_key.fingerprint[:16], err.reason_value,
            )
            raise err.with_context(artifact=artifact)
        logger.debug(
            "Re-wrapped key=%s for recipient=%s",
            existing_key.fingerprint[:16],
            self.provider.fingerprint(recipient_public_key)[:16],
        )
        return wrapped

    def rewrap_all(
        self,
        keys: Iterable[tuple[AsymmetricKey, str]],
        recipient_public_key: AsymmetricKey | str,
    ) -> list[WrappedPassphrase]:
        """Re-wrap each (key, passphrase) pair in order for one recipient."""
        return [
            self.rewrap(key, passphrase, recipient_public_key)
            for key, passphrase in keys
        ]
