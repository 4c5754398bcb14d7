"""
Wallet Bridge

Wraps a wallet provider (the thing that holds the user's key and asks them to
approve signatures) behind a small bridge. The provider is always passed in
explicitly; the bridge hands out a WalletSession on connect, and every later
call needs that session.
"""

import os
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, Protocol, runtime_checkable

from stellar_sdk import Keypair, TransactionEnvelope

from .common import NETWORK_PASSPHRASES, get_logger
from .errors import (
    SignatureDeclinedError,
    WalletNotConnectedError,
    WalletUnavailableError,
)

logger = get_logger(__name__)


@runtime_checkable
class WalletProvider(Protocol):
    """Capabilities a wallet must offer to the bridge"""

    def is_available(self) -> bool:
        ...

    def enable(self) -> bool:
        """Ask the user to authorize this client. True when access is granted."""
        ...

    def get_public_key(self) -> str:
        ...

    def sign_transaction(self, envelope_xdr: str, network: str) -> Optional[str]:
        """
        Sign a base64 transaction envelope for a named network.

        Returns the signed envelope, or None when the user refuses.
        """
        ...


@dataclass(frozen=True)
class WalletSession:
    public_key: str


class KeypairWallet:
    """Wallet provider backed by a local secret seed"""

    def __init__(
        self,
        secret: str,
        confirm: Callable[[str], bool] = None,
        passphrases: Mapping[str, str] = None,
    ):
        """
        Args:
            secret: Stellar secret seed (S...)
            confirm: Called with a short description before each signature; a
                falsy answer declines it. None signs without asking.
            passphrases: Network name to passphrase mapping (defaults to the
                public Stellar networks)
        """
        self.keypair = Keypair.from_secret(secret)
        self.confirm = confirm
        self.passphrases = dict(passphrases or NETWORK_PASSPHRASES)
        self.enabled = False

    def is_available(self) -> bool:
        return True

    def enable(self) -> bool:
        self.enabled = True
        return True

    def get_public_key(self) -> str:
        return self.keypair.public_key

    def sign_transaction(self, envelope_xdr: str, network: str) -> Optional[str]:
        try:
            passphrase = self.passphrases[network.upper()]
        except KeyError:
            raise SignatureDeclinedError(f"Wallet does not know network {network}") from None
        te = TransactionEnvelope.from_xdr(envelope_xdr, passphrase)
        if self.confirm is not None:
            prompt = f"Sign transaction {te.hash_hex()} on {network} as {self.keypair.public_key}?"
            if not self.confirm(prompt):
                return None
        te.sign(self.keypair)
        return te.to_xdr()


def wallet_from_env(
    name: str = "WALLET_SECRET",
    confirm: Callable[[str], bool] = None,
    passphrases: Mapping[str, str] = None,
) -> Optional[KeypairWallet]:
    """KeypairWallet for the secret in the environment, None if there is none"""
    secret = os.environ.get(name)
    if not secret:
        return None
    return KeypairWallet(secret, confirm=confirm, passphrases=passphrases)


class WalletBridge:
    """Connects to a wallet provider and forwards key and signing requests to it"""

    def __init__(self, provider: Optional[WalletProvider] = None, notify: Callable[[str], None] = None):
        """
        Args:
            provider: The wallet, or None when no wallet is installed
            notify: Shows a message to the user; defaults to a logged warning
        """
        self.provider = provider
        self.notify = notify or logger.warning

    def is_available(self) -> bool:
        return self.provider is not None and bool(self.provider.is_available())

    def connect(self) -> Optional[WalletSession]:
        """
        Ask the wallet for access.

        Never raises when the wallet is missing or access is refused: the user is
        told once and None is returned.
        """
        if not self.is_available():
            self.notify(WalletUnavailableError.default_message)
            return None

        if not self.provider.enable():
            self.notify("Wallet access was not granted")
            return None

        public_key = self.provider.get_public_key()
        if not public_key:
            self.notify("Wallet did not share an account")
            return None

        logger.info("Wallet connected: %s", public_key)
        return WalletSession(public_key=public_key)

    def _require(self, session: Optional[WalletSession]) -> WalletProvider:
        if session is None:
            raise WalletNotConnectedError()
        if not self.is_available():
            raise WalletUnavailableError()
        return self.provider

    def get_public_key(self, session: Optional[WalletSession]) -> str:
        """Public key currently authorized in the wallet; must match the session"""
        provider = self._require(session)
        public_key = provider.get_public_key()
        if public_key != session.public_key:
            raise WalletNotConnectedError("Wallet account changed, connect again")
        return public_key

    def sign_transaction(self, session: Optional[WalletSession], envelope_xdr: str, network: str) -> str:
        provider = self._require(session)
        logger.info("Requesting signature from %s on %s", session.public_key, network)
        signed = provider.sign_transaction(envelope_xdr, network)
        if not signed:
            raise SignatureDeclinedError()
        return signed
