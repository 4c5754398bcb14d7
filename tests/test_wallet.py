from unittest.mock import MagicMock

import pytest
from stellar_sdk import Account, Asset, Keypair, Network, TransactionBuilder, TransactionEnvelope

from lease_client.errors import SignatureDeclinedError, WalletNotConnectedError, WalletUnavailableError
from lease_client.wallet import KeypairWallet, WalletBridge, WalletProvider, WalletSession, wallet_from_env


def _unsigned_payment_xdr(source: str) -> str:
    tx = (
        TransactionBuilder(Account(source, 1), network_passphrase=Network.TESTNET_NETWORK_PASSPHRASE, base_fee=100)
        .append_payment_op(destination=Keypair.random().public_key, asset=Asset.native(), amount="1")
        .set_timeout(30)
        .build()
    )
    return tx.to_xdr()


def test_connect_without_wallet_reports_once_and_returns_none():
    notify = MagicMock()
    bridge = WalletBridge(None, notify=notify)

    assert bridge.is_available() is False
    assert bridge.connect() is None
    notify.assert_called_once_with("Wallet not found!")


def test_connect_with_unavailable_provider_never_asks_for_key():
    provider = MagicMock()
    provider.is_available.return_value = False
    notify = MagicMock()

    assert WalletBridge(provider, notify=notify).connect() is None
    notify.assert_called_once()
    provider.enable.assert_not_called()
    provider.get_public_key.assert_not_called()


def test_connect_denied():
    provider = MagicMock()
    provider.is_available.return_value = True
    provider.enable.return_value = False
    notify = MagicMock()

    assert WalletBridge(provider, notify=notify).connect() is None
    notify.assert_called_once_with("Wallet access was not granted")
    provider.get_public_key.assert_not_called()


def test_connect_returns_session(bridge, keypair):
    session = bridge.connect()

    assert session == WalletSession(public_key=keypair.public_key)
    assert bridge.provider.enabled
    bridge.notify.assert_not_called()


def test_get_public_key_needs_session(bridge):
    with pytest.raises(WalletNotConnectedError):
        bridge.get_public_key(None)


def test_get_public_key_after_wallet_is_removed(bridge, keypair):
    session = bridge.connect()
    bridge.provider = None

    with pytest.raises(WalletUnavailableError):
        bridge.get_public_key(session)


def test_get_public_key_rejects_switched_account(bridge):
    stale = WalletSession(public_key=Keypair.random().public_key)

    with pytest.raises(WalletNotConnectedError, match="connect again"):
        bridge.get_public_key(stale)


def test_sign_transaction_declined_by_provider(keypair):
    provider = MagicMock()
    provider.is_available.return_value = True
    provider.sign_transaction.return_value = None
    bridge = WalletBridge(provider)
    session = WalletSession(public_key=keypair.public_key)

    with pytest.raises(SignatureDeclinedError):
        bridge.sign_transaction(session, "AAAA", "TESTNET")


def test_sign_transaction_needs_session(bridge):
    with pytest.raises(WalletNotConnectedError):
        bridge.sign_transaction(None, "AAAA", "TESTNET")


def test_keypair_wallet_signs_envelope(keypair):
    wallet = KeypairWallet(keypair.secret)
    unsigned = _unsigned_payment_xdr(keypair.public_key)

    signed = wallet.sign_transaction(unsigned, "TESTNET")

    te = TransactionEnvelope.from_xdr(signed, Network.TESTNET_NETWORK_PASSPHRASE)
    assert len(te.signatures) == 1
    keypair.verify(te.hash(), te.signatures[0].signature)
    assert te.hash() == TransactionEnvelope.from_xdr(unsigned, Network.TESTNET_NETWORK_PASSPHRASE).hash()


def test_keypair_wallet_confirm_declines(keypair):
    confirm = MagicMock(return_value=False)
    wallet = KeypairWallet(keypair.secret, confirm=confirm)

    assert wallet.sign_transaction(_unsigned_payment_xdr(keypair.public_key), "TESTNET") is None
    prompt = confirm.call_args[0][0]
    assert keypair.public_key in prompt
    assert "TESTNET" in prompt


def test_keypair_wallet_unknown_network(keypair):
    wallet = KeypairWallet(keypair.secret)

    with pytest.raises(SignatureDeclinedError, match="LOCALNET"):
        wallet.sign_transaction(_unsigned_payment_xdr(keypair.public_key), "LOCALNET")


def test_keypair_wallet_is_a_provider(keypair):
    assert isinstance(KeypairWallet(keypair.secret), WalletProvider)


def test_wallet_from_env(monkeypatch, keypair):
    monkeypatch.delenv("WALLET_SECRET", raising=False)
    assert wallet_from_env() is None

    monkeypatch.setenv("WALLET_SECRET", keypair.secret)
    wallet = wallet_from_env()
    assert wallet.get_public_key() == keypair.public_key
