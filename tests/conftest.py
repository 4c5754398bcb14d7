from unittest.mock import MagicMock

import pytest
from stellar_sdk import Account, Keypair, StrKey
from stellar_sdk.soroban_rpc import SendTransactionStatus

from lease_client.lease_api import LeaseAPI
from lease_client.wallet import KeypairWallet, WalletBridge

CONTRACT_ID = StrKey.encode_contract(bytes(32))


class RecordingWallet(KeypairWallet):
    """KeypairWallet that writes every key and signing request into a shared list"""

    def __init__(self, secret, calls, **kwargs):
        super().__init__(secret, **kwargs)
        self.calls = calls

    def get_public_key(self):
        self.calls.append(("get_public_key",))
        return super().get_public_key()

    def sign_transaction(self, envelope_xdr, network):
        self.calls.append(("sign_transaction", envelope_xdr, network))
        return super().sign_transaction(envelope_xdr, network)


@pytest.fixture
def calls():
    return []


@pytest.fixture
def keypair():
    return Keypair.random()


@pytest.fixture
def rpc(calls):
    """SorobanServer stand-in that records calls and accepts every transaction"""
    rpc = MagicMock()

    def load_account(public_key):
        calls.append(("load_account", public_key))
        return Account(public_key, 1000)

    def prepare_transaction(tx):
        calls.append(("prepare_transaction", tx.hash_hex()))
        return tx

    def send_transaction(te):
        calls.append(("send_transaction", te.to_xdr()))
        return MagicMock(status=SendTransactionStatus.PENDING, hash=te.hash_hex(), error_result_xdr=None)

    rpc.load_account.side_effect = load_account
    rpc.prepare_transaction.side_effect = prepare_transaction
    rpc.send_transaction.side_effect = send_transaction
    return rpc


@pytest.fixture
def wallet(keypair, calls):
    return RecordingWallet(keypair.secret, calls)


@pytest.fixture
def bridge(wallet):
    return WalletBridge(wallet, notify=MagicMock())


@pytest.fixture
def api(rpc):
    return LeaseAPI(CONTRACT_ID, rpc=rpc)
