"""
Lease API Python Wrapper

Builds, signs (through the Wallet Bridge) and submits invocations of the
leasing contract, and reads lease records back through simulation.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from stellar_sdk import Account, SorobanServer, TransactionBuilder, TransactionEnvelope, scval
from stellar_sdk import xdr as stellar_xdr
from stellar_sdk.exceptions import (
    AccountNotFoundException,
    ConnectionError as SdkConnectionError,
    PrepareTransactionException,
    SorobanRpcErrorResponse,
)
from stellar_sdk.soroban_rpc import SendTransactionResponse, SendTransactionStatus

from .common import DEFAULT_SOROBAN_RPC, Settings, get_logger, network_passphrase as passphrase_for
from .errors import (
    AccountNotFoundError,
    InvalidArgumentError,
    NetworkUnreachableError,
    QueryFailedError,
    SignatureDeclinedError,
    SubmissionRejectedError,
)
from .wallet import WalletBridge, WalletSession

logger = get_logger(__name__)

CREATE_LEASE = "create_lease"
VIEW_LEASE = "view_lease"
VIEW_ASSET = "view_asset"
VIEW_ASSET_STATS = "view_asset_stats"
GET_LESSEE_LEASES = "get_lessee_leases"


@dataclass(frozen=True)
class LeaseRequest:
    asset_id: Any
    duration: Any
    price: Any

    def arguments(self) -> List[Any]:
        return [self.asset_id, self.duration, self.price]


@dataclass(frozen=True)
class LeaseSubmission:
    """One signed and submitted create_lease transaction"""

    request: LeaseRequest
    tx_hash: str
    envelope_xdr: str
    signed_xdr: str
    response: SendTransactionResponse

    @property
    def status(self) -> SendTransactionStatus:
        return self.response.status


def to_contract_arg(value: Any) -> stellar_xdr.SCVal:
    """Encode a plain Python value as a contract argument, without checking it"""
    if isinstance(value, stellar_xdr.SCVal):
        return value
    # bool first, it is also an int
    if isinstance(value, bool):
        return scval.to_bool(value)
    if isinstance(value, int):
        return scval.to_uint64(value) if value >= 0 else scval.to_int64(value)
    if isinstance(value, str):
        return scval.to_string(value)
    if isinstance(value, (bytes, bytearray)):
        return scval.to_bytes(bytes(value))
    raise TypeError(f"Cannot pass {type(value).__name__} to a contract call")


_INTEGER_DECODERS = {
    stellar_xdr.SCValType.SCV_U32: scval.from_uint32,
    stellar_xdr.SCValType.SCV_I32: scval.from_int32,
    stellar_xdr.SCValType.SCV_U64: scval.from_uint64,
    stellar_xdr.SCValType.SCV_I64: scval.from_int64,
    stellar_xdr.SCValType.SCV_U128: scval.from_uint128,
    stellar_xdr.SCValType.SCV_I128: scval.from_int128,
}


def from_contract_value(value: stellar_xdr.SCVal) -> Any:
    """Decode a contract return value into plain Python (dicts, lists, ints, strs)"""
    t = value.type
    if t == stellar_xdr.SCValType.SCV_VOID:
        return None
    if t == stellar_xdr.SCValType.SCV_BOOL:
        return scval.from_bool(value)
    if t in _INTEGER_DECODERS:
        return _INTEGER_DECODERS[t](value)
    if t == stellar_xdr.SCValType.SCV_SYMBOL:
        return scval.from_symbol(value)
    if t == stellar_xdr.SCValType.SCV_STRING:
        raw = scval.from_string(value)
        return raw.decode() if isinstance(raw, bytes) else raw
    if t == stellar_xdr.SCValType.SCV_BYTES:
        return scval.from_bytes(value).hex()
    if t == stellar_xdr.SCValType.SCV_ADDRESS:
        return scval.from_address(value).address
    if t == stellar_xdr.SCValType.SCV_VEC:
        return [from_contract_value(v) for v in value.vec.sc_vec]
    if t == stellar_xdr.SCValType.SCV_MAP:
        return {from_contract_value(e.key): from_contract_value(e.val) for e in value.map.sc_map}
    raise TypeError(f"Cannot decode contract value of type {t}")


class LeaseAPI:
    """Python wrapper for the leasing contract"""

    def __init__(
        self,
        contract_id: str,
        rpc_url: str = None,
        network: str = "TESTNET",
        network_passphrase: str = None,
        base_fee: int = 100,
        timeout: int = 30,
        rpc: SorobanServer = None,
    ):
        """
        Initialize the Lease API client

        Args:
            contract_id: The deployed contract ID (C...)
            rpc_url: Soroban RPC URL (defaults to the public testnet RPC)
            network: Network name handed to the wallet when signing
            network_passphrase: Passphrase for building and parsing envelopes
                (defaults to the passphrase of the named network)
            base_fee: Base fee in stroops
            timeout: Seconds the transaction stays valid after it is built
            rpc: Ready-made SorobanServer, mostly for tests
        """
        self.contract_id = contract_id
        self.rpc = rpc or SorobanServer(rpc_url or DEFAULT_SOROBAN_RPC)
        self.network = network
        self.network_passphrase = network_passphrase or passphrase_for(network)
        self.base_fee = base_fee
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings, rpc: SorobanServer = None) -> "LeaseAPI":
        return cls(
            settings.contract_id,
            rpc_url=settings.soroban_rpc,
            network=settings.network,
            network_passphrase=settings.network_passphrase,
            base_fee=settings.base_fee,
            timeout=settings.tx_timeout,
            rpc=rpc,
        )

    def _load_account(self, public_key: str) -> Account:
        """Fresh account snapshot; sequence numbers are never reused across calls"""
        try:
            return self.rpc.load_account(public_key)
        except AccountNotFoundException:
            raise AccountNotFoundError(public_key) from None
        except SdkConnectionError as e:
            raise NetworkUnreachableError(f"Soroban RPC unreachable: {e}") from e

    def build_invocation(self, account: Account, function_name: str, arguments: List[Any]) -> TransactionEnvelope:
        """Transaction with a single invocation of a contract entry point"""
        try:
            parameters = [to_contract_arg(a) for a in arguments]
        except (TypeError, ValueError) as e:
            raise InvalidArgumentError(f"Invalid argument for {function_name}: {e}") from e
        return (
            TransactionBuilder(account, network_passphrase=self.network_passphrase, base_fee=self.base_fee)
            .append_invoke_contract_function_op(
                contract_id=self.contract_id,
                function_name=function_name,
                parameters=parameters,
            )
            .set_timeout(self.timeout)
            .build()
        )

    def _prepare(self, tx: TransactionEnvelope) -> TransactionEnvelope:
        try:
            return self.rpc.prepare_transaction(tx)
        except PrepareTransactionException as e:
            simulation = e.simulate_transaction_response
            raise SubmissionRejectedError(f"Simulation failed: {simulation.error}", response=simulation) from e
        except SorobanRpcErrorResponse as e:
            raise SubmissionRejectedError(f"Simulation failed: {e.message}") from e
        except SdkConnectionError as e:
            raise NetworkUnreachableError(f"Soroban RPC unreachable: {e}") from e

    def _send(self, te: TransactionEnvelope) -> SendTransactionResponse:
        try:
            response = self.rpc.send_transaction(te)
        except SorobanRpcErrorResponse as e:
            raise SubmissionRejectedError(f"Submission rejected by ledger: {e.message}") from e
        except SdkConnectionError as e:
            raise NetworkUnreachableError(f"Soroban RPC unreachable: {e}") from e
        if response.status == SendTransactionStatus.ERROR:
            raise SubmissionRejectedError(
                f"Submission rejected by ledger: {response.error_result_xdr}", response=response
            )
        return response

    def create_lease(
        self,
        bridge: WalletBridge,
        session: Optional[WalletSession],
        asset_id: Any,
        duration: Any,
        price: Any,
    ) -> LeaseSubmission:
        """
        Create a lease on the contract

        Args:
            bridge: Wallet Bridge that signs the transaction
            session: Session returned by bridge.connect()
            asset_id: Asset identifier, passed through unchanged
            duration: Lease duration, passed through unchanged
            price: Price, passed through unchanged

        Returns:
            LeaseSubmission with the raw RPC response. The transaction is not
            followed up; PENDING only means the RPC accepted it.
        """
        request = LeaseRequest(asset_id, duration, price)

        public_key = bridge.get_public_key(session)
        account = self._load_account(public_key)
        logger.info("Loaded account %s at sequence %s", public_key, account.sequence)

        tx = self._prepare(self.build_invocation(account, CREATE_LEASE, request.arguments()))
        envelope_xdr = tx.to_xdr()
        logger.info("Built %s transaction %s", CREATE_LEASE, tx.hash_hex())

        signed_xdr = bridge.sign_transaction(session, envelope_xdr, self.network)
        try:
            signed = TransactionBuilder.from_xdr(signed_xdr, self.network_passphrase)
        except Exception as e:
            raise SignatureDeclinedError("Wallet returned an invalid envelope") from e
        if signed.hash() != tx.hash():
            raise SignatureDeclinedError("Wallet signed a different transaction")

        response = self._send(signed)
        logger.info("Lease created! hash=%s status=%s", response.hash, response.status)
        return LeaseSubmission(
            request=request,
            tx_hash=response.hash,
            envelope_xdr=envelope_xdr,
            signed_xdr=signed_xdr,
            response=response,
        )

    def _simulate_view(self, function_name: str, arguments: List[Any], source_public_key: str) -> Any:
        """Simulate a read-only entry point and decode its return value. Nothing is submitted."""
        account = self._load_account(source_public_key)
        tx = self.build_invocation(account, function_name, arguments)
        try:
            simulation = self.rpc.simulate_transaction(tx)
        except SorobanRpcErrorResponse as e:
            raise QueryFailedError(f"Simulation of {function_name} failed: {e.message}") from e
        except SdkConnectionError as e:
            raise NetworkUnreachableError(f"Soroban RPC unreachable: {e}") from e
        if simulation.error or not simulation.results:
            raise QueryFailedError(f"Simulation of {function_name} failed: {simulation.error}", response=simulation)
        return from_contract_value(stellar_xdr.SCVal.from_xdr(simulation.results[0].xdr))

    def get_lease_status(self, lease_id: int, source_public_key: str) -> Optional[Dict[str, Any]]:
        """
        Read a lease record through simulation of view_lease.

        Returns:
            The lease record as a dict, or None when the contract has no such lease
        """
        lease = self._simulate_view(VIEW_LEASE, [scval.to_uint64(lease_id)], source_public_key)
        # the contract answers unknown ids with an all-zero record
        if not isinstance(lease, dict) or lease.get("lease_id") == 0:
            return None
        return lease

    def get_asset(self, asset_id: int, source_public_key: str) -> Optional[Dict[str, Any]]:
        """Asset record from view_asset, or None for an unknown asset id"""
        asset = self._simulate_view(VIEW_ASSET, [scval.to_uint64(asset_id)], source_public_key)
        if not isinstance(asset, dict) or asset.get("asset_id") == 0:
            return None
        return asset

    def get_asset_stats(self, source_public_key: str) -> Dict[str, Any]:
        return self._simulate_view(VIEW_ASSET_STATS, [], source_public_key)

    def get_lessee_leases(self, lessee: str, source_public_key: str = None) -> List[int]:
        """IDs of the active leases held by an address"""
        return self._simulate_view(GET_LESSEE_LEASES, [scval.to_address(lessee)], source_public_key or lessee)
