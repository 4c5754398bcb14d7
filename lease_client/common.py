import os
import time
import logging
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

import requests
from dotenv import load_dotenv
from stellar_sdk import Network, Server, StrKey
from stellar_sdk.exceptions import ConnectionError as SdkConnectionError, NotFoundError

from .errors import AccountNotFoundError, ConfigurationError, NetworkUnreachableError

DEFAULT_SOROBAN_RPC = "https://soroban-testnet.stellar.org"
DEFAULT_HORIZON_URL = "https://horizon-testnet.stellar.org"
DEFAULT_FRIENDBOT_URL = "https://friendbot.stellar.org"
DEFAULT_CONTRACT_ID = "CCDP5IJT5AZGLCRNBKYXNQ24E6XQYOWAGB2JQR52OQXE7IIP2HM6PIIV"

NETWORK_PASSPHRASES = {
    "TESTNET": Network.TESTNET_NETWORK_PASSPHRASE,
    "PUBLIC": Network.PUBLIC_NETWORK_PASSPHRASE,
    "FUTURENET": Network.FUTURENET_NETWORK_PASSPHRASE,
}

_log_format = "%(asctime)s - [%(levelname)s] - %(name)s - %(message)s"
_root_logger_name = "lease_client"


def set_log_level(level: str) -> bool:
    """Set the package log level by name; unknown names are ignored and False is returned"""
    value = logging.getLevelName(str(level).upper())
    if not isinstance(value, int):
        return False
    logging.getLogger(_root_logger_name).setLevel(value)
    return True


def get_logger(name: str) -> logging.Logger:
    """Module logger hanging off the package logger, which owns the only handler"""
    root = logging.getLogger(_root_logger_name)
    if not root.handlers:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(logging.Formatter(_log_format))
        root.addHandler(stream_handler)
        root.setLevel(logging.INFO)
        set_log_level(os.environ.get("LOG_LEVEL", "INFO"))
    if name == _root_logger_name or name.startswith(_root_logger_name + "."):
        return logging.getLogger(name)
    return root.getChild(name)


logger = get_logger(__name__)


def network_passphrase(network: str) -> str:
    """Passphrase for a named network (TESTNET, PUBLIC, FUTURENET)"""
    try:
        return NETWORK_PASSPHRASES[network.upper()]
    except KeyError:
        raise ValueError(f"Unknown network name: {network}") from None


@dataclass(frozen=True)
class Settings:
    soroban_rpc: str = DEFAULT_SOROBAN_RPC
    horizon_url: str = DEFAULT_HORIZON_URL
    friendbot_url: str = DEFAULT_FRIENDBOT_URL
    network: str = "TESTNET"
    network_passphrase: str = Network.TESTNET_NETWORK_PASSPHRASE
    contract_id: str = DEFAULT_CONTRACT_ID
    base_fee: int = 100
    tx_timeout: int = 30
    wallet_secret: Optional[str] = None
    log_level: str = "INFO"


def _int_setting(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name, default)
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None


def load_settings(env_file: str = None, environ: Mapping[str, str] = None) -> Settings:
    """
    Read client settings from the environment.

    The package log level is set from LOG_LEVEL as a side effect; an unknown
    level name is logged and ignored.

    Args:
        env_file: Optional path to a dotenv file (e.g. config.env). Without it the
            nearest .env is used, if any.
        environ: Mapping to read instead of os.environ. No dotenv file is loaded
            when this is given.

    Returns:
        Settings

    Raises:
        ConfigurationError: unknown NETWORK without NETWORK_PASSPHRASE, a
            non-integer BASE_FEE/TX_TIMEOUT or a malformed WALLET_SECRET
    """
    if environ is None:
        load_dotenv(env_file, override=env_file is not None)
        environ = os.environ

    network = environ.get("NETWORK", "TESTNET").upper()
    passphrase = environ.get("NETWORK_PASSPHRASE")
    if not passphrase:
        try:
            passphrase = network_passphrase(network)
        except ValueError as e:
            raise ConfigurationError(f"{e}, set NETWORK_PASSPHRASE") from None

    wallet_secret = environ.get("WALLET_SECRET") or None
    if wallet_secret and not StrKey.is_valid_ed25519_secret_seed(wallet_secret):
        raise ConfigurationError("WALLET_SECRET is not a valid secret seed")

    log_level = environ.get("LOG_LEVEL", "INFO").upper()
    if not set_log_level(log_level):
        logger.warning("Ignoring unknown LOG_LEVEL %s", log_level)
        log_level = logging.getLevelName(logging.getLogger(_root_logger_name).level)

    return Settings(
        soroban_rpc=environ.get("SOROBAN_RPC", DEFAULT_SOROBAN_RPC),
        horizon_url=environ.get("HORIZON_URL", DEFAULT_HORIZON_URL),
        friendbot_url=environ.get("FRIENDBOT_URL", DEFAULT_FRIENDBOT_URL),
        network=network,
        network_passphrase=passphrase,
        contract_id=environ.get("LEASE_CONTRACT_ID", DEFAULT_CONTRACT_ID),
        base_fee=_int_setting(environ, "BASE_FEE", 100),
        tx_timeout=_int_setting(environ, "TX_TIMEOUT", 30),
        wallet_secret=wallet_secret,
        log_level=log_level,
    )


def ensure_funded(pubkey: str, friendbot_url: str = DEFAULT_FRIENDBOT_URL, wait: float = 2) -> bool:
    """
    Ask friendbot to fund a testnet account.

    Returns True if the account was funded now, False if it already was.
    """
    try:
        r = requests.get(friendbot_url, params={"addr": pubkey}, timeout=15)
    except requests.RequestException as e:
        raise NetworkUnreachableError(f"Friendbot unreachable: {e}") from e
    # 400 means already funded
    if r.status_code == 400:
        logger.info("Account %s... already funded", pubkey[:8])
        return False
    if r.status_code not in (200, 202):
        raise NetworkUnreachableError(f"Friendbot failed with HTTP {r.status_code}")
    logger.info("Account %s... funded", pubkey[:8])
    # wait ledger close
    time.sleep(wait)
    return True


def balances(pubkey: str, horizon_url: str = DEFAULT_HORIZON_URL) -> Dict[str, str]:
    """Balances of an account keyed by XLM or CODE:ISSUER"""
    server = Server(horizon_url)
    try:
        acct = server.accounts().account_id(pubkey).call()
    except NotFoundError:
        raise AccountNotFoundError(pubkey) from None
    except SdkConnectionError as e:
        raise NetworkUnreachableError(f"Horizon unreachable: {e}") from e
    out = {}
    for b in acct["balances"]:
        code = "XLM" if b["asset_type"] == "native" else f'{b["asset_code"]}:{b["asset_issuer"]}'
        out[code] = b["balance"]
    return out
