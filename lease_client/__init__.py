"""Client for the Soroban asset-leasing contract"""

from .common import Settings, load_settings
from .errors import (
    AccountNotFoundError,
    ConfigurationError,
    InvalidArgumentError,
    LeaseClientError,
    NetworkUnreachableError,
    QueryFailedError,
    SignatureDeclinedError,
    SubmissionRejectedError,
    WalletNotConnectedError,
    WalletUnavailableError,
)
from .lease_api import LeaseAPI, LeaseRequest, LeaseSubmission
from .wallet import KeypairWallet, WalletBridge, WalletProvider, WalletSession, wallet_from_env

__version__ = "0.1.0"
