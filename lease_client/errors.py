"""
Errors raised by the lease client.

Every error carries a short message meant to be shown to the user as-is.
"""


class LeaseClientError(Exception):
    """Base class for all lease client failures"""

    default_message = "Lease client error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class WalletUnavailableError(LeaseClientError):
    default_message = "Wallet not found!"


class WalletNotConnectedError(LeaseClientError):
    default_message = "Wallet not connected"


class NetworkUnreachableError(LeaseClientError):
    default_message = "Network unreachable"


class AccountNotFoundError(LeaseClientError):
    """The signer's account does not exist on the ledger yet"""

    def __init__(self, public_key: str):
        self.public_key = public_key
        super().__init__(f"Account {public_key} not found on ledger, fund it first")


class SignatureDeclinedError(LeaseClientError):
    default_message = "Signature declined"


class SubmissionRejectedError(LeaseClientError):
    """The ledger refused the transaction, either at simulation or at submission"""

    default_message = "Submission rejected by ledger"

    def __init__(self, message: str = None, response=None):
        self.response = response
        super().__init__(message)


class InvalidArgumentError(LeaseClientError):
    """A contract argument has no contract value encoding (float, None, out-of-range int...)"""

    default_message = "Invalid contract argument"


class QueryFailedError(LeaseClientError):
    """A read-only contract call could not be simulated; nothing was submitted"""

    default_message = "Contract query failed"

    def __init__(self, message: str = None, response=None):
        self.response = response
        super().__init__(message)


class ConfigurationError(LeaseClientError, ValueError):
    default_message = "Invalid configuration"
