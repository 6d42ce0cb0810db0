"""Failure taxonomy for the wallet/contract session.

Two layers of errors live here:

- ``ProviderRpcError`` is raised at the wallet-provider boundary and carries
  an EIP-1193 style numeric code (4001 user rejected, 4900/4901 disconnected).
- ``SessionError`` subclasses are what the engine raises to the controller.
  Each one maps to exactly one ``FailureKind`` which the controller stores
  as the user-visible notice.
"""
from __future__ import annotations

import enum
from typing import ClassVar, Final

# https://eips.ethereum.org/EIPS/eip-1193#provider-errors
USER_REJECTED: Final = 4001
UNAUTHORIZED: Final = 4100
UNSUPPORTED_METHOD: Final = 4200
DISCONNECTED: Final = 4900
CHAIN_DISCONNECTED: Final = 4901

# geth/anvil report reverts from eth_estimateGas and eth_call with code 3
EXECUTION_REVERTED: Final = 3


class FailureKind(enum.Enum):
    ProviderUnavailable = "ProviderUnavailable"
    ConnectRejected = "ConnectRejected"
    SessionInactive = "SessionInactive"
    SessionBusy = "SessionBusy"
    SubmissionRejected = "SubmissionRejected"
    ConfirmationFailed = "ConfirmationFailed"
    ReadFailed = "ReadFailed"


class ProviderRpcError(Exception):
    """Error reported by (or while talking to) the wallet provider."""

    def __init__(self, code: int, message: str, data=None):
        super().__init__(f"[{code}] {message}")
        self.code = code
        self.message = message
        self.data = data

    @property
    def isUserRejection(self) -> bool:
        return self.code == USER_REJECTED

    @property
    def isDisconnected(self) -> bool:
        return self.code in {DISCONNECTED, CHAIN_DISCONNECTED}

    @property
    def isRevert(self) -> bool:
        # Hardhat uses -32603 and ganache uses -32000 for reverts, so fall back to the text.
        return self.code == EXECUTION_REVERTED or "revert" in self.message.lower()


class SessionError(Exception):
    """Base class for every failure the controller turns into a notice.

    ``fatal`` marks failures caused by losing the provider itself; the
    controller ends the session when it sees one.
    """

    kind: ClassVar[FailureKind]

    def __init__(self, message: str = "", *, fatal: bool = False):
        super().__init__(message or self.kind.value)
        self.message = message or self.kind.value
        self.fatal = fatal


class ProviderUnavailable(SessionError):
    kind = FailureKind.ProviderUnavailable


class ConnectRejected(SessionError):
    kind = FailureKind.ConnectRejected


class SessionInactive(SessionError):
    kind = FailureKind.SessionInactive


class SessionBusy(SessionError):
    """Another connect or mutation is already in flight."""

    kind = FailureKind.SessionBusy


class SubmissionRejected(SessionError):
    kind = FailureKind.SubmissionRejected


class ConfirmationFailed(SessionError):
    kind = FailureKind.ConfirmationFailed


class ReadFailed(SessionError):
    kind = FailureKind.ReadFailed
