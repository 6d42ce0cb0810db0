"""ccli engine layer — wallet/contract session logic with no UI dependency.

All modules use ``from __future__ import annotations`` and modern
Python typing (``str | None``, ``@dataclass(slots=True)``, etc.).

Modules
-------
errors
    Failure taxonomy and the provider-boundary error.
    - ``FailureKind``: enum of every failure a notice can report
    - ``SessionError`` and subclasses (``ProviderUnavailable``, ``ConnectRejected``,
      ``SessionInactive``, ``SessionBusy``, ``SubmissionRejected``,
      ``ConfirmationFailed``, ``ReadFailed``)
    - ``ProviderRpcError``: EIP-1193 coded error from the wallet provider

rpc
    - ``JsonRpcClient``: async JSON-RPC 2.0 over ``httpx.AsyncClient``

provider
    - ``RpcWalletProvider``: account access, balance, calls and receipts over JSON-RPC
    - ``RpcSigner``: ``personal_sign`` / ``eth_sendTransaction`` for one account

events
    - ``ProviderEvent``, ``ProviderEventKind``: accountsChanged / chainChanged / disconnect
    - ``ProviderWatcher``: polls the provider and emits events on change

abi
    - ``COUNTER_ABI``, ``COUNTER``: counter interface descriptor with selectors

wallet
    - ``WalletLink``: atomic connect/disconnect holding address, signer, balance, chain
    - ``WalletIdentity``: handshake result, adopted by the link only while its session is current

contract
    - ``CounterContract``: read/increment/decrement bound to one wallet session
    - ``Confirmation``: result of a confirmed mutating call
    - ``counterFactory``: binding factory for ``SessionController``

ledger
    - ``TransactionLedger``, ``TransactionRecord``, ``CounterMethod``, ``LedgerSnapshot``

session
    - ``SessionController``: Disconnected -> Connecting -> Active state machine
    - ``SessionState``, ``SessionStatus``, ``Notice``

clock
    - ``AppClock``: timezone-aware timestamp source

toolbar
    - ``ToolbarRenderer``: REPL toolbar and history rendering
"""

# Convenience re-exports for common usage:
# from ccli.engine import SessionController, WalletLink, counterFactory
from ccli.engine.contract import Confirmation, CounterContract, counterFactory
from ccli.engine.errors import FailureKind, ProviderRpcError, SessionError
from ccli.engine.ledger import CounterMethod, TransactionLedger, TransactionRecord
from ccli.engine.provider import RpcWalletProvider
from ccli.engine.session import Notice, SessionController, SessionState, SessionStatus
from ccli.engine.wallet import WalletIdentity, WalletLink

__all__ = [
    "Confirmation",
    "CounterContract",
    "counterFactory",
    "FailureKind",
    "ProviderRpcError",
    "SessionError",
    "CounterMethod",
    "TransactionLedger",
    "TransactionRecord",
    "RpcWalletProvider",
    "Notice",
    "SessionController",
    "SessionState",
    "SessionStatus",
    "WalletIdentity",
    "WalletLink",
]
