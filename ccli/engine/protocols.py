"""Narrow protocols for the wallet provider, its signer, and the counter contract.

These define the minimal interfaces the session core needs from its
collaborators so the concrete JSON-RPC adapters can be swapped for fakes.
"""
from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ccli.engine.contract import Confirmation
    from ccli.engine.events import ProviderEvent


@runtime_checkable
class Signer(Protocol):
    """Signing capability for one account, handed out by the provider."""

    address: str

    async def signMessage(self, message: str) -> str: ...
    async def sendTransaction(self, to: str, data: str) -> str: ...


@runtime_checkable
class WalletProvider(Protocol):
    """Account access, signing and chain reads (EIP-1193 shaped)."""

    async def requestAccounts(self) -> list[str]: ...
    async def accounts(self) -> list[str]: ...
    async def chainId(self) -> int: ...
    async def getSigner(self, address: str) -> Signer: ...
    async def getBalance(self, address: str) -> int: ...
    async def call(self, to: str, data: str, sender: str | None = None) -> str: ...
    async def getTransactionReceipt(self, txHash: str) -> dict[str, Any] | None: ...
    async def getTransaction(self, txHash: str) -> dict[str, Any] | None: ...
    def subscribe(self, listener: Callable[[ProviderEvent], None]) -> Callable[[], None]: ...
    async def aclose(self) -> None: ...


@runtime_checkable
class CounterCapability(Protocol):
    """The three operations of the remote counter."""

    async def readCount(self) -> int: ...
    async def increment(self) -> Confirmation: ...
    async def decrement(self) -> Confirmation: ...

