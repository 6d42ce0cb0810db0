"""JSON-RPC backed wallet provider and signer.

The provider speaks to a node (or wallet bridge) that holds the account keys
itself, e.g. a Hardhat/anvil development node with unlocked accounts. We never
see or manage private keys: signing is always delegated via ``personal_sign``
and ``eth_sendTransaction``.
"""
from __future__ import annotations

from collections.abc import Callable
from typing import Any

from eth_utils import encode_hex, to_checksum_address
from loguru import logger

from ccli.engine.errors import UNSUPPORTED_METHOD, ProviderRpcError
from ccli.engine.events import ListenerSet, ProviderListener, ProviderWatcher
from ccli.engine.rpc import JsonRpcClient

# JSON-RPC "method not found"
METHOD_NOT_FOUND = -32601


def hexToInt(val: str | int | None) -> int:
    if val is None:
        return 0

    if isinstance(val, int):
        return val

    return int(val, 16)


class RpcSigner:
    """Signing capability for one account managed by the remote provider."""

    def __init__(self, provider: RpcWalletProvider, address: str):
        self.provider = provider
        self.address = address

    def __repr__(self) -> str:
        return f"RpcSigner({self.address})"

    async def signMessage(self, message: str) -> str:
        # personal_sign takes the hex-encoded UTF-8 bytes then the account
        return await self.provider.rpc.request(
            "personal_sign", [encode_hex(message.encode()), self.address]
        )

    async def sendTransaction(self, to: str, data: str) -> str:
        tx = {"from": self.address, "to": to, "data": data}
        txHash = await self.provider.rpc.request("eth_sendTransaction", [tx])
        logger.debug("[{}] Submitted transaction {} to {}", self.address, txHash, to)
        return txHash


class RpcWalletProvider:
    """``WalletProvider`` implementation over ``JsonRpcClient``."""

    def __init__(self, rpc: JsonRpcClient, *, watchInterval: float = 2.0):
        self.rpc = rpc
        self.listeners = ListenerSet()
        self.watcher = ProviderWatcher(self, self.listeners, interval=watchInterval)

    @classmethod
    def fromUrl(cls, url: str, *, watchInterval: float = 2.0) -> RpcWalletProvider:
        return cls(JsonRpcClient(url), watchInterval=watchInterval)

    async def requestAccounts(self) -> list[str]:
        """Ask the provider for account access.

        Plain nodes don't implement the wallet-only ``eth_requestAccounts``, so
        fall back to ``eth_accounts`` when the method is unknown.
        """
        try:
            return list(await self.rpc.request("eth_requestAccounts") or [])
        except ProviderRpcError as e:
            if e.code not in {METHOD_NOT_FOUND, UNSUPPORTED_METHOD}:
                raise

        return await self.accounts()

    async def accounts(self) -> list[str]:
        return list(await self.rpc.request("eth_accounts") or [])

    async def chainId(self) -> int:
        return hexToInt(await self.rpc.request("eth_chainId"))

    async def getSigner(self, address: str) -> RpcSigner:
        return RpcSigner(self, to_checksum_address(address))

    async def getBalance(self, address: str) -> int:
        return hexToInt(await self.rpc.request("eth_getBalance", [address, "latest"]))

    async def call(self, to: str, data: str, sender: str | None = None) -> str:
        tx = {"to": to, "data": data}
        if sender:
            tx["from"] = sender

        return await self.rpc.request("eth_call", [tx, "latest"])

    async def getTransactionReceipt(self, txHash: str) -> dict[str, Any] | None:
        return await self.rpc.request("eth_getTransactionReceipt", [txHash])

    async def getTransaction(self, txHash: str) -> dict[str, Any] | None:
        return await self.rpc.request("eth_getTransactionByHash", [txHash])

    def subscribe(self, listener: ProviderListener) -> Callable[[], None]:
        """Register for provider events; polling starts with the first listener."""
        unsubscribe = self.listeners.subscribe(listener)
        self.watcher.start()

        def stop() -> None:
            unsubscribe()
            if not self.listeners:
                # aclose() awaits the cancelled task
                self.watcher.cancel()

        return stop

    async def aclose(self) -> None:
        await self.watcher.stop()
        await self.rpc.aclose()
