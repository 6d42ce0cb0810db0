"""Binding between the remote counter contract and the active wallet session."""
from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from eth_utils import to_checksum_address
from loguru import logger

from ccli.engine.abi import COUNTER, ContractInterface
from ccli.engine.errors import (
    ConfirmationFailed,
    ProviderRpcError,
    ReadFailed,
    SessionInactive,
    SubmissionRejected,
)
from ccli.engine.provider import hexToInt

if TYPE_CHECKING:
    from ccli.engine.protocols import Signer
    from ccli.engine.wallet import WalletLink


@dataclass(slots=True, frozen=True)
class Confirmation:
    """Result of a mutating call, only ever produced after the receipt arrived."""

    txHash: str
    blockNumber: int | None = None
    confirmed: bool = True


class CounterContract:
    """Counter contract handle bound to the signer of one ``WalletLink`` session.

    The signer is borrowed from the link at construction time. Once the link
    disconnects (or reconnects with a new signer) every call fails with
    ``SessionInactive``; a binding never follows the link to a new session.

    No bounds checking happens here: ``decrement()`` on a zero counter is sent
    as-is and whatever the contract reports comes back as ``ConfirmationFailed``.
    """

    def __init__(
        self,
        link: WalletLink,
        address: str,
        *,
        interface: ContractInterface = COUNTER,
        confirmTimeout: float | None = None,
        pollInterval: float = 1.0,
    ):
        self.link = link
        self.address = to_checksum_address(address)
        self.interface = interface
        self.confirmTimeout = confirmTimeout or None
        self.pollInterval = pollInterval
        self.signer: Signer | None = link.signer

    @property
    def valid(self) -> bool:
        return self.signer is not None and self.link.signer is self.signer

    def requireSigner(self) -> Signer:
        if not self.valid:
            raise SessionInactive("Contract binding is not attached to an active wallet")

        assert self.signer
        return self.signer

    async def readCount(self) -> int:
        signer = self.requireSigner()
        provider = self.link.provider
        assert provider

        try:
            data = await provider.call(
                self.address, self.interface.encodeCall("getCount"), signer.address
            )
            (count,) = self.interface.decodeResult("getCount", data)
        except ProviderRpcError as e:
            logger.warning("[{}] getCount() failed: {}", self.address, e)
            raise ReadFailed(f"Can't read count: {e.message}", fatal=e.isDisconnected) from e
        except ValueError as e:
            logger.warning("[{}] getCount() returned garbage: {}", self.address, e)
            raise ReadFailed(f"Can't read count: {e}") from e

        return int(count)

    async def increment(self) -> Confirmation:
        return await self.transact("increment")

    async def decrement(self) -> Confirmation:
        return await self.transact("decrement")

    async def transact(self, name: str) -> Confirmation:
        """Submit argument-less call ``name`` then wait until it is mined."""
        signer = self.requireSigner()

        try:
            txHash = await signer.sendTransaction(self.address, self.interface.encodeCall(name))
        except ProviderRpcError as e:
            if e.isUserRejection:
                raise SubmissionRejected(f"{name}() signature declined") from e

            # nodes estimate gas before accepting the transaction, so a doomed
            # call is reported as a revert here instead of in a receipt
            if e.isRevert:
                raise ConfirmationFailed(f"{name}() reverted: {e.message}") from e

            raise SubmissionRejected(
                f"{name}() not submitted: {e.message}", fatal=e.isDisconnected
            ) from e

        logger.info("[{}] {}() submitted as {}, waiting for confirmation...", self.address, name, txHash)

        try:
            if self.confirmTimeout:
                receipt = await asyncio.wait_for(self.waitForReceipt(txHash), self.confirmTimeout)
            else:
                receipt = await self.waitForReceipt(txHash)
        except TimeoutError as e:
            raise ConfirmationFailed(
                f"{name}() {txHash} not confirmed within {self.confirmTimeout} seconds"
            ) from e
        except ProviderRpcError as e:
            raise ConfirmationFailed(
                f"{name}() {txHash} confirmation lost: {e.message}", fatal=e.isDisconnected
            ) from e

        # receipts from before byzantium have no status field and only exist for successes
        if hexToInt(receipt.get("status", 1)) != 1:
            logger.error("[{}] {}() {} reverted on chain", self.address, name, txHash)
            raise ConfirmationFailed(f"{name}() {txHash} reverted")

        blockNumber = receipt.get("blockNumber")
        confirmation = Confirmation(
            txHash=txHash,
            blockNumber=hexToInt(blockNumber) if blockNumber is not None else None,
        )

        logger.info("[{}] {}() {} confirmed in block {}", self.address, name, txHash, confirmation.blockNumber)
        return confirmation

    async def waitForReceipt(self, txHash: str) -> dict[str, Any]:
        provider = self.link.provider
        assert provider

        while True:
            if receipt := await provider.getTransactionReceipt(txHash):
                return receipt

            # neither mined nor known to the mempool anymore
            if await provider.getTransaction(txHash) is None:
                raise ConfirmationFailed(f"{txHash} was dropped before confirmation")

            await asyncio.sleep(self.pollInterval)


def counterFactory(
    address: str,
    *,
    confirmTimeout: float | None = None,
    pollInterval: float = 1.0,
) -> Callable[[WalletLink], CounterContract]:
    """Build the binding factory the session controller calls on every connect."""

    def bind(link: WalletLink) -> CounterContract:
        return CounterContract(
            link, address, confirmTimeout=confirmTimeout, pollInterval=pollInterval
        )

    return bind
