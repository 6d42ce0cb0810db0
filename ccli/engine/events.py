"""Wallet provider events and the watcher that produces them.

A browser wallet pushes ``accountsChanged`` / ``chainChanged`` / ``disconnect``
events to the page. A JSON-RPC node has no push channel, so ``ProviderWatcher``
polls ``eth_accounts`` and ``eth_chainId`` and emits the same events when it
observes a change.
"""
from __future__ import annotations

import asyncio
import enum
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeAlias

from loguru import logger

from ccli.engine.errors import ProviderRpcError

if TYPE_CHECKING:
    from ccli.engine.protocols import WalletProvider


class ProviderEventKind(enum.Enum):
    AccountsChanged = "accountsChanged"
    ChainChanged = "chainChanged"
    Disconnect = "disconnect"


@dataclass(slots=True, frozen=True)
class ProviderEvent:
    kind: ProviderEventKind

    # list[str] for AccountsChanged, int for ChainChanged, reason str for Disconnect
    value: Any = None


ProviderListener: TypeAlias = Callable[[ProviderEvent], None]


class ListenerSet:
    """Fan-out of provider events to subscribed listeners."""

    def __init__(self):
        self.listeners: list[ProviderListener] = []

    def subscribe(self, listener: ProviderListener) -> Callable[[], None]:
        self.listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self.listeners:
                self.listeners.remove(listener)

        return unsubscribe

    def emit(self, event: ProviderEvent) -> None:
        # iterate a copy: a listener may unsubscribe itself while handling
        for listener in list(self.listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Provider event listener failed for {}", event)

    def __len__(self) -> int:
        return len(self.listeners)


class ProviderWatcher:
    """Poll a provider for account/network changes and emit events on change."""

    def __init__(self, provider: WalletProvider, listeners: ListenerSet, interval: float = 2.0):
        self.provider = provider
        self.listeners = listeners
        self.interval = interval
        self.lastAccounts: list[str] | None = None
        self.lastChainId: int | None = None
        self.task: asyncio.Task | None = None

        # cancelled tasks not yet awaited; collected by stop()
        self.retired: set[asyncio.Task] = set()

    def start(self) -> None:
        if self.task and not self.task.done():
            return

        self.task = asyncio.create_task(self.run(), name="provider-watcher")

    def cancel(self) -> None:
        """Stop polling without waiting for the task to unwind."""
        if not self.task:
            return

        self.task.cancel()
        self.retired.add(self.task)
        self.task.add_done_callback(self.retired.discard)
        self.task = None

    async def stop(self) -> None:
        self.cancel()
        if self.retired:
            await asyncio.gather(*self.retired, return_exceptions=True)

    async def poll(self) -> None:
        """Run one observation cycle, emitting events for anything that changed."""
        try:
            accounts = [a.lower() for a in await self.provider.accounts()]
            chainId = await self.provider.chainId()
        except ProviderRpcError as e:
            if e.isDisconnected:
                if self.lastChainId is not None:
                    logger.warning("[watcher] Provider went away: {}", e.message)
                    self.listeners.emit(ProviderEvent(ProviderEventKind.Disconnect, e.message))

                self.lastAccounts = None
                self.lastChainId = None
                return

            raise

        if self.lastAccounts is not None and accounts != self.lastAccounts:
            logger.info("[watcher] Accounts changed: {} -> {}", self.lastAccounts, accounts)
            self.listeners.emit(ProviderEvent(ProviderEventKind.AccountsChanged, accounts))

        if self.lastChainId is not None and chainId != self.lastChainId:
            logger.info("[watcher] Chain changed: {} -> {}", self.lastChainId, chainId)
            self.listeners.emit(ProviderEvent(ProviderEventKind.ChainChanged, chainId))

        self.lastAccounts = accounts
        self.lastChainId = chainId

    async def run(self) -> None:
        logger.debug("[watcher] Watching provider every {} seconds", self.interval)
        while True:
            try:
                await self.poll()
            except ProviderRpcError as e:
                logger.warning("[watcher] Poll failed: {}", e)
            except Exception:
                logger.exception("[watcher] Poll failed unexpectedly")

            await asyncio.sleep(self.interval)
