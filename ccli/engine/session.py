"""Wallet/contract session state machine.

``SessionController`` is the only stateful piece between the UI and the chain.
It walks the lifecycle Disconnected -> Connecting -> Active and back, allows
at most one mutating contract call in flight, re-reads the authoritative
on-chain count after every confirmed call, and records completed calls in the
session ledger.

Nothing raised by the wallet or contract layers escapes an action method.
Every failure becomes a ``Notice`` stored as ``lastNotice`` (and returned to
the caller) while in-flight flags are rolled back.

Each session gets a new ``epoch``. Results arriving for an older epoch (the
user disconnected, or the wallet switched accounts while a call was awaiting)
are dropped instead of leaking into the next session.
"""
from __future__ import annotations

import asyncio
import enum
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal
from typing import TypeAlias

from loguru import logger

from ccli.engine.clock import AppClock
from ccli.engine.errors import (
    FailureKind,
    ProviderUnavailable,
    ReadFailed,
    SessionBusy,
    SessionError,
    SessionInactive,
    SubmissionRejected,
)
from ccli.engine.events import ProviderEvent, ProviderEventKind
from ccli.engine.ledger import (
    CounterMethod,
    LedgerSnapshot,
    TransactionLedger,
    TransactionRecord,
)
from ccli.engine.protocols import CounterCapability
from ccli.engine.wallet import WalletLink

BindingFactory: TypeAlias = Callable[[WalletLink], CounterCapability]


class SessionStatus(enum.Enum):
    Disconnected = "Disconnected"
    Connecting = "Connecting"
    Active = "Active"


@dataclass(slots=True, frozen=True)
class Notice:
    """Transient message for the UI; ``failure`` is None for successes."""

    message: str
    failure: FailureKind | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


@dataclass(slots=True, frozen=True)
class SessionState:
    """Everything the UI needs to render, captured at one instant."""

    status: SessionStatus
    address: str | None
    nativeBalance: Decimal | None
    chainId: int | None
    count: int
    pendingMutation: bool
    history: LedgerSnapshot
    lastNotice: Notice | None


StateListener: TypeAlias = Callable[[SessionState], None]


class SessionController:
    """Orchestrates ``WalletLink``, the contract binding, and the ledger.

    Dependencies are injected at construction so several isolated sessions
    (or tests) can run side by side.

    Parameters
    ----------
    link:
        Wallet connection; owns address and signer.
    bindingFactory:
        Called with the freshly connected link to build the contract binding.
    ledger:
        Session transaction history (a new one is created if omitted).
    clock:
        Timestamp source for ledger records.
    """

    def __init__(
        self,
        link: WalletLink,
        bindingFactory: BindingFactory,
        *,
        ledger: TransactionLedger | None = None,
        clock: Callable | None = None,
    ):
        self.link = link
        self.bindingFactory = bindingFactory
        self.ledger = ledger or TransactionLedger()
        self.clock = clock or AppClock()

        self.binding: CounterCapability | None = None
        self.status = SessionStatus.Disconnected
        self.count = 0
        self.pendingMutation = False
        self.lastNotice: Notice | None = None

        self.epoch = 0
        self.unsubscribeProvider: Callable[[], None] | None = None
        self.listeners: list[StateListener] = []

    # ------------------------------------------------------------------
    # Exposed state
    # ------------------------------------------------------------------

    @property
    def address(self) -> str | None:
        return self.link.address

    @property
    def nativeBalance(self) -> Decimal | None:
        return self.link.nativeBalance

    @property
    def chainId(self) -> int | None:
        return self.link.chainId

    @property
    def history(self) -> LedgerSnapshot:
        return self.ledger.snapshot()

    @property
    def active(self) -> bool:
        return self.status is SessionStatus.Active

    def state(self) -> SessionState:
        return SessionState(
            status=self.status,
            address=self.address,
            nativeBalance=self.nativeBalance,
            chainId=self.chainId,
            count=self.count,
            pendingMutation=self.pendingMutation,
            history=self.history,
            lastNotice=self.lastNotice,
        )

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener`` with a fresh ``SessionState`` after every change."""
        self.listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self.listeners:
                self.listeners.remove(listener)

        return unsubscribe

    def publish(self) -> None:
        if not self.listeners:
            return

        state = self.state()
        for listener in list(self.listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Session state listener failed")

    def notify(self, message: str, failure: FailureKind | None = None) -> Notice:
        self.lastNotice = Notice(message, failure)

        if failure:
            logger.warning("[{}] {}", failure.value, message)
        else:
            logger.info(message)

        self.publish()
        return self.lastNotice

    def fail(self, err: SessionError) -> Notice:
        if err.fatal and self.status is not SessionStatus.Disconnected:
            logger.error("Lost wallet provider, closing session: {}", err.message)
            self.teardown()

        return self.notify(err.message, err.kind)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> Notice:
        if self.status is SessionStatus.Connecting:
            return self.fail(SessionBusy("Wallet connection already in progress"))

        if self.status is SessionStatus.Active:
            return self.fail(SessionBusy("Wallet already connected"))

        self.epoch += 1
        epoch = self.epoch
        self.status = SessionStatus.Connecting
        self.publish()

        try:
            identity = await self.link.handshake()
            if epoch != self.epoch:
                # the link now belongs to whatever session replaced this one
                return self.abandoned(identity.address)

            self.link.adopt(identity)
            binding = self.bindingFactory(self.link)
            count = await binding.readCount()
        except SessionError as e:
            return self.abortConnect(epoch, e)
        except asyncio.CancelledError:
            self.abortConnect(epoch, ProviderUnavailable("Wallet connection cancelled"))
            raise
        except Exception as e:
            logger.exception("Wallet connection failed unexpectedly")
            return self.abortConnect(epoch, ProviderUnavailable(f"Failed to connect wallet: {e}"))

        if epoch != self.epoch:
            return self.abandoned(identity.address)

        self.binding = binding
        self.count = count
        self.ledger.clear()
        self.status = SessionStatus.Active

        assert self.link.provider
        self.unsubscribeProvider = self.link.provider.subscribe(self.onProviderEvent)

        return self.notify("Wallet connected!")

    def abandoned(self, address: str) -> Notice:
        logger.warning("[{}] Session ended while connecting, dropping wallet handshake", address)
        return Notice("Wallet connection abandoned", FailureKind.SessionInactive)

    def abortConnect(self, epoch: int, err: SessionError) -> Notice:
        # a stale connect never adopted the link, or teardown already cleared it
        if epoch != self.epoch:
            return Notice(err.message, err.kind)

        # the link may have connected before the seed read failed
        self.link.disconnect()
        self.binding = None
        self.count = 0
        self.status = SessionStatus.Disconnected
        return self.notify(err.message, err.kind)

    def disconnect(self) -> Notice:
        self.teardown()
        return self.notify("Wallet disconnected.")

    def teardown(self) -> None:
        """Drop everything scoped to the current session."""
        self.epoch += 1

        if self.unsubscribeProvider:
            self.unsubscribeProvider()
            self.unsubscribeProvider = None

        self.link.disconnect()
        self.binding = None
        self.ledger.clear()
        self.count = 0
        self.pendingMutation = False
        self.status = SessionStatus.Disconnected

    def onProviderEvent(self, event: ProviderEvent) -> None:
        """React to wallet-side changes instead of holding on to a stale signer."""
        if self.status is not SessionStatus.Active:
            return

        match event.kind:
            case ProviderEventKind.AccountsChanged:
                accounts = [a.lower() for a in event.value or []]
                if accounts and self.address and accounts[0] == self.address.lower():
                    return

                self.teardown()
                self.notify("Wallet account changed, session closed.", FailureKind.SessionInactive)
            case ProviderEventKind.ChainChanged:
                if event.value == self.link.chainId:
                    return

                self.teardown()
                self.notify(
                    f"Wallet switched to chain {event.value}, session closed.",
                    FailureKind.SessionInactive,
                )
            case ProviderEventKind.Disconnect:
                self.teardown()
                self.notify(
                    f"Wallet provider disconnected: {event.value}",
                    FailureKind.ProviderUnavailable,
                )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def increment(self) -> Notice:
        return await self.mutate(CounterMethod.Increment)

    async def decrement(self) -> Notice:
        return await self.mutate(CounterMethod.Decrement)

    async def mutate(self, method: CounterMethod) -> Notice:
        if self.status is not SessionStatus.Active or self.binding is None:
            return self.fail(SessionInactive("Connect a wallet first"))

        if self.pendingMutation:
            return self.fail(SessionBusy("Another transaction is still pending"))

        binding = self.binding
        epoch = self.epoch
        self.pendingMutation = True
        self.publish()

        try:
            return await self.runMutation(binding, method, epoch)
        finally:
            # only reached with the flag still set when we were cancelled mid-call
            if epoch == self.epoch and self.pendingMutation:
                self.pendingMutation = False
                self.publish()

    async def runMutation(
        self, binding: CounterCapability, method: CounterMethod, epoch: int
    ) -> Notice:
        name = method.value

        try:
            if method is CounterMethod.Increment:
                confirmation = await binding.increment()
            else:
                confirmation = await binding.decrement()
        except SessionError as e:
            return self.settle(epoch, e)
        except Exception as e:
            logger.exception("{} failed unexpectedly", name)
            return self.settle(epoch, SubmissionRejected(f"{name} failed: {e}"))

        if epoch != self.epoch:
            logger.warning(
                "Session ended while {} {} was confirming, dropping result", name, confirmation.txHash
            )
            return Notice(f"{name} confirmed after session ended", FailureKind.SessionInactive)

        # confirmed on chain: this is history now even if the follow-up read fails
        self.ledger.append(TransactionRecord(method, confirmation.txHash, self.clock()))

        try:
            count = await binding.readCount()
        except SessionError as e:
            return self.settle(epoch, e)
        except Exception as e:
            logger.exception("Count refresh after {} failed unexpectedly", name)
            return self.settle(epoch, ReadFailed(f"Can't read count: {e}"))

        if epoch != self.epoch:
            return Notice(f"{name} confirmed after session ended", FailureKind.SessionInactive)

        # always the remote value, never a locally adjusted one
        self.count = count
        self.pendingMutation = False
        return self.notify(f"{name} successful.")

    def settle(self, epoch: int, err: SessionError) -> Notice:
        if epoch != self.epoch:
            return Notice(err.message, err.kind)

        self.pendingMutation = False
        return self.fail(err)
