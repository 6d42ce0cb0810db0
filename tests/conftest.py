"""Shared test fixtures for ccli test suite.

FakeWalletProvider provides a test double for a JSON-RPC wallet provider
backed by an in-memory counter chain, allowing headless testing without a
running node.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any

import pytest
import whenever
from eth_abi import encode
from eth_utils import encode_hex

from ccli.engine.abi import COUNTER
from ccli.engine.contract import counterFactory
from ccli.engine.errors import DISCONNECTED, EXECUTION_REVERTED, USER_REJECTED, ProviderRpcError
from ccli.engine.events import ListenerSet, ProviderEvent
from ccli.engine.session import SessionController
from ccli.engine.wallet import WalletLink

ADDRESS = "0x000000000000000000000000000000000000abcd"
OTHER_ADDRESS = "0x0000000000000000000000000000000000001234"
CONTRACT = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
CHAIN_ID = 11155111
ONE_ETH = 10**18

SELECTOR_NAMES = {v: k for k, v in COUNTER.selectors.items()}


@dataclass
class FakeChain:
    """In-memory counter contract plus the transactions sent to it."""

    count: int = 0
    blockNumber: int = 100

    # simulates other users mutating the counter in the same block as ours
    externalDelta: int = 0

    # how a decrement below zero is reported: "estimate" fails at submission,
    # "receipt" gets mined with status 0
    revertMode: str = "receipt"

    txs: dict[str, dict] = field(default_factory=dict)
    receipts: dict[str, dict] = field(default_factory=dict)

    def execute(self, name: str) -> bool:
        """Apply ``name`` to the counter, returning False when it reverts."""
        if name == "decrement" and self.count == 0:
            return False

        self.count += 1 if name == "increment" else -1
        self.count += self.externalDelta
        return True


class FakeSigner:
    """Stub signer handing everything back to its FakeWalletProvider."""

    def __init__(self, provider: "FakeWalletProvider", address: str):
        self.provider = provider
        self.address = address
        self.signed: list[str] = []

    async def signMessage(self, message: str) -> str:
        if self.provider.rejectSign:
            raise ProviderRpcError(USER_REJECTED, "User denied message signature.")

        self.signed.append(message)
        return "0x" + "11" * 65

    async def sendTransaction(self, to: str, data: str) -> str:
        p = self.provider
        if p.offline:
            raise ProviderRpcError(DISCONNECTED, "connection refused")

        if p.rejectSubmit:
            raise ProviderRpcError(USER_REJECTED, "User denied transaction signature.")

        name = SELECTOR_NAMES[data]
        p.sent.append((to, name))

        ok = p.chain.execute(name)
        if not ok and p.chain.revertMode == "estimate":
            raise ProviderRpcError(EXECUTION_REVERTED, "execution reverted: Counter: cannot decrement below zero")

        txHash = p.txHashes.pop(0) if p.txHashes else f"0x{len(p.sent):064x}"
        p.chain.blockNumber += 1
        p.chain.txs[txHash] = {"hash": txHash, "from": self.address, "to": to, "input": data}
        p.chain.receipts[txHash] = {
            "transactionHash": txHash,
            "blockNumber": hex(p.chain.blockNumber),
            "status": "0x1" if ok else "0x0",
        }
        return txHash


class FakeWalletProvider:
    """Test double for RpcWalletProvider.

    Flags toggle the failure modes a real wallet can produce; ``confirmGate``
    holds every receipt lookup until the test sets it.
    """

    def __init__(self, accounts: list[str] | None = None, chain: FakeChain | None = None):
        self.accountList = list(accounts if accounts is not None else [ADDRESS])
        self.chain = chain or FakeChain()
        self.chainIdValue = CHAIN_ID
        self.balance = 2 * ONE_ETH + ONE_ETH // 4

        self.rejectAccounts = False
        self.rejectSign = False
        self.rejectSubmit = False
        self.offline = False
        self.readError: ProviderRpcError | None = None
        self.dropped: set[str] = set()
        self.confirmGate: asyncio.Event | None = None
        self.txHashes: list[str] = []

        self.sent: list[tuple[str, str]] = []
        self.calls: list[tuple[str, str, str | None]] = []
        self.signers: list[FakeSigner] = []
        self.listeners = ListenerSet()
        self.closed = False

    # ── Wallet ──

    async def requestAccounts(self) -> list[str]:
        if self.offline:
            raise ProviderRpcError(DISCONNECTED, "connection refused")

        if self.rejectAccounts:
            raise ProviderRpcError(USER_REJECTED, "User rejected the request.")

        return list(self.accountList)

    async def accounts(self) -> list[str]:
        return list(self.accountList)

    async def chainId(self) -> int:
        return self.chainIdValue

    async def getSigner(self, address: str) -> FakeSigner:
        signer = FakeSigner(self, address)
        self.signers.append(signer)
        return signer

    async def getBalance(self, address: str) -> int:
        return self.balance

    # ── Chain ──

    async def call(self, to: str, data: str, sender: str | None = None) -> str:
        self.calls.append((to, SELECTOR_NAMES[data], sender))
        if self.readError:
            raise self.readError

        return encode_hex(encode(["uint256"], [self.chain.count]))

    async def getTransactionReceipt(self, txHash: str) -> dict[str, Any] | None:
        if self.confirmGate:
            await self.confirmGate.wait()

        if txHash in self.dropped:
            return None

        return self.chain.receipts.get(txHash)

    async def getTransaction(self, txHash: str) -> dict[str, Any] | None:
        if txHash in self.dropped:
            return None

        return self.chain.txs.get(txHash)

    # ── Events ──

    def subscribe(self, listener):
        return self.listeners.subscribe(listener)

    def emit(self, event: ProviderEvent) -> None:
        """Test helper: push a provider event to subscribers."""
        self.listeners.emit(event)

    async def aclose(self) -> None:
        self.closed = True


class FixedClock:
    """Clock returning increasing timestamps one second apart."""

    def __init__(self):
        self.base = whenever.ZonedDateTime(2025, 1, 2, 3, 4, 5, tz="UTC")
        self.ticks = 0

    def __call__(self) -> whenever.ZonedDateTime:
        self.ticks += 1
        return self.base.add(seconds=self.ticks)


async def settle(rounds: int = 10) -> None:
    """Let pending tasks run up to their next real suspension point."""
    for _ in range(rounds):
        await asyncio.sleep(0)


# ── Fixtures ──


@pytest.fixture
def provider() -> FakeWalletProvider:
    """FakeWalletProvider with one account and a counter at 5."""
    return FakeWalletProvider(chain=FakeChain(count=5))


@pytest.fixture
def link(provider) -> WalletLink:
    return WalletLink(provider)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def controller(link, clock) -> SessionController:
    return SessionController(link, counterFactory(CONTRACT, pollInterval=0), clock=clock)
