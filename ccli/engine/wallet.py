"""Connection to the external wallet provider."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Final

from eth_utils import from_wei, to_checksum_address
from loguru import logger

from ccli.engine.errors import (
    ConnectRejected,
    ProviderRpcError,
    ProviderUnavailable,
)
from ccli.engine.protocols import Signer, WalletProvider

# Signed at connect time as a consent gesture only; the signature is discarded.
LOGIN_CHALLENGE: Final = "Please sign to login to Counter DApp"


@dataclass(slots=True, frozen=True)
class WalletIdentity:
    """Result of one wallet handshake, not yet attached to any link."""

    address: str
    signer: Signer
    nativeBalance: Decimal
    chainId: int


class WalletLink:
    """Owns the wallet provider connection for one account.

    ``address`` and ``signer`` are populated together by ``adopt()`` and
    cleared together by ``disconnect()``, so no caller can observe a
    half-connected wallet.

    ``handshake()`` talks to the provider without touching the link, which
    lets a caller throw away a handshake that finished after its session was
    abandoned.
    """

    def __init__(self, provider: WalletProvider | None):
        self.provider = provider
        self.address: str | None = None
        self.signer: Signer | None = None
        self.nativeBalance: Decimal | None = None
        self.chainId: int | None = None

    @property
    def active(self) -> bool:
        return self.signer is not None

    async def handshake(self) -> WalletIdentity:
        if self.provider is None:
            raise ProviderUnavailable("No wallet provider found")

        try:
            accounts = await self.provider.requestAccounts()
            if not accounts:
                raise ConnectRejected("Wallet returned no accounts")

            signer = await self.provider.getSigner(accounts[0])
            address = to_checksum_address(signer.address)
            wei = await self.provider.getBalance(address)
            chainId = await self.provider.chainId()

            # consent gesture: wallets show this text in a signing prompt
            await signer.signMessage(LOGIN_CHALLENGE)
        except ProviderRpcError as e:
            if e.isDisconnected:
                raise ProviderUnavailable(f"Wallet provider unreachable: {e.message}") from e

            if e.isUserRejection:
                raise ConnectRejected("Wallet connection declined") from e

            raise ConnectRejected(f"Wallet refused connection: {e.message}") from e
        except ValueError as e:
            # malformed account or balance from the provider
            raise ConnectRejected(f"Wallet returned invalid data: {e}") from e

        return WalletIdentity(
            address=address,
            signer=signer,
            nativeBalance=Decimal(from_wei(wei, "ether")),
            chainId=chainId,
        )

    def adopt(self, identity: WalletIdentity) -> None:
        self.address = identity.address
        self.signer = identity.signer
        self.nativeBalance = identity.nativeBalance
        self.chainId = identity.chainId

        logger.info(
            "[{}] Wallet connected on chain {} with balance {:.4f}",
            identity.address,
            identity.chainId,
            identity.nativeBalance,
        )

    async def connect(self) -> None:
        self.adopt(await self.handshake())

    def disconnect(self) -> None:
        if self.address:
            logger.info("[{}] Wallet disconnected", self.address)

        self.address = None
        self.signer = None
        self.nativeBalance = None
        self.chainId = None
