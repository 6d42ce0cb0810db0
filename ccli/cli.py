#!/usr/bin/env python3

original_print = print
import asyncio
import os
import pathlib
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Final

import whenever
from loguru import logger
from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from prompt_toolkit.history import FileHistory, ThreadedHistory
from prompt_toolkit.patch_stdout import patch_stdout
from prompt_toolkit.shortcuts import set_title

from ccli.completer import CommandCompleter
from ccli.config import Settings, loadSettings
from ccli.engine.clock import AppClock
from ccli.engine.contract import counterFactory
from ccli.engine.provider import RpcWalletProvider
from ccli.engine.session import SessionController
from ccli.engine.toolbar import ToolbarRenderer
from ccli.engine.wallet import WalletLink

TOPUP_NOTICE: Final = "Top-up is only a simulation (not connected to faucet)."

# command name -> (method name on CounterCmdlineApp, description)
COMMANDS: Final = {
    "connect": ("cmdConnect", "Connect wallet and bind the counter contract"),
    "disconnect": ("cmdDisconnect", "End the wallet session"),
    "increment": ("cmdIncrement", "Increment the on-chain counter"),
    "inc": ("cmdIncrement", "Alias for increment"),
    "decrement": ("cmdDecrement", "Decrement the on-chain counter"),
    "dec": ("cmdDecrement", "Alias for decrement"),
    "history": ("cmdHistory", "Show this session's transactions, newest first"),
    "status": ("cmdStatus", "Show wallet and counter status"),
    "topup": ("cmdTopup", "Simulated faucet top-up (does nothing on chain)"),
    "help": ("cmdHelp", "List commands"),
}

EXIT_COMMANDS: Final = {"quit", "exit"}


@dataclass(slots=True)
class CounterCmdlineApp:
    """Interactive front end for one wallet/contract session.

    Only renders controller state and forwards actions; all session logic
    lives in ``SessionController``.
    """

    settings: Settings = field(default_factory=loadSettings)

    # wallet provider (built from settings.rpcUrl when not provided)
    provider: RpcWalletProvider | None = None

    controller: SessionController = field(init=False)
    toolbar: ToolbarRenderer = field(init=False)

    exiting: bool = False

    _console_sink: Callable | None = None
    _console_handler_id: int | None = None

    def __post_init__(self):
        if self.provider is None and self.settings.rpcUrl:
            self.provider = RpcWalletProvider.fromUrl(
                self.settings.rpcUrl, watchInterval=self.settings.watchInterval
            )

        self.controller = SessionController(
            WalletLink(self.provider),
            counterFactory(
                self.settings.contractAddress,
                confirmTimeout=self.settings.confirmTimeout,
                pollInterval=self.settings.pollInterval,
            ),
            clock=AppClock(self.settings.timezone),
        )

        self.toolbar = ToolbarRenderer(self.settings.explorerUrl)

    def setupLogging(self) -> None:
        now = whenever.ZonedDateTime.now(self.settings.timezone)
        LOGDIR = pathlib.Path(self.settings.logDir) / f"{now.year}" / f"{now.month:02}"
        LOGDIR.mkdir(exist_ok=True, parents=True)
        LOG_FILE_TEMPLATE = str(
            LOGDIR
            / f"ccli-pid={os.getpid()}-{now.year}{now.month:02}{now.day:02}_{now.hour:02}{now.minute:02}{now.second:02}"
        )

        def asink(x):
            # print through the original print so patch_stdout() keeps the prompt intact
            original_print(x, end="")

        logger.remove()
        self._console_sink = asink
        self._console_handler_id = logger.add(asink, colorize=True, level=self.settings.logLevel)

        # files get everything, including user input logged at TRACE
        logger.add(sink=LOG_FILE_TEMPLATE + "-ccli.log", level="TRACE", colorize=False)
        logger.add(sink=LOG_FILE_TEMPLATE + "-ccli-color.log", level="TRACE", colorize=True)

        logger.info("Logging session with prefix: {}", LOG_FILE_TEMPLATE)

    def setConsoleLogLevel(self, level: str) -> None:
        """Change the console log level at runtime."""
        if self._console_handler_id is not None:
            logger.remove(self._console_handler_id)

        self._console_handler_id = logger.add(self._console_sink, colorize=True, level=level)
        logger.info("Console log level set to {}", level)

    def bottomToolbar(self):
        return self.toolbar.render(self.controller.state())

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def cmdConnect(self) -> None:
        await self.controller.connect()

    async def cmdDisconnect(self) -> None:
        self.controller.disconnect()

    async def cmdIncrement(self) -> None:
        await self.controller.increment()

    async def cmdDecrement(self) -> None:
        # the contract can't go below zero, so don't offer a doomed transaction
        if self.controller.active and self.controller.count == 0:
            logger.warning("Counter is already at zero, not decrementing.")
            return

        await self.controller.decrement()

    async def cmdHistory(self) -> None:
        for row in self.toolbar.historyRows(self.controller.state()):
            logger.info(row)

    async def cmdStatus(self) -> None:
        logger.info(self.toolbar.statusLine(self.controller.state()))

    async def cmdTopup(self) -> None:
        logger.info(TOPUP_NOTICE)

    async def cmdHelp(self) -> None:
        for name, (_, desc) in COMMANDS.items():
            logger.info("{:<12} {}", name, desc)

    async def runCommand(self, text: str) -> None:
        cmd = text.strip().lower()
        if not cmd:
            return

        if cmd in EXIT_COMMANDS:
            self.exiting = True
            return

        if cmd not in COMMANDS:
            logger.error("Unknown command: {} (try 'help')", cmd)
            return

        handler: Callable[[], Awaitable[None]] = getattr(self, COMMANDS[cmd][0])
        await handler()

    # ------------------------------------------------------------------
    # Runtime
    # ------------------------------------------------------------------

    async def shutdown(self) -> None:
        if self.controller.active:
            self.controller.disconnect()

        if self.provider:
            await self.provider.aclose()

    async def run(self) -> None:
        self.setupLogging()

        if not self.settings.contractAddress:
            logger.error("No contract configured! Set CCLI_CONTRACT_ADDRESS in the environment or .env.ccli")
            return

        set_title("ccli counter")
        logger.info("Counter contract {} via {}", self.settings.contractAddress, self.settings.rpcUrl)

        session: PromptSession = PromptSession(
            history=ThreadedHistory(FileHistory(os.path.expanduser("~/.ccli_history"))),
            auto_suggest=AutoSuggestFromHistory(),
            completer=CommandCompleter({k: v[1] for k, v in COMMANDS.items()}),
        )

        try:
            with patch_stdout():
                while not self.exiting:
                    try:
                        text = await session.prompt_async(
                            "counter> ",
                            bottom_toolbar=self.bottomToolbar,
                            refresh_interval=0.5,
                            complete_while_typing=True,
                        )

                        # log user input to our active logfile(s)
                        logger.trace("counter> {}", text)

                        await self.runCommand(text)
                    except KeyboardInterrupt:
                        # Control-C pressed. Try again.
                        continue
                    except EOFError:
                        # Control-D pressed
                        logger.error("Exiting...")
                        self.exiting = True
        finally:
            await self.shutdown()


def main() -> None:
    app = CounterCmdlineApp()
    try:
        asyncio.run(app.run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
