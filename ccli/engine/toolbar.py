"""Text rendering of session state for the REPL.

Generates the prompt_toolkit bottom toolbar HTML plus the plain-text history
rows printed by the ``history`` command.
"""
from __future__ import annotations

from html import escape

from prompt_toolkit.formatted_text import HTML

from ccli.engine.ledger import TransactionRecord
from ccli.engine.session import SessionState, SessionStatus


def shortHash(txHash: str, size: int = 10) -> str:
    """Abbreviate a hash for display like ``0x12345678...``."""
    if len(txHash) <= size:
        return txHash

    return f"{txHash[:size]}..."


def fmtBalance(balance) -> str:
    if balance is None:
        return "-"

    return f"{balance:.4f} ETH"


class ToolbarRenderer:
    """Formats ``SessionState`` snapshots for display.

    Holds only display configuration; state is passed in on every call so
    rendering never reaches into the controller.
    """

    def __init__(self, explorerUrl: str = "https://sepolia.etherscan.io"):
        self.explorerUrl = explorerUrl.rstrip("/")

    def txUrl(self, txHash: str) -> str:
        return f"{self.explorerUrl}/tx/{txHash}"

    def historyRow(self, record: TransactionRecord) -> str:
        return " | ".join(
            [
                record.method.value,
                shortHash(record.txHash),
                self.txUrl(record.txHash),
                record.observedAt.format_common_iso(),
            ]
        )

    def historyRows(self, state: SessionState) -> list[str]:
        if not state.history:
            return ["No transactions yet."]

        return [self.historyRow(r) for r in state.history]

    def statusLine(self, state: SessionState) -> str:
        match state.status:
            case SessionStatus.Active:
                pending = " | PENDING" if state.pendingMutation else ""
                return (
                    f"Address: {state.address} | Balance: {fmtBalance(state.nativeBalance)}"
                    f" | Chain: {state.chainId} | Count: {state.count}{pending}"
                )
            case SessionStatus.Connecting:
                return "Connecting to wallet..."
            case _:
                return "Please connect your wallet to use this DApp."

    def render(self, state: SessionState) -> HTML:
        color = {
            SessionStatus.Active: "ansigreen",
            SessionStatus.Connecting: "ansiyellow",
            SessionStatus.Disconnected: "ansired",
        }[state.status]

        rows = [
            f"<{color}>{state.status.value}</{color}> {escape(self.statusLine(state))}",
        ]

        if state.lastNotice:
            tag = "ansired" if state.lastNotice.failure else "ansicyan"
            rows.append(f"<{tag}>{escape(state.lastNotice.message)}</{tag}>")

        return HTML("\n".join(rows))
