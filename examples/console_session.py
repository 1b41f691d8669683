"""Example: connect a local signer, inspect the contract and toggle the public sale."""

from __future__ import annotations

import asyncio
import logging
import os

from dotenv import load_dotenv

from mint_console import ConsoleConfig, MintConsole, Notification, Presenter, SaleKind
from mint_console.utils import format_ether

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOGLEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


class TerminalPresenter(Presenter):
    """Print notifications and ask confirmations on stdin."""

    def notify(self, notification: Notification) -> None:
        if notification.level is not None:
            print(f"[{notification.level.value}] {notification.message}")

    async def confirm(self, prompt: str) -> bool:
        answer = await asyncio.to_thread(input, f"{prompt}\n[y/N] ")
        return answer.strip().lower() in {"y", "yes"}


async def main() -> None:
    private_key = os.getenv("PRIVATE_KEY")
    if not private_key:
        raise ValueError("PRIVATE_KEY not found in environment variables")

    config = ConsoleConfig.from_env()
    console = MintConsole.from_private_key(private_key, config=config, presenter=TerminalPresenter())

    await console.connect()
    snapshot = console.snapshot
    if snapshot is None or not snapshot.configured:
        print(snapshot.reason if snapshot else "Contract state unavailable")
        return

    print(f"{snapshot.name} ({snapshot.symbol})")
    print(f"Minted: {snapshot.total_minted} / {snapshot.max_supply}")
    print(f"Public sale open: {snapshot.public_sale_open}")
    print(f"Contract balance: {format_ether(snapshot.balance_wei)} ETH")

    current_round = await console.queries.current_round()
    print(f"Current round: {current_round.epoch} ({current_round.label})")

    result = await console.set_sale_open(SaleKind.PUBLIC, not snapshot.public_sale_open)
    print(f"Result: {result.status.name} - {result.message}")


if __name__ == "__main__":
    asyncio.run(main())
