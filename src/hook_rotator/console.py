import logging
from typing import Awaitable, Callable

import questionary
from rich.console import Console
from rich.logging import RichHandler

from hook_rotator.exceptions import OperatorAbortError

Confirm = Callable[[str, bool], Awaitable[bool]]

console = Console(highlight=False)


async def confirm(message: str, default: bool = True) -> bool:
    answer = await questionary.confirm(message, default=default).ask_async()
    if answer is None:
        raise OperatorAbortError("Aborted at confirmation prompt")
    return bool(answer)


def setup_logging(level: str, target: Console = console):
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="%X",
        handlers=[RichHandler(console=target, show_path=False, markup=False)],
        force=True,
    )
