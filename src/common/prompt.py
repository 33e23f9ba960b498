"""Interactive yes/no confirmation used before replacing or removing packages."""
from __future__ import annotations

import logging
import sys
from typing import Callable

logger = logging.getLogger(__name__)

Confirm = Callable[[str], bool]


def ask_yes_no(question: str) -> bool:
    """Ask ``question`` on the terminal; only ``y`` counts as yes.

    End of input (e.g. a closed stdin) is a "no".
    """
    sys.stdout.write("\n")
    try:
        answer = input(f"> ? {question} ")
    except EOFError:
        sys.stdout.write("\n")
        logger.debug("no answer for prompt: %s", question)
        return False
    return answer.strip() == "y"


def always_yes(question: str) -> bool:
    logger.debug("auto confirm: %s", question)
    return True
