"""
Source loader: strips whitespace and comments from program text.

Comments run from ``#`` to the next ``#`` or the end of the line. The
character after ``'`` or ``?`` is an operand and is kept verbatim even when
it is whitespace or ``#``; a ``\\`` operand keeps its escape character too.

A digit run is a single number, so when whitespace or a comment is all
that separates two digits a ``.`` (no-op) is left in its place:
``3 4+`` loads as ``3.4+``, not ``34+``.
"""

from pathlib import Path
from typing import List, Union

from .opcodes import BASE_OPCODES, OPERAND_OPS

OPERAND_CHARS = {ch for ch, (op, _) in BASE_OPCODES.items() if op in OPERAND_OPS}
WHITESPACE = " \t\r\n\f\v"
DIGITS = "0123456789"
SEPARATOR = "."


def strip_source(text: str) -> str:
    out: List[str] = []
    gap = False
    # True when out[-1] is an operand, so a following digit starts a new run
    after_operand = False
    pos = 0
    while pos < len(text):
        ch = text[pos]

        if ch in WHITESPACE:
            gap = True
            pos += 1
            continue

        if ch == "#":
            gap = True
            pos += 1
            while pos < len(text) and text[pos] not in "#\n":
                pos += 1
            pos += 1  # closing '#' or newline
            continue

        if gap and ch in DIGITS and out and out[-1] in DIGITS and not after_operand:
            out.append(SEPARATOR)
        gap = False
        after_operand = False

        out.append(ch)
        pos += 1
        if ch in OPERAND_CHARS and pos < len(text):
            operand = text[pos]
            out.append(operand)
            pos += 1
            if operand == "\\" and pos < len(text):
                out.append(text[pos])
                pos += 1
            after_operand = True
    return "".join(out)


def load_source(path: Union[str, Path]) -> str:
    """Read a program file and strip it."""
    return strip_source(Path(path).read_text(encoding="utf-8"))
