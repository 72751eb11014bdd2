"""
Chasement — Machine State

State model:
  main    — directly addressable stack ("everything left of the head")
  aux     — auxiliary stack, reachable only through a / m
            ("everything right of the head")
  tape    — fully materialized input, read-once cursor
  output  — append-only list of printed symbols
  pc      — index into Program.instructions
  flag    — condition flag written by tests, read by [ and (
  status  — HaltStatus; RUNNING until a terminal status is set
  steps   — executed instruction count (checked against the step limit)

One MachineState belongs to one run. Nothing in here is global, so any
number of runs over the same Program can proceed side by side.
"""

from __future__ import annotations

import enum
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple, Union


Symbol = Union[str, int, bool]


class HaltStatus(enum.Enum):
    RUNNING = "RUNNING"
    ACCEPT = "ACCEPT"
    REJECT = "REJECT"
    TRAPPED = "TRAPPED"
    STEP_LIMIT_EXCEEDED = "STEP_LIMIT_EXCEEDED"

    @property
    def terminal(self) -> bool:
        return self is not HaltStatus.RUNNING


class TrapKind(enum.Enum):
    STACK_UNDERFLOW = "StackUnderflow"
    END_OF_INPUT = "EndOfInput"
    TYPE_MISMATCH = "TypeMismatch"
    DIVISION_BY_ZERO = "DivisionByZero"


class Trap(Exception):
    """Run-time failure of the current instruction.

    Raised by stacks, the tape and instruction handlers; the engine turns
    it into the TRAPPED status. Never escapes Engine.run().
    """

    def __init__(self, kind: TrapKind, message: str, which: Optional[str] = None):
        self.kind = kind
        self.which = which
        super().__init__(message)

    @property
    def reason(self) -> str:
        if self.which:
            return f"{self.kind.value}({self.which}): {self}"
        return f"{self.kind.value}: {self}"


def underflow(which: str, needed: int = 1, have: int = 0) -> Trap:
    return Trap(TrapKind.STACK_UNDERFLOW,
                f"needs {needed} value(s) on the {which} stack, has {have}",
                which=which)


# ──────────────────────────────────────────────
# Symbols
# ──────────────────────────────────────────────

def symbol_tag(value: Symbol) -> str:
    # bool first: bool is a subclass of int
    if isinstance(value, bool):
        return "Bool"
    if isinstance(value, int):
        return "Int"
    return "Char"


def symbols_equal(a: Symbol, b: Symbol) -> bool:
    """Tag-aware equality: True != 1 and '1' != 1."""
    return symbol_tag(a) == symbol_tag(b) and a == b


def format_symbol(value: Symbol) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


# ──────────────────────────────────────────────
# Stack
# ──────────────────────────────────────────────

class Stack:
    """Named LIFO. Grows and shrinks only at the top."""

    __slots__ = ('name', '_items')

    def __init__(self, name: str, items: Iterable[Symbol] = ()):
        self.name = name
        self._items: List[Symbol] = list(items)

    def push(self, value: Symbol):
        self._items.append(value)

    def pop(self) -> Symbol:
        if not self._items:
            raise underflow(self.name)
        return self._items.pop()

    def peek(self, depth: int = 0) -> Symbol:
        """Value ``depth`` places below the top (0 = top)."""
        if depth >= len(self._items):
            raise underflow(self.name, depth + 1, len(self._items))
        return self._items[-1 - depth]

    def require(self, count: int):
        """Trap unless at least ``count`` values are present."""
        if len(self._items) < count:
            raise underflow(self.name, count, len(self._items))

    def snapshot(self) -> Tuple[Symbol, ...]:
        """Bottom-to-top copy of the contents."""
        return tuple(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __iter__(self) -> Iterator[Symbol]:
        """Top-to-bottom, the order a stack dump prints."""
        return reversed(self._items)

    def __repr__(self):
        return f"Stack({self.name!r}, {self._items!r})"


# ──────────────────────────────────────────────
# Input tape
# ──────────────────────────────────────────────

class InputTape:
    """Immutable symbol sequence with a read-once cursor."""

    __slots__ = ('symbols', 'cursor')

    def __init__(self, symbols: Iterable[Symbol] = ()):
        # A str becomes one char symbol per character
        self.symbols: Tuple[Symbol, ...] = tuple(symbols)
        self.cursor = 0

    @property
    def exhausted(self) -> bool:
        return self.cursor >= len(self.symbols)

    @property
    def remaining(self) -> int:
        return len(self.symbols) - self.cursor

    def read(self) -> Symbol:
        if self.exhausted:
            raise Trap(TrapKind.END_OF_INPUT,
                       f"input exhausted after {len(self.symbols)} symbol(s)")
        value = self.symbols[self.cursor]
        self.cursor += 1
        return value

    def __repr__(self):
        return f"InputTape({self.symbols!r}, cursor={self.cursor})"


# ──────────────────────────────────────────────
# Machine state
# ──────────────────────────────────────────────

class MachineState:
    __slots__ = ('main', 'aux', 'tape', 'output', 'pc', 'flag', 'status', 'steps')

    def __init__(self, tape: Union[InputTape, Iterable[Symbol]] = ()):
        self.main = Stack("main")
        self.aux = Stack("aux")
        self.tape = tape if isinstance(tape, InputTape) else InputTape(tape)
        self.output: List[Symbol] = []
        self.pc = 0
        self.flag = False
        self.status = HaltStatus.RUNNING
        self.steps = 0

    @property
    def output_text(self) -> str:
        return "".join(format_symbol(v) for v in self.output)

    def display(self) -> str:
        """One-line state summary for traces."""
        main = " ".join(format_symbol(v) for v in self.main.snapshot())
        aux = " ".join(format_symbol(v) for v in self.aux.snapshot())
        return (f"main=[{main}] aux=[{aux}] flag={int(self.flag)} "
                f"in={self.tape.cursor}/{len(self.tape.symbols)}")


# ──────────────────────────────────────────────
# Acceptance predicates
# ──────────────────────────────────────────────

AcceptancePredicate = Callable[[MachineState], bool]


def empty_stack(state: MachineState) -> bool:
    return not state.main and state.tape.exhausted


def empty_stacks(state: MachineState) -> bool:
    return not state.main and not state.aux and state.tape.exhausted


def input_consumed(state: MachineState) -> bool:
    return state.tape.exhausted


def produced_output(state: MachineState) -> bool:
    return bool(state.output)


ACCEPTANCE_PREDICATES: Dict[str, AcceptancePredicate] = {
    "empty-stack": empty_stack,
    "empty-stacks": empty_stacks,
    "input-consumed": input_consumed,
    "output": produced_output,
}

DEFAULT_ACCEPTANCE = "empty-stack"


def resolve_acceptance(acceptance: Any) -> AcceptancePredicate:
    """Accept a registered name or a callable(state) -> bool."""
    if callable(acceptance):
        return acceptance
    try:
        return ACCEPTANCE_PREDICATES[acceptance]
    except KeyError:
        raise ValueError(
            f"Unknown acceptance predicate {acceptance!r} "
            f"(choose from {', '.join(ACCEPTANCE_PREDICATES)})") from None
