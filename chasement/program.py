"""
Chasement — Program Representation

Turns stripped program text into an immutable ``Program``:

  1. Decode   each character (or digit run, or char + operand) becomes one
              ``Instruction`` via the opcode table in opcodes.py
  2. Gate     extended characters are refused when the extended set is off,
              whether or not they would ever execute
  3. Resolve  one pass with a stack of open block positions pairs every
              ``[``/``(`` with its ``]``/``)``; the jump table maps both
              directions so the engine never scans source at run time

The program counter indexes instructions, not characters. Every
instruction also remembers the character offset it came from, for error
messages and listings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, List, Mapping, Optional, Tuple

from .opcodes import (
    Op, Category, BLOCK_PAIRS, BLOCK_CLOSERS, ESCAPES, OPERAND_OPS,
    lookup, is_extended,
)

log = logging.getLogger(__name__)


# ──────────────────────────────────────────────
# Load-time errors
# ──────────────────────────────────────────────

class MalformedProgram(Exception):
    """Program text cannot be turned into a Program."""

    def __init__(self, message: str, offset: Optional[int] = None):
        self.offset = offset
        if offset is None:
            super().__init__(message)
        else:
            super().__init__(f"{message} (at offset {offset})")


class UnknownInstruction(MalformedProgram):
    def __init__(self, char: str, offset: int):
        self.char = char
        super().__init__(f"Unknown instruction {char!r}", offset)


class ExtendedInstructionDisabled(MalformedProgram):
    def __init__(self, char: str, offset: int):
        self.char = char
        super().__init__(
            f"Extended instruction {char!r} used with extended instructions disabled",
            offset)


class UnbalancedControlFlow(MalformedProgram):
    pass


# ──────────────────────────────────────────────
# Instruction / Program values
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class Instruction:
    op: Op
    char: str
    operand: Any = None
    offset: int = 0

    @property
    def category(self) -> Category:
        return lookup(self.char)[1]

    def __str__(self):
        if self.op is Op.PUSH_INT:
            return str(self.operand)
        if self.op in OPERAND_OPS:
            return f"{self.char}{self.operand!r}"
        return self.char


@dataclass(frozen=True)
class Program:
    """Decoded instruction sequence plus its resolved jump table.

    Immutable and safe to share between any number of runs.
    """
    instructions: Tuple[Instruction, ...]
    jumps: Mapping[int, int] = field(default_factory=lambda: MappingProxyType({}))
    extended: bool = True
    text: str = ""

    @classmethod
    def from_text(cls, text: str, extended: bool = True) -> "Program":
        instructions = decode(text, extended=extended)
        jumps = resolve_blocks(instructions)
        log.debug("Built program: %d instructions, %d blocks, extended=%s",
                  len(instructions), len(jumps) // 2, extended)
        return cls(tuple(instructions), MappingProxyType(jumps), extended, text)

    def __len__(self) -> int:
        return len(self.instructions)

    def __getitem__(self, pc: int) -> Instruction:
        return self.instructions[pc]

    def target(self, pc: int) -> int:
        """Matching block position for the control-flow instruction at pc."""
        return self.jumps[pc]

    def listing(self) -> str:
        """Address / source / op / jump-target table for debugging."""
        lines = [f"{'PC':>5}  {'OFS':>5}  {'INSN':<6} {'OP':<10} TARGET"]
        for pc, insn in enumerate(self.instructions):
            target = f"-> {self.jumps[pc]}" if pc in self.jumps else ""
            lines.append(
                f"{pc:>5}  {insn.offset:>5}  {str(insn):<6} {insn.op.value:<10} {target}".rstrip())
        return "\n".join(lines)


# ──────────────────────────────────────────────
# Decoding
# ──────────────────────────────────────────────

def _read_operand(text: str, pos: int, owner: str, owner_offset: int) -> Tuple[str, int]:
    """Read the operand character at pos. Returns (symbol, next_pos)."""
    if pos >= len(text):
        raise MalformedProgram(f"{owner!r} is missing its operand", owner_offset)
    ch = text[pos]
    if ch != "\\":
        return ch, pos + 1
    if pos + 1 >= len(text):
        raise MalformedProgram("Unterminated escape sequence", pos)
    esc = text[pos + 1]
    if esc not in ESCAPES:
        raise MalformedProgram(f"Invalid escape sequence \\{esc}", pos)
    return ESCAPES[esc], pos + 2


def decode(text: str, extended: bool = True) -> List[Instruction]:
    """Decode program text into a flat instruction list (no jump resolution)."""
    instructions: List[Instruction] = []
    pos = 0
    while pos < len(text):
        ch = text[pos]
        start = pos
        try:
            op, _ = lookup(ch)
        except KeyError:
            raise UnknownInstruction(ch, pos) from None

        if not extended and is_extended(ch):
            raise ExtendedInstructionDisabled(ch, pos)

        if op is Op.PUSH_INT:
            while pos < len(text) and text[pos] in "0123456789":
                pos += 1
            instructions.append(Instruction(op, ch, int(text[start:pos]), start))
            continue

        if op in OPERAND_OPS:
            operand, pos = _read_operand(text, pos + 1, ch, start)
            instructions.append(Instruction(op, ch, operand, start))
            continue

        instructions.append(Instruction(op, ch, None, start))
        pos += 1
    return instructions


# ──────────────────────────────────────────────
# Block resolution
# ──────────────────────────────────────────────

def resolve_blocks(instructions: List[Instruction]) -> dict:
    """Pair every block opener with its closer.

    Returns {opener_pc: closer_pc, closer_pc: opener_pc}. A closer with no
    open block, a closer of the wrong kind, or a block still open at the end
    is an ``UnbalancedControlFlow``.
    """
    jumps = {}
    open_blocks: List[int] = []
    for pc, insn in enumerate(instructions):
        if insn.op in BLOCK_PAIRS:
            open_blocks.append(pc)
        elif insn.op in BLOCK_CLOSERS:
            if not open_blocks:
                raise UnbalancedControlFlow(
                    f"{insn.char!r} closes no open block", insn.offset)
            opener_pc = open_blocks.pop()
            opener = instructions[opener_pc]
            if BLOCK_PAIRS[opener.op] is not insn.op:
                raise UnbalancedControlFlow(
                    f"{insn.char!r} cannot close {opener.char!r} "
                    f"opened at offset {opener.offset}", insn.offset)
            jumps[opener_pc] = pc
            jumps[pc] = opener_pc
    if open_blocks:
        opener = instructions[open_blocks[-1]]
        raise UnbalancedControlFlow(
            f"{opener.char!r} is never closed", opener.offset)
    return jumps


def load_program(text: str, extended: bool = True) -> Program:
    """Build a Program from already-stripped program text."""
    return Program.from_text(text, extended=extended)
