"""
Chasement — Instruction Alphabet / Opcode Table

Maps every instruction character to (op, category). This is the only
place that knows which characters mean what; the program builder decodes
through it once at load time and the engine dispatches on ``Op`` only.

Categories:
  TRANSFER   a m             move a symbol between the two stacks
  INPUT      ,               consume the next tape symbol
  LITERAL    ' 0-9 t f       push a literal symbol
  STACK      d o w           dup / drop / swap on the main stack
  TEST       ? = e z $ s ~   write the condition flag
  CONTROL    [ ] ( )         structured jumps (resolved at load time)
  OUTPUT     p               pop to the output accumulator
  HALT       x y n           stop the run
  DEBUG      h               dump both stacks to the log
  NOP        .               separator, does nothing
  EXTENDED   + - * / % & | ^ ! < >   arithmetic / logic (gated)
"""

import enum
from typing import Dict, Tuple


class Op(enum.Enum):
    # ── Transfer ──
    AUX = "aux"
    MAIN = "main"

    # ── Input ──
    READ = "read"

    # ── Literals ──
    PUSH_CHAR = "char"
    PUSH_INT = "int"
    PUSH_TRUE = "true"
    PUSH_FALSE = "false"

    # ── Main stack shuffling ──
    DUP = "dup"
    DROP = "drop"
    SWAP = "swap"

    # ── Tests (write the condition flag) ──
    TEST_CHAR = "test"
    EQUAL = "equal"
    TEST_EMPTY = "empty"
    TEST_AUX_EMPTY = "aux-empty"
    TEST_END = "end"
    SELECT = "select"
    INVERT = "invert"

    # ── Control flow ──
    LOOP = "loop"
    REPEAT = "repeat"
    IF = "if"
    END_IF = "end-if"

    # ── Output / halting / debug ──
    PRINT = "print"
    EXIT = "exit"
    ACCEPT = "accept"
    REJECT = "reject"
    DUMP = "dump"
    NOP = "nop"

    # ── Extended arithmetic / logic ──
    ADD = "add"
    SUB = "sub"
    MUL = "mul"
    DIV = "div"
    MOD = "mod"
    AND = "and"
    OR = "or"
    XOR = "xor"
    NOT = "not"
    LESS = "less"
    GREATER = "greater"


class Category(enum.Enum):
    TRANSFER = "transfer"
    INPUT = "input"
    LITERAL = "literal"
    STACK = "stack"
    TEST = "test"
    CONTROL = "control"
    OUTPUT = "output"
    HALT = "halt"
    DEBUG = "debug"
    NOP = "nop"
    EXTENDED = "extended"


# ──────────────────────────────────────────────
# Base set: the "pure PDA" subset, always available
# ──────────────────────────────────────────────
# Format: char -> (op, category)

BASE_OPCODES: Dict[str, Tuple[Op, Category]] = {
    'a': (Op.AUX,            Category.TRANSFER),
    'm': (Op.MAIN,           Category.TRANSFER),
    ',': (Op.READ,           Category.INPUT),
    "'": (Op.PUSH_CHAR,      Category.LITERAL),
    't': (Op.PUSH_TRUE,      Category.LITERAL),
    'f': (Op.PUSH_FALSE,     Category.LITERAL),
    'd': (Op.DUP,            Category.STACK),
    'o': (Op.DROP,           Category.STACK),
    'w': (Op.SWAP,           Category.STACK),
    '?': (Op.TEST_CHAR,      Category.TEST),
    '=': (Op.EQUAL,          Category.TEST),
    'e': (Op.TEST_EMPTY,     Category.TEST),
    'z': (Op.TEST_AUX_EMPTY, Category.TEST),
    '$': (Op.TEST_END,       Category.TEST),
    's': (Op.SELECT,         Category.TEST),
    '~': (Op.INVERT,         Category.TEST),
    '[': (Op.LOOP,           Category.CONTROL),
    ']': (Op.REPEAT,         Category.CONTROL),
    '(': (Op.IF,             Category.CONTROL),
    ')': (Op.END_IF,         Category.CONTROL),
    'p': (Op.PRINT,          Category.OUTPUT),
    'x': (Op.EXIT,           Category.HALT),
    'y': (Op.ACCEPT,         Category.HALT),
    'n': (Op.REJECT,         Category.HALT),
    'h': (Op.DUMP,           Category.DEBUG),
    '.': (Op.NOP,            Category.NOP),
}

# Digits never appear alone: a maximal run of them is one PUSH_INT.
for _digit in "0123456789":
    BASE_OPCODES[_digit] = (Op.PUSH_INT, Category.LITERAL)
del _digit


# ──────────────────────────────────────────────
# Extended set: arithmetic / logic
# ──────────────────────────────────────────────

EXTENDED_OPCODES: Dict[str, Tuple[Op, Category]] = {
    '+': (Op.ADD,     Category.EXTENDED),
    '-': (Op.SUB,     Category.EXTENDED),
    '*': (Op.MUL,     Category.EXTENDED),
    '/': (Op.DIV,     Category.EXTENDED),
    '%': (Op.MOD,     Category.EXTENDED),
    '&': (Op.AND,     Category.EXTENDED),
    '|': (Op.OR,      Category.EXTENDED),
    '^': (Op.XOR,     Category.EXTENDED),
    '!': (Op.NOT,     Category.EXTENDED),
    '<': (Op.LESS,    Category.EXTENDED),
    '>': (Op.GREATER, Category.EXTENDED),
}


# Instructions whose operand is the next source character
OPERAND_OPS = (Op.PUSH_CHAR, Op.TEST_CHAR)

# Opener -> closer for structured control flow
BLOCK_PAIRS: Dict[Op, Op] = {
    Op.LOOP: Op.REPEAT,
    Op.IF: Op.END_IF,
}
BLOCK_CLOSERS: Dict[Op, Op] = {close: open_ for open_, close in BLOCK_PAIRS.items()}

# Escapes accepted after ' and ?
ESCAPES: Dict[str, str] = {
    'n': '\n',
    't': '\t',
    's': ' ',
    '\\': '\\',
}


def lookup(char: str) -> Tuple[Op, Category]:
    """Return (op, category) for an instruction character.

    Raises KeyError for characters in neither table. Extended characters
    are returned whether or not the extended set is enabled; gating is the
    caller's job so it can report the right error.
    """
    if char in BASE_OPCODES:
        return BASE_OPCODES[char]
    return EXTENDED_OPCODES[char]


def is_extended(char: str) -> bool:
    return char in EXTENDED_OPCODES
