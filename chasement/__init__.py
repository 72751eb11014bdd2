"""
Chasement — a two-stack automaton language
==========================================
Programs are strings of one-character instructions working a main stack,
an auxiliary stack reachable only through transfers, a read-once input
tape and an output list. Two stacks give the machine a tape head: ``a``
moves it left, ``m`` moves it right, which is enough to recognize
languages no single-stack automaton can, such as a^n b^n c^n.

Architecture:
    ┌─────────┐    ┌──────────┐    ┌───────────┐    ┌──────────┐
    │ Source  │───>│  Loader  │───>│  Program  │───>│  Engine  │───> RunResult
    │ (text)  │    │ (strip)  │    │ (decode + │    │ (fetch / │
    └─────────┘    └──────────┘    │  resolve) │    │ execute) │
                                   └───────────┘    └──────────┘
    - opcodes.py:  character -> (Op, category) table
    - loader.py:   whitespace / comment stripping
    - program.py:  Instruction, Program, load-time errors
    - machine.py:  stacks, tape, MachineState, acceptance predicates
    - engine.py:   Engine, RunResult, run()
    - config.py:   profiles ('extended', 'pda') and Config
"""

__version__ = "0.2.0"

from .opcodes import Op, Category
from .loader import strip_source, load_source
from .program import (
    Instruction, Program, load_program,
    MalformedProgram, UnknownInstruction, ExtendedInstructionDisabled,
    UnbalancedControlFlow,
)
from .machine import (
    HaltStatus, TrapKind, Trap, Stack, InputTape, MachineState,
    ACCEPTANCE_PREDICATES,
)
from .engine import Engine, RunResult, run
from .config import Config, ConfigError, PROFILES, get_config


def run_source(source: str, input="", *, config: Config = None) -> RunResult:
    """Strip, build and run program source in one call.

    Full pipeline: strip_source -> Program.from_text -> Engine.run.
    """
    config = config or Config()
    program = load_program(strip_source(source), extended=config.extended_instructions)
    return run(program, input, step_limit=config.step_limit,
               acceptance=config.acceptance, trace=config.trace)
