"""
Chasement — Execution Engine

Fetch/decode/execute loop over a built Program:
  1. Stop if the status is already terminal
  2. Past the last instruction: evaluate the acceptance predicate
  3. Fetch the instruction at pc, advance pc
  4. Dispatch on Op; handlers mutate MachineState or raise Trap / _Halt
  5. Count the step

Termination:
  ACCEPT / REJECT        end of program (predicate), or x / y / n
  TRAPPED                a handler raised Trap; state is left exactly as it
                         was before the failing instruction, pc included
  STEP_LIMIT_EXCEEDED    run(step_limit=N) executed N instructions and the
                         program still wants more

Every handler validates operands before touching a stack, so a trap never
leaves a half-applied instruction behind.

Usage:
    program = load_program("fat$~[,$~]")
    result = Engine(program, "abc").run(step_limit=10_000)
    result.status, result.output_text
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .machine import (
    MachineState, HaltStatus, Trap, TrapKind, Symbol,
    DEFAULT_ACCEPTANCE, format_symbol, resolve_acceptance, symbol_tag, symbols_equal,
)
from .opcodes import Op
from .program import Instruction, Program

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunResult:
    status: HaltStatus
    output: Tuple[Symbol, ...]
    trap_reason: Optional[str] = None
    trap: Optional[TrapKind] = None
    pc: Optional[int] = None
    offset: Optional[int] = None
    steps: int = 0
    state: Optional[MachineState] = None

    @property
    def accepted(self) -> bool:
        return self.status is HaltStatus.ACCEPT

    @property
    def output_text(self) -> str:
        return "".join(format_symbol(v) for v in self.output)


class Engine:
    """Runs one Program against one input tape.

    The Program is shared and read-only; the MachineState belongs to this
    engine alone. Call reset() to run the same program on another tape.
    """

    def __init__(self, program: Program, tape: Iterable[Symbol] = (),
                 acceptance: Any = DEFAULT_ACCEPTANCE):
        self.program = program
        self.accepts = resolve_acceptance(acceptance)
        self.state = MachineState(tape)

        self._trap: Optional[Trap] = None
        self._trace = False
        self._trace_output: List[str] = []

        self._dispatch: Dict[Op, Callable[[Instruction], None]] = self._build_dispatch()
        missing = [op.name for op in Op if op not in self._dispatch]
        if missing:
            raise RuntimeError(f"No handler for {', '.join(missing)}")

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    def step(self) -> Optional[HaltStatus]:
        """Execute one instruction. Returns the status once terminal, else None."""
        state = self.state
        if state.status.terminal:
            return state.status

        pc = state.pc
        if pc >= len(self.program):
            return self._halt(HaltStatus.ACCEPT if self.accepts(state) else HaltStatus.REJECT)

        insn = self.program[pc]
        if self._trace:
            line = f"{pc:5d}: {str(insn):<5} {insn.op.value:<10} {state.display()}"
            self._trace_output.append(line)
            log.debug(line)

        state.pc = pc + 1
        try:
            self._dispatch[insn.op](insn)
        except _Halt as halt:
            state.steps += 1
            return self._halt(halt.status)
        except Trap as trap:
            state.pc = pc
            self._trap = trap
            log.debug("Trap at pc=%d (%s): %s", pc, insn, trap.reason)
            return self._halt(HaltStatus.TRAPPED)

        state.steps += 1
        return None

    def run(self, step_limit: Optional[int] = None) -> RunResult:
        """Run until a terminal status. ``step_limit`` bounds executed instructions."""
        if step_limit is not None and step_limit < 0:
            raise ValueError(f"step_limit must be >= 0, got {step_limit}")

        state = self.state
        while not state.status.terminal:
            if (step_limit is not None and state.steps >= step_limit
                    and state.pc < len(self.program)):
                log.debug("Step limit %d reached at pc=%d", step_limit, state.pc)
                self._halt(HaltStatus.STEP_LIMIT_EXCEEDED)
                break
            self.step()
        return self.result()

    def result(self) -> RunResult:
        state = self.state
        trap = self._trap
        pc = None
        offset = None
        if state.status in (HaltStatus.TRAPPED, HaltStatus.STEP_LIMIT_EXCEEDED):
            pc = state.pc
            if pc < len(self.program):
                offset = self.program[pc].offset
        return RunResult(
            status=state.status,
            output=tuple(state.output),
            trap_reason=trap.reason if trap else None,
            trap=trap.kind if trap else None,
            pc=pc,
            offset=offset,
            steps=state.steps,
            state=state,
        )

    def reset(self, tape: Iterable[Symbol] = ()):
        """Fresh state for another run of the same program."""
        self.state = MachineState(tape)
        self._trap = None
        self._trace_output.clear()

    def _halt(self, status: HaltStatus) -> HaltStatus:
        self.state.status = status
        log.debug("Halted: %s after %d steps", status.value, self.state.steps)
        return status

    # ══════════════════════════════════════════════
    # Instruction handlers
    # ══════════════════════════════════════════════
    # Handler signature: handler(insn). pc already points past insn;
    # jumps overwrite state.pc.

    def _build_dispatch(self) -> dict:
        return {
            # ── Transfer ──
            Op.AUX:  self._op_aux,
            Op.MAIN: self._op_main,

            # ── Input ──
            Op.READ: self._op_read,

            # ── Literals ──
            Op.PUSH_CHAR:  self._op_push_operand,
            Op.PUSH_INT:   self._op_push_operand,
            Op.PUSH_TRUE:  self._op_push_true,
            Op.PUSH_FALSE: self._op_push_false,

            # ── Stack ──
            Op.DUP:  self._op_dup,
            Op.DROP: self._op_drop,
            Op.SWAP: self._op_swap,

            # ── Tests ──
            Op.TEST_CHAR:      self._op_test_char,
            Op.EQUAL:          self._op_equal,
            Op.TEST_EMPTY:     self._op_test_empty,
            Op.TEST_AUX_EMPTY: self._op_test_aux_empty,
            Op.TEST_END:       self._op_test_end,
            Op.SELECT:         self._op_select,
            Op.INVERT:         self._op_invert,

            # ── Control flow ──
            Op.LOOP:   self._op_loop,
            Op.REPEAT: self._op_repeat,
            Op.IF:     self._op_if,
            Op.END_IF: self._op_nop,

            # ── Output / halt / debug ──
            Op.PRINT:  self._op_print,
            Op.EXIT:   self._op_exit,
            Op.ACCEPT: self._op_accept,
            Op.REJECT: self._op_reject,
            Op.DUMP:   self._op_dump,
            Op.NOP:    self._op_nop,

            # ── Extended ──
            Op.ADD:     self._op_add,
            Op.SUB:     self._op_sub,
            Op.MUL:     self._op_mul,
            Op.DIV:     self._op_div,
            Op.MOD:     self._op_mod,
            Op.AND:     self._op_and,
            Op.OR:      self._op_or,
            Op.XOR:     self._op_xor,
            Op.NOT:     self._op_not,
            Op.LESS:    self._op_less,
            Op.GREATER: self._op_greater,
        }

    # ── Transfer ──

    def _op_aux(self, insn):
        self.state.aux.push(self.state.main.pop())

    def _op_main(self, insn):
        self.state.main.push(self.state.aux.pop())

    # ── Input ──

    def _op_read(self, insn):
        self.state.main.push(self.state.tape.read())

    # ── Literals ──

    def _op_push_operand(self, insn):
        self.state.main.push(insn.operand)

    def _op_push_true(self, insn):
        self.state.main.push(True)

    def _op_push_false(self, insn):
        self.state.main.push(False)

    # ── Stack ──

    def _op_dup(self, insn):
        main = self.state.main
        main.push(main.peek())

    def _op_drop(self, insn):
        self.state.main.pop()

    def _op_swap(self, insn):
        main = self.state.main
        main.require(2)
        top = main.pop()
        second = main.pop()
        main.push(top)
        main.push(second)

    # ── Tests ──

    def _op_test_char(self, insn):
        self.state.flag = symbols_equal(self.state.main.peek(), insn.operand)

    def _op_equal(self, insn):
        main = self.state.main
        main.require(2)
        self.state.flag = symbols_equal(main.pop(), main.pop())

    def _op_test_empty(self, insn):
        self.state.flag = not self.state.main

    def _op_test_aux_empty(self, insn):
        self.state.flag = not self.state.aux

    def _op_test_end(self, insn):
        self.state.flag = self.state.tape.exhausted

    def _op_select(self, insn):
        main = self.state.main
        value = main.peek()
        if not isinstance(value, bool):
            raise Trap(TrapKind.TYPE_MISMATCH,
                       f"'{insn.char}' (select) needs a Bool, got {symbol_tag(value)} {value!r}")
        main.pop()
        self.state.flag = value

    def _op_invert(self, insn):
        self.state.flag = not self.state.flag

    # ── Control flow ──

    def _op_loop(self, insn):
        if not self.state.flag:
            self.state.pc = self.program.target(self.state.pc - 1) + 1

    def _op_repeat(self, insn):
        # Back to the opener, which re-checks the flag
        self.state.pc = self.program.target(self.state.pc - 1)

    def _op_if(self, insn):
        if not self.state.flag:
            self.state.pc = self.program.target(self.state.pc - 1) + 1

    def _op_nop(self, insn):
        pass

    # ── Output / halt / debug ──

    def _op_print(self, insn):
        self.state.output.append(self.state.main.pop())

    def _op_exit(self, insn):
        raise _Halt(HaltStatus.ACCEPT if self.accepts(self.state) else HaltStatus.REJECT)

    def _op_accept(self, insn):
        raise _Halt(HaltStatus.ACCEPT)

    def _op_reject(self, insn):
        raise _Halt(HaltStatus.REJECT)

    def _op_dump(self, insn):
        state = self.state
        log.debug("Main: [%s]", ", ".join(repr(v) for v in state.main))
        log.debug("Aux:  [%s]", ", ".join(repr(v) for v in state.aux))

    # ── Extended ──
    # Binary ops take (second, top) and leave one result.

    def _binary(self, insn, allowed: Tuple[str, ...], fn):
        main = self.state.main
        main.require(2)
        top, second = main.peek(0), main.peek(1)
        tag = symbol_tag(second)
        if tag != symbol_tag(top) or tag not in allowed:
            raise Trap(TrapKind.TYPE_MISMATCH,
                       f"'{insn.char}' ({insn.op.value}) called on invalid combination "
                       f"({second!r}, {top!r})")
        result = fn(second, top)
        main.pop()
        main.pop()
        main.push(result)

    def _divide(self, insn, fn):
        main = self.state.main
        main.require(2)
        top, second = main.peek(0), main.peek(1)
        if symbol_tag(top) == symbol_tag(second) == "Int" and top == 0:
            raise Trap(TrapKind.DIVISION_BY_ZERO, f"'{insn.char}' by zero")
        self._binary(insn, ("Int",), fn)

    def _op_add(self, insn):
        self._binary(insn, ("Int", "Char"), lambda a, b: a + b)

    def _op_sub(self, insn):
        self._binary(insn, ("Int",), lambda a, b: a - b)

    def _op_mul(self, insn):
        self._binary(insn, ("Int",), lambda a, b: a * b)

    def _op_div(self, insn):
        self._divide(insn, lambda a, b: a // b)

    def _op_mod(self, insn):
        self._divide(insn, lambda a, b: a % b)

    def _op_and(self, insn):
        self._binary(insn, ("Int", "Bool"), lambda a, b: a & b)

    def _op_or(self, insn):
        self._binary(insn, ("Int", "Bool"), lambda a, b: a | b)

    def _op_xor(self, insn):
        self._binary(insn, ("Int", "Bool"), lambda a, b: a ^ b)

    def _op_not(self, insn):
        main = self.state.main
        value = main.peek()
        if isinstance(value, bool):
            result = not value
        elif isinstance(value, int):
            result = ~value
        else:
            raise Trap(TrapKind.TYPE_MISMATCH,
                       f"'{insn.char}' (not) called on a non Int or Bool value {value!r}")
        main.pop()
        main.push(result)

    def _op_less(self, insn):
        self._binary(insn, ("Int", "Char"), lambda a, b: a < b)

    def _op_greater(self, insn):
        self._binary(insn, ("Int", "Char"), lambda a, b: a > b)

    # ══════════════════════════════════════════════
    # Trace / Debug
    # ══════════════════════════════════════════════

    def enable_trace(self, enable: bool = True):
        """Record one line per executed instruction (also logged at DEBUG)."""
        self._trace = enable

    def get_trace(self) -> str:
        return '\n'.join(self._trace_output)

    def clear_trace(self):
        self._trace_output.clear()


# Internal exception for halting instructions
class _Halt(Exception):
    def __init__(self, status: HaltStatus):
        self.status = status
        super().__init__(status.value)


def run(program: Program, input: Iterable[Symbol] = (), step_limit: Optional[int] = None,
        acceptance: Any = DEFAULT_ACCEPTANCE, trace: bool = False) -> RunResult:
    """Run ``program`` against ``input`` and report how it ended."""
    engine = Engine(program, input, acceptance=acceptance)
    engine.enable_trace(trace)
    return engine.run(step_limit=step_limit)
