#!/usr/bin/env python3
"""
chase — Chasement two-stack automaton runner

Usage:
    chase <program.chase> [--input TEXT | --input-file PATH] [--pda]
                          [--step-limit N] [--acceptance NAME]
                          [--trace] [--listing] [--verbose] [--log-file PATH]

With no program path the program is read from stdin (then --input or
--input-file supplies the tape; otherwise the tape is empty).

Output symbols go to stdout; the final status goes to stderr.

Exit codes:
    0  ACCEPT
    1  load / usage / I/O error
    3  REJECT
    4  TRAPPED
    5  STEP_LIMIT_EXCEEDED

Examples:
    chase anbncn.chase --input aabbcc
    chase anbncn.chase --input aabbc --trace -v
    echo "'hp'ip" | chase
    chase loop.chase --step-limit 1000
"""

import argparse
import logging
import sys

from chasement import __version__
from chasement.config import ConfigError, DEFAULT_PROFILE, get_config
from chasement.engine import Engine
from chasement.loader import load_source, strip_source
from chasement.log import setup_logging
from chasement.machine import ACCEPTANCE_PREDICATES, HaltStatus
from chasement.program import MalformedProgram, load_program

log = logging.getLogger("chasement.cli")

EXIT_CODES = {
    HaltStatus.ACCEPT: 0,
    HaltStatus.REJECT: 3,
    HaltStatus.TRAPPED: 4,
    HaltStatus.STEP_LIMIT_EXCEEDED: 5,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chase",
        description="Run a Chasement two-stack automaton program",
        epilog="Acceptance predicates: " + ", ".join(ACCEPTANCE_PREDICATES),
    )
    parser.add_argument("program", nargs="?",
                        help="Program file (default: read program from stdin)")
    tape = parser.add_mutually_exclusive_group()
    tape.add_argument("--input", "-i", default=None,
                      help="Input tape as text, one symbol per character")
    tape.add_argument("--input-file", default=None,
                      help="Read the input tape from a file (one trailing newline is dropped)")
    parser.add_argument("--pda", action="store_true",
                        help="Pure PDA mode: reject extended (arithmetic/logic) instructions")
    parser.add_argument("--step-limit", type=int, default=None,
                        help="Stop with STEP_LIMIT_EXCEEDED after N instructions")
    parser.add_argument("--acceptance", default=None,
                        choices=list(ACCEPTANCE_PREDICATES),
                        help="Acceptance predicate at end of program (default: empty-stack)")
    parser.add_argument("--trace", action="store_true",
                        help="Print an instruction trace to stderr")
    parser.add_argument("--listing", action="store_true",
                        help="Print the decoded program listing and exit")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Debug logging on the console")
    parser.add_argument("--log-file", default=None,
                        help="Also write a DEBUG log to this file")
    parser.add_argument("--version", action="version",
                        version=f"chase {__version__}")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(console_level=logging.DEBUG if args.verbose else logging.WARNING,
                  log_file=args.log_file)

    try:
        config = get_config("pda" if args.pda else DEFAULT_PROFILE,
                            step_limit=args.step_limit,
                            acceptance=args.acceptance,
                            trace=args.trace or None)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    # Read program and tape
    try:
        if args.program:
            text = load_source(args.program)
        else:
            text = strip_source(sys.stdin.read())
        if args.input_file:
            with open(args.input_file, "r", encoding="utf-8") as f:
                tape = f.read()
            # one trailing line break ends the line, it is not a tape symbol
            if tape.endswith("\n"):
                tape = tape[:-1]
        else:
            tape = args.input or ""
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error reading input: {e}", file=sys.stderr)
        return 1

    log.debug("Config: %s", config)

    try:
        program = load_program(text, extended=config.extended_instructions)
    except MalformedProgram as e:
        print(f"Load error: {e}", file=sys.stderr)
        return 1

    if args.listing:
        print(program.listing())
        return 0

    engine = Engine(program, tape, acceptance=config.acceptance)
    engine.enable_trace(config.trace)
    result = engine.run(step_limit=config.step_limit)

    if config.trace:
        print(engine.get_trace(), file=sys.stderr)

    if result.output:
        sys.stdout.write(result.output_text)
        sys.stdout.flush()

    status = result.status.value
    if result.status is HaltStatus.TRAPPED:
        status += f" at pc {result.pc} (offset {result.offset}): {result.trap_reason}"
    elif result.status is HaltStatus.STEP_LIMIT_EXCEEDED:
        status += f" after {result.steps} steps at pc {result.pc}"
    print(status, file=sys.stderr)
    log.info("Run finished: %s in %d steps", result.status.value, result.steps)

    return EXIT_CODES[result.status]


if __name__ == "__main__":
    sys.exit(main())
