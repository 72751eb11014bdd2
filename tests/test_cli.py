"""
Command line tests: chase.main(argv) exit codes and stdout/stderr.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import io
import logging

import pytest
import chase

PROGRAMS = os.path.join(os.path.dirname(os.path.abspath(__file__)), "programs")
ANBNCN = os.path.join(PROGRAMS, "anbncn.chase")


@pytest.fixture(autouse=True)
def restore_logging():
    # main() installs handlers on the package logger; put it back afterwards
    yield
    logger = logging.getLogger("chasement")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


def _write(tmp_path, text, name="prog.chase"):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return str(path)


class TestExitCodes:
    def test_accept(self, capsys):
        assert chase.main([ANBNCN, "--input", "aabbcc"]) == 0
        assert "ACCEPT" in capsys.readouterr().err

    def test_reject(self, capsys):
        assert chase.main([ANBNCN, "-i", "aabbc"]) == 3
        assert "REJECT" in capsys.readouterr().err

    def test_trapped(self, tmp_path, capsys):
        path = _write(tmp_path, "'q a a\n")
        assert chase.main([path]) == 4
        err = capsys.readouterr().err
        assert "TRAPPED at pc 2 (offset 3)" in err
        assert "StackUnderflow(main)" in err

    def test_step_limit(self, tmp_path, capsys):
        path = _write(tmp_path, "~[ ]  # spin\n")
        assert chase.main([path, "--step-limit", "100"]) == 5
        assert "STEP_LIMIT_EXCEEDED after 100 steps" in capsys.readouterr().err

    def test_missing_program_file(self, tmp_path, capsys):
        assert chase.main([str(tmp_path / "nope.chase")]) == 1
        assert "Error reading input" in capsys.readouterr().err

    def test_malformed_program(self, tmp_path, capsys):
        path = _write(tmp_path, "[ a\n")
        assert chase.main([path]) == 1
        assert "Load error" in capsys.readouterr().err

    def test_program_file_not_utf8(self, tmp_path, capsys):
        path = tmp_path / "bad.chase"
        path.write_bytes(b"\xff\xfe")
        assert chase.main([str(path)]) == 1
        assert "Error reading input" in capsys.readouterr().err

    def test_input_file_not_utf8(self, tmp_path, capsys):
        tape = tmp_path / "tape.txt"
        tape.write_bytes(b"\xff\xfe")
        assert chase.main([ANBNCN, "--input-file", str(tape)]) == 1
        assert "Error reading input" in capsys.readouterr().err

    def test_negative_step_limit(self, capsys):
        assert chase.main([ANBNCN, "--step-limit", "-3"]) == 1
        assert "Error" in capsys.readouterr().err

    def test_bad_acceptance_is_usage_error(self):
        with pytest.raises(SystemExit) as exc:
            chase.main([ANBNCN, "--acceptance", "sometimes"])
        assert exc.value.code == 2


class TestOutput:
    def test_output_on_stdout(self, tmp_path, capsys):
        path = _write(tmp_path, "$~[ , $~] e~[ p e~]\n")
        assert chase.main([path, "--input", "abc"]) == 0
        captured = capsys.readouterr()
        assert captured.out == "cba"
        assert "ACCEPT" in captured.err

    def test_input_file(self, tmp_path, capsys):
        path = _write(tmp_path, "$~[ , $~] e~[ p e~]\n")
        tape = _write(tmp_path, "xyz", name="tape.txt")
        assert chase.main([path, "--input-file", tape]) == 0
        assert capsys.readouterr().out == "zyx"

    def test_input_file_trailing_newline_dropped(self, tmp_path, capsys):
        tape = _write(tmp_path, "aabbcc\n", name="tape.txt")
        assert chase.main([ANBNCN, "--input-file", tape]) == 0

    def test_input_file_keeps_inner_newlines(self, tmp_path, capsys):
        path = _write(tmp_path, "$~[ , $~] e~[ p e~]\n")
        tape = _write(tmp_path, "ab\ncd\n", name="tape.txt")
        assert chase.main([path, "--input-file", tape]) == 0
        assert capsys.readouterr().out == "dc\nba"

    def test_input_and_input_file_exclusive(self):
        with pytest.raises(SystemExit):
            chase.main([ANBNCN, "--input", "a", "--input-file", "t.txt"])

    def test_program_from_stdin(self, monkeypatch, capsys):
        monkeypatch.setattr(sys, "stdin", io.StringIO("'h p 'i p  # greet\n"))
        assert chase.main([]) == 0
        assert capsys.readouterr().out == "hi"

    def test_acceptance_option(self, tmp_path, capsys):
        path = _write(tmp_path, "'x\n")
        assert chase.main([path]) == 3
        assert chase.main([path, "--acceptance", "input-consumed"]) == 0


class TestModes:
    def test_extended_by_default(self, tmp_path, capsys):
        path = _write(tmp_path, "6 7 * p\n")
        assert chase.main([path]) == 0
        assert capsys.readouterr().out == "42"

    def test_pda_rejects_extended(self, tmp_path, capsys):
        path = _write(tmp_path, "6 7 * p\n")
        assert chase.main([path, "--pda"]) == 1
        err = capsys.readouterr().err
        assert "Load error" in err
        assert "'*'" in err

    def test_pda_runs_base_program(self, capsys):
        assert chase.main([ANBNCN, "--pda", "-i", "abc"]) == 0

    def test_listing(self, tmp_path, capsys):
        path = _write(tmp_path, "~[ 'x ]\n")
        assert chase.main([path, "--listing"]) == 0
        out = capsys.readouterr().out
        assert out.splitlines()[0].split() == ["PC", "OFS", "INSN", "OP", "TARGET"]
        assert "-> 3" in out

    def test_trace(self, tmp_path, capsys):
        path = _write(tmp_path, "'a o\n")
        assert chase.main([path, "--trace"]) == 0
        err = capsys.readouterr().err
        assert "main=[a]" in err

    def test_log_file(self, tmp_path, capsys):
        log_path = tmp_path / "logs" / "chase.log"
        assert chase.main([ANBNCN, "-i", "abc", "--log-file", str(log_path)]) == 0
        text = log_path.read_text(encoding="utf-8")
        assert "Run finished: ACCEPT" in text
        assert " | " in text

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc:
            chase.main(["--version"])
        assert exc.value.code == 0
        assert "chase" in capsys.readouterr().out
