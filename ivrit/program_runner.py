"""
program_runner: sequential execution of IvritCode programs.

`run` folds a whole program over a state in one call. `ProgramRunner`
does the same one instruction per tick, for the debugger.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from ivrit.assembler import assemble
from ivrit.machine import Instruction, State, apply, zero_state

MAX_STEPS = 100_000

STATUS_COMPLETED = "completed"
STATUS_STEP_LIMIT = "step_limit"


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TraceStep:
    index: int
    instr: Instruction
    before: State
    after: State


@dataclass
class RunResult:
    final: State
    trace: list[TraceStep] | None
    steps: int
    status: str
    max_steps: int

    @property
    def exceeded(self) -> bool:
        return self.status == STATUS_STEP_LIMIT

    def raise_for_status(self) -> RunResult:
        if self.exceeded:
            raise StepLimitExceeded(self)
        return self


class StepLimitExceeded(RuntimeError):
    """The step ceiling stopped a program before its end."""

    def __init__(self, result: RunResult):
        self.result = result
        super().__init__(
            f"Step limit of {result.max_steps} reached before program end")


def _check_max_steps(max_steps: int) -> int:
    if isinstance(max_steps, bool) or not isinstance(max_steps, int) or max_steps < 0:
        raise ValueError(f"max_steps must be a non-negative integer, got {max_steps!r}")
    return max_steps


def as_program(program) -> list[Instruction]:
    """Instruction list as-is; anything else goes through the assembler."""
    if not isinstance(program, str):
        program = list(program)
        if all(isinstance(p, Instruction) for p in program):
            return program
    return assemble(program)


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------

def run(initial: State, program: Iterable | str, max_steps: int = MAX_STEPS,
        want_trace: bool = False) -> RunResult:
    """
    Apply program to initial, stopping after max_steps instructions.

    Assembly happens first; an AssemblyError leaves nothing half-run.
    """
    max_steps = _check_max_steps(max_steps)
    instructions = as_program(program)

    trace: list[TraceStep] | None = [] if want_trace else None
    state = initial
    steps = 0
    for idx, instr in enumerate(instructions):
        if steps >= max_steps:
            return RunResult(state, trace, steps, STATUS_STEP_LIMIT, max_steps)
        after = apply(state, instr)
        if trace is not None:
            trace.append(TraceStep(idx, instr, state, after))
        state = after
        steps += 1

    return RunResult(state, trace, steps, STATUS_COMPLETED, max_steps)


# ---------------------------------------------------------------------------
# ProgramRunner
# ---------------------------------------------------------------------------

class ProgramRunner:
    """Steps a loaded program one instruction per tick."""

    def __init__(self, initial: State | None = None, max_steps: int = MAX_STEPS):
        self.initial = initial if initial is not None else zero_state()
        self.max_steps = _check_max_steps(max_steps)
        self.program: list[Instruction] = []
        self.state: State = self.initial
        self.trace: list[TraceStep] = []
        self.pc: int = 0
        self.phase: str = "idle"  # "idle" | "running" | "done" | "limit"

    # -------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------

    def load_file(self, path: str | Path):
        """Read and assemble a program file."""
        self.load_source(Path(path).read_text(encoding="utf-8"))

    def load_source(self, text: str):
        """Assemble program text and prepare to run it."""
        self.program = assemble(text)
        self.reset()

    def load_program(self, program):
        self.program = as_program(program)
        self.reset()

    def reset(self):
        self.state = self.initial
        self.trace = []
        self.pc = 0
        self.phase = "idle"

    # -------------------------------------------------------------------
    # Execution control
    # -------------------------------------------------------------------

    @property
    def steps(self) -> int:
        return len(self.trace)

    @property
    def current(self) -> Instruction | None:
        if self.pc < len(self.program):
            return self.program[self.pc]
        return None

    def tick(self) -> bool:
        """Apply one instruction. Returns False when nothing is left to do."""
        if self.phase in ("done", "limit"):
            return False

        if self.pc >= len(self.program):
            self.phase = "done"
            return False

        if self.steps >= self.max_steps:
            self.phase = "limit"
            return False

        self.phase = "running"
        instr = self.program[self.pc]
        after = apply(self.state, instr)
        self.trace.append(TraceStep(self.pc, instr, self.state, after))
        self.state = after
        self.pc += 1

        if self.pc >= len(self.program):
            self.phase = "done"
            return False
        return True

    def run_to_end(self) -> RunResult:
        while self.tick():
            pass
        return self.result()

    def result(self) -> RunResult:
        status = STATUS_STEP_LIMIT if self.phase == "limit" else STATUS_COMPLETED
        return RunResult(self.state, list(self.trace), self.steps, status, self.max_steps)
