"""
IvritHost: high-level interface to the IvritCode machine.

Holds a current state between program runs, resolves register names for
seeding, and renders states and traces as text.
"""

from __future__ import annotations

from typing import Mapping, Sequence

from .machine import State, initial_state
from .opcodes import ACC, NUM_LETTERS, REGISTER_ORDER, register_index
from .program_runner import MAX_STEPS, RunResult, TraceStep, run
from .ring import balanced, reduce


class IvritHost:
    """High-level interface to the IvritCode machine.

    Args:
        seed: Initial register values (mapping or sequence), see
            machine.initial_state.
        max_steps: Step ceiling applied to every execute() call.
    """

    def __init__(self, seed: Mapping | Sequence[int] | None = None,
                 max_steps: int = MAX_STEPS):
        self.state: State = initial_state(seed)
        self.max_steps = max_steps
        self.history: list[RunResult] = []

    def reset(self):
        self.state = initial_state()
        self.history.clear()

    def seed(self, values: Mapping | Sequence[int]):
        """Overwrite the named registers, keep the rest.

        A sequence names slots 0, 1, ... in order.
        """
        if isinstance(values, Mapping):
            slots = map(register_index, values)
        else:
            values = list(values)
            slots = range(len(values))
        seeded = initial_state(values)   # validates names and values
        self.state = self.state.replace({idx: seeded[idx] for idx in slots})

    def register(self, name: str | int) -> int:
        return self.state[register_index(name)]

    def execute(self, source, trace: bool = False,
                max_steps: int | None = None) -> RunResult:
        """Assemble and run source from the current state.

        The held state advances to the run's final state, including a run
        cut off by the step ceiling. An AssemblyError leaves it unchanged.
        """
        limit = self.max_steps if max_steps is None else max_steps
        result = run(self.state, source, max_steps=limit, want_trace=trace)
        self.state = result.final
        self.history.append(result)
        return result

    # -------------------------------------------------------------------
    # Formatting
    # -------------------------------------------------------------------

    @staticmethod
    def format_state(state: State, previous: State | None = None,
                     columns: int = 6) -> str:
        return "\n".join(format_state_lines(state, previous, columns))

    @staticmethod
    def format_trace(trace: list[TraceStep]) -> str:
        return "\n".join(format_trace_line(step) for step in trace)


def format_register(idx: int, value: int) -> str:
    name = REGISTER_ORDER[idx]
    if value == reduce(value):
        return f"{name}={value:>2d}"
    return f"{name}={value}({reduce(value)})"


def changed_registers(before: State, after: State) -> list[int]:
    return [i for i, (a, b) in enumerate(zip(before, after)) if a != b]


def format_state_lines(state: State, previous: State | None = None,
                       columns: int = 6) -> list[str]:
    """Letters in rows of `columns`, then the accumulator.

    Changed registers (against previous) are marked with '*'.
    """
    changed = set(changed_registers(previous, state)) if previous is not None else set()
    cells = []
    for i in range(NUM_LETTERS):
        mark = "*" if i in changed else " "
        cells.append(f"{format_register(i, state[i])}{mark}")
    lines = ["  ".join(cells[i:i + columns]) for i in range(0, NUM_LETTERS, columns)]
    acc = state[ACC]
    mark = "*" if ACC in changed else ""
    lines.append(f"A={acc} (residue {reduce(acc)}, balanced {balanced(acc)}){mark}")
    return lines


def format_trace_line(step: TraceStep) -> str:
    changed = changed_registers(step.before, step.after)
    parts = [
        f"{REGISTER_ORDER[i]}:{step.before[i]}->{step.after[i]}" for i in changed
    ]
    body = " ".join(parts) if parts else "(no change)"
    return f"t={step.index:<4d} {str(step.instr):<6s} {body}"


def parse_seed(pairs: list[str] | None) -> dict[str, int]:
    """["א=3", "ACC=5"] -> {"א": 3, "ACC": 5}. Raises ValueError."""
    seed: dict[str, int] = {}
    for pair in pairs or []:
        name, sep, value = pair.partition("=")
        if not sep:
            raise ValueError(f"Seed must look like NAME=VALUE, got {pair!r}")
        try:
            seed[name.strip()] = int(value)
        except ValueError:
            raise ValueError(f"Seed value must be an integer, got {pair!r}") from None
        register_index(name.strip())   # unknown names fail here
    return seed
