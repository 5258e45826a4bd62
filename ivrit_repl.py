#!/usr/bin/env python3
"""
IvritCode REPL

An interactive front end for the 23-register IvritCode machine. Each line
is assembled and run from the state left by the previous line.

Usage:
  ivrit-repl                          # interactive REPL
  ivrit-repl -e 'ז ז ב סבב'            # run program text once
  ivrit-repl program.iv --trace       # run a file, print every step
  ivrit-repl -e 'BET' --seed א=3 --seed ב=4

Program syntax:
  א ב ג ... ת                         base operators (letters may run together)
  סבב                                 composite round on א ב ג ד
  BET GIMEL SOVAV                     Latin letter names, any case
  בְ  or  BET?                         query: only A changes, gets the summed delta
  בִ 5  or  BET! 5                     immediate operand (ב ג ת סבב)
  ; comment   # comment

Commands:
  :state                              print all registers
  :seed NAME=VALUE ...                set registers (א=3 BET=4 A=7 12=1)
  :reset                              zero every register
  :trace on|off                       print each step of later runs
  :ops                                list the operators
  :quit                               leave
"""

from __future__ import annotations

import argparse
import sys

from colorama import Fore, Style, init as colorama_init

from ivrit.assembler import AssemblyError
from ivrit.host import IvritHost, changed_registers, format_register, parse_seed
from ivrit.machine import State
from ivrit.opcodes import ACC, NUM_LETTERS, Opcode
from ivrit.program_runner import MAX_STEPS, RunResult

OPERATOR_SUMMARY = {
    Opcode.ALEF: "identity",
    Opcode.BET: "second half += first half",
    Opcode.GIMEL: "second half *= first half",
    Opcode.DALET: "half differences, swapped",
    Opcode.HEI: "sign map, A = sum of signs",
    Opcode.VAV: "swap halves",
    Opcode.ZAYIN: "all letters +1",
    Opcode.CHET: "all letters -1",
    Opcode.TET: "square all, A = sum of squares",
    Opcode.YOD: "broadcast A to all letters",
    Opcode.KAF: "sliding window sum of 4",
    Opcode.LAMED: "A = balanced sum, subtract mean",
    Opcode.MEM: "moving average of 3",
    Opcode.NUN: "negate everything",
    Opcode.SAMEKH: "rotate letters by A",
    Opcode.AYIN: "A = max half correlation",
    Opcode.PE: "A = א, propagate to ב and ת",
    Opcode.TSADI: "compare halves, expose max",
    Opcode.QOF: "mirror and tilt",
    Opcode.RESH: "reseed letters from A, stride ב",
    Opcode.SHIN: "quartet square mix",
    Opcode.TAV: "quartet rotate",
    Opcode.SOVAV: "composite round on א ב ג ד",
}


# ============================================================
# Rendering
# ============================================================

def render_state(state: State, previous: State | None = None, columns: int = 6) -> str:
    changed = set(changed_registers(previous, state)) if previous is not None else set()

    def cell(idx: int) -> str:
        text = format_register(idx, state[idx])
        if idx in changed:
            return Fore.YELLOW + Style.BRIGHT + text + Style.RESET_ALL
        return text

    rows = []
    for start in range(0, NUM_LETTERS, columns):
        rows.append("  ".join(cell(i) for i in range(start, min(start + columns, NUM_LETTERS))))
    rows.append(cell(ACC))
    return "\n".join(rows)


def render_result(result: RunResult, previous: State, show_trace: bool) -> str:
    lines = []
    if show_trace and result.trace:
        for step in result.trace:
            lines.append(f"{Fore.CYAN}t={step.index:<4d}{Style.RESET_ALL} {step.instr}")
            lines.append(render_state(step.after, step.before))
    lines.append(render_state(result.final, previous))
    if result.exceeded:
        lines.append(f"{Fore.RED}step limit {result.max_steps} reached after "
                     f"{result.steps} steps{Style.RESET_ALL}")
    return "\n".join(lines)


def render_ops() -> str:
    return "\n".join(
        f"  {op.symbol:>3s}  {op.name:<7s} {OPERATOR_SUMMARY[op]}" for op in Opcode
    )


# ============================================================
# REPL
# ============================================================

class Session:
    """REPL state: the host plus display settings."""

    def __init__(self, host: IvritHost, trace: bool = False):
        self.host = host
        self.trace = trace
        self.running = True

    def handle(self, line: str) -> str:
        """Process one input line, return the text to print."""
        line = line.strip()
        if not line or line.startswith(";") or line.startswith("#"):
            return ""
        if line.startswith(":"):
            return self.command(line[1:].split())

        before = self.host.state
        result = self.host.execute(line, trace=self.trace)
        return render_result(result, before, self.trace)

    def command(self, words: list[str]) -> str:
        if not words:
            return "Commands: :state :seed :reset :trace :ops :quit"
        name, args = words[0].lower(), words[1:]
        if name == "state":
            return render_state(self.host.state)
        if name == "seed":
            before = self.host.state
            self.host.seed(parse_seed(args))
            return render_state(self.host.state, before)
        if name == "reset":
            self.host.reset()
            return render_state(self.host.state)
        if name == "trace":
            if args and args[0].lower() in ("on", "off"):
                self.trace = args[0].lower() == "on"
            return f"trace {'on' if self.trace else 'off'}"
        if name == "ops":
            return render_ops()
        if name in ("quit", "exit", "q"):
            self.running = False
            return "Bye."
        raise ValueError(f"Unknown command: :{name}")


def repl(session: Session):
    """Interactive REPL."""
    print("IvritCode REPL")
    print("  22 letter registers א..ת + accumulator A, arithmetic mod 22")
    print("  Type :ops for the operators, :quit or Ctrl-D to exit\n")

    while session.running:
        try:
            line = input("ivrit> ")
        except (EOFError, KeyboardInterrupt):
            print("\nBye.")
            break

        try:
            out = session.handle(line)
        except (AssemblyError, ValueError) as e:
            print(f"{Fore.RED}Error: {e}{Style.RESET_ALL}")
            continue
        if out:
            print(out)


# ============================================================
# Main
# ============================================================

def main():
    parser = argparse.ArgumentParser(
        description="IvritCode register machine REPL",
        prog="ivrit-repl",
    )
    parser.add_argument("file", nargs="?", help="Program file to run")
    parser.add_argument("-e", "--expr", help="Program text to run")
    parser.add_argument("--seed", action="append", metavar="NAME=VALUE",
                        help="Initial register value (repeatable)")
    parser.add_argument("--trace", action="store_true", help="Print every step")
    parser.add_argument("--max-steps", type=int, default=MAX_STEPS,
                        help=f"Step ceiling (default {MAX_STEPS})")
    args = parser.parse_args()

    colorama_init()

    try:
        host = IvritHost(parse_seed(args.seed), max_steps=args.max_steps)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    session = Session(host, trace=args.trace)

    if not args.file and args.expr is None:
        repl(session)
        return

    try:
        if args.file:
            with open(args.file, encoding="utf-8") as f:
                source = f.read()
        else:
            source = args.expr
        before = host.state
        result = host.execute(source, trace=args.trace)
    except (AssemblyError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(render_result(result, before, args.trace))
    if result.exceeded:
        print(f"Stopped at step limit {result.max_steps}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
