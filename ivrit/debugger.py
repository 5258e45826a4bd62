"""
Textual TUI debugger for the IvritCode machine.

Instruction-stepping debugger that loads a program, runs it on the machine,
and displays all 23 registers at every step.

Usage:
    python -m ivrit.debugger examples/sovav_rounds.iv
    python -m ivrit.debugger -e "ז ז ב סבב" --seed א=3 --seed ב=4
    python -m ivrit.debugger --run examples/sovav_rounds.iv
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import ScrollableContainer
from textual.widgets import Static, RichLog, Footer
from textual import work

from ivrit.assembler import AssemblyError
from ivrit.host import changed_registers, format_trace_line, parse_seed
from ivrit.machine import initial_state
from ivrit.opcodes import ACC, NUM_LETTERS, REGISTER_ORDER
from ivrit.program_runner import MAX_STEPS, ProgramRunner
from ivrit.ring import balanced, reduce


def _esc(text: str) -> str:
    """Escape Rich markup characters in text."""
    return text.replace("[", "\\[")


# ---------------------------------------------------------------------------
# CSS
# ---------------------------------------------------------------------------

DEBUGGER_CSS = """
Screen {
    layout: grid;
    grid-size: 2 3;
    grid-columns: 1fr 2fr;
    grid-rows: 2fr 1fr auto;
}

.panel {
    border: solid $accent;
    border-title-align: left;
    overflow-y: auto;
    height: 100%;
}

#source-panel   { row-span: 2; }
#register-panel { column-span: 1; }
#trace-panel    { column-span: 1; }

Footer {
    column-span: 2;
}
"""


# ---------------------------------------------------------------------------
# Panel widgets
# ---------------------------------------------------------------------------

class SourcePanel(ScrollableContainer):
    """Program listing with the next instruction highlighted."""
    BORDER_TITLE = "Program"

    def compose(self) -> ComposeResult:
        yield Static("", id="source-content")


class RegisterPanel(ScrollableContainer):
    """All registers: stored value, residue, balanced."""
    BORDER_TITLE = "Registers"

    def compose(self) -> ComposeResult:
        yield Static("", id="register-content")


class TracePanel(ScrollableContainer):
    """One line per applied instruction."""
    BORDER_TITLE = "Trace"

    def compose(self) -> ComposeResult:
        yield RichLog(id="trace-log", markup=True, wrap=True)


# ---------------------------------------------------------------------------
# Main debugger app
# ---------------------------------------------------------------------------

class IvritDebugger(App):
    """Textual TUI debugger for the IvritCode machine."""

    CSS = DEBUGGER_CSS
    TITLE = "IvritCode Debugger"

    BINDINGS = [
        Binding("s", "step_1", "Step"),
        Binding("space", "step_1", "Step", show=False),
        Binding("n", "step_10", "x10"),
        Binding("f", "step_100", "x100"),
        Binding("r", "run_to_end", "Run"),
        Binding("b", "toggle_breakpoint", "Break"),
        Binding("x", "restart", "Restart"),
        Binding("q", "quit", "Quit"),
    ]

    def __init__(self, runner: ProgramRunner, auto_run: bool = False):
        super().__init__()
        self.runner = runner
        self.auto_run = auto_run
        self.breakpoints: set[int] = set()
        self._trace_line_count = 0
        self._limit_reported = False
        self.error_lines: list[str] = []

    def compose(self) -> ComposeResult:
        yield SourcePanel(id="source-panel", classes="panel")
        yield RegisterPanel(id="register-panel", classes="panel")
        yield TracePanel(id="trace-panel", classes="panel")
        yield Footer()

    def on_mount(self) -> None:
        self.refresh_panels()
        if self.auto_run:
            self.action_run_to_end()

    # -------------------------------------------------------------------
    # Panel refresh
    # -------------------------------------------------------------------

    def refresh_panels(self) -> None:
        self._refresh_source()
        self._refresh_registers()
        self._refresh_trace()

    def _refresh_source(self) -> None:
        lines = []
        for i, instr in enumerate(self.runner.program):
            prefix = "●" if i in self.breakpoints else " "
            marker = "▸" if i == self.runner.pc else " "
            line = f"{prefix}{marker} {i:3d}│ {instr}  {instr.op.name.lower()}"
            if instr.mode.value != "none":
                line += f" ({instr.mode.value})"
            if i == self.runner.pc:
                line = f"[bold reverse]{_esc(line)}[/bold reverse]"
            else:
                line = _esc(line)
            lines.append(line)

        content = self.query_one("#source-content", Static)
        content.update("\n".join(lines) if lines else "(no program loaded)")

    def _refresh_registers(self) -> None:
        r = self.runner
        state = r.state
        changed: set[int] = set()
        if r.trace:
            last = r.trace[-1]
            changed = set(changed_registers(last.before, last.after))

        lines = [
            f"[bold]Step:[/bold] {r.steps}/{len(r.program)}  "
            f"[bold]PC:[/bold] {r.pc}  [bold]Phase:[/bold] {r.phase}  "
            f"[bold]Limit:[/bold] {r.max_steps}",
            "",
        ]
        for i in range(NUM_LETTERS + 1):
            val = state[i]
            name = REGISTER_ORDER[i]
            row = f"{name:>2s} {val:>8d}  r={reduce(val):>2d}  b={balanced(val):>3d}"
            if i == ACC:
                row = f"[bold]{row}[/bold]"
            if i in changed:
                row = f"[green]{row}[/green]"
            lines.append(row)
        content = self.query_one("#register-content", Static)
        content.update("\n".join(lines))

    def _refresh_trace(self) -> None:
        log = self.query_one("#trace-log", RichLog)
        if self._trace_line_count > len(self.runner.trace):
            log.clear()
            self._trace_line_count = 0
            self._limit_reported = False
        while self._trace_line_count < len(self.runner.trace):
            step = self.runner.trace[self._trace_line_count]
            log.write(_esc(format_trace_line(step)))
            self._trace_line_count += 1
        if self.runner.phase == "limit" and not self._limit_reported:
            self._limit_reported = True
            log.write(f"[red]Step limit of {self.runner.max_steps} reached[/red]")

    # -------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------

    def _report_error(self, err: Exception) -> None:
        """Show an error in the trace panel and stop stepping."""
        self.error_lines.append(str(err))
        self.runner.phase = "done"
        self.refresh_panels()
        log = self.query_one("#trace-log", RichLog)
        log.write(f"[red]\\[ERROR] {_esc(str(err))}[/red]")

    def _do_steps(self, count: int) -> None:
        try:
            for _ in range(count):
                if not self.runner.tick():
                    break
                if self.runner.pc in self.breakpoints:
                    break
        except Exception as e:
            self._report_error(e)
            return
        self.refresh_panels()

    def action_step_1(self) -> None:
        self._do_steps(1)

    def action_step_10(self) -> None:
        self._do_steps(10)

    def action_step_100(self) -> None:
        self._do_steps(100)

    def action_restart(self) -> None:
        self.runner.reset()
        self.refresh_panels()

    def action_toggle_breakpoint(self) -> None:
        idx = self.runner.pc
        if idx in self.breakpoints:
            self.breakpoints.discard(idx)
        else:
            self.breakpoints.add(idx)
        self._refresh_source()

    @work(thread=True)
    def action_run_to_end(self) -> None:
        """Run to completion in a background thread."""
        try:
            step = 0
            while self.runner.tick():
                step += 1
                if self.runner.pc in self.breakpoints:
                    break
                if step % 500 == 0:
                    self.call_from_thread(self.refresh_panels)
        except Exception as e:
            self.call_from_thread(self._report_error, e)
            return
        self.call_from_thread(self.refresh_panels)


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

def main():
    parser = argparse.ArgumentParser(
        description="IvritCode machine TUI debugger",
        prog="ivrit-debugger",
    )
    parser.add_argument("file", nargs="?", help="Path to a program file")
    parser.add_argument("-e", "--expr", help="Program text to debug")
    parser.add_argument("--seed", action="append", metavar="NAME=VALUE",
                        help="Initial register value (repeatable)")
    parser.add_argument("--max-steps", type=int, default=MAX_STEPS,
                        help=f"Step ceiling (default {MAX_STEPS})")
    parser.add_argument("--run", action="store_true",
                        help="Run to completion immediately (auto-run mode)")
    args = parser.parse_args()

    if not args.file and not args.expr:
        parser.error("Provide a program file or -e program")

    try:
        runner = ProgramRunner(initial_state(parse_seed(args.seed)),
                               max_steps=args.max_steps)
        if args.file:
            path = Path(args.file)
            if not path.exists():
                print(f"Error: File not found: {path}", file=sys.stderr)
                sys.exit(1)
            runner.load_file(path)
        else:
            runner.load_source(args.expr)
    except (AssemblyError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    app = IvritDebugger(runner, auto_run=args.run)
    app.run()


if __name__ == "__main__":
    main()
