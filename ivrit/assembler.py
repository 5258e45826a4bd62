"""
Assembler for IvritCode programs.

Source text is a sequence of words and decimal operands:

    ; comments run from ; or # to end of line
    א ב ג            one instruction per letter
    אבג              same thing, letters may be run together
    סבב              the composite round (whole word only)
    BET GIMEL SOVAV  Latin letter names, any case
    בְ  BET?          sheva / ? suffix: query mode
    בִ 5  BET! 5      hiriq / ! suffix: immediate mode, operand follows

Every token is resolved here, once. An unknown token raises AssemblyError
before anything runs.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

from lark import Lark, Transformer, v_args
from lark.exceptions import UnexpectedInput

from .machine import Instruction
from .opcodes import (
    LETTER_TO_OPCODE, MODE_MARKS, MODE_SUFFIXES, NAME_TO_OPCODE, SOVAV_SYMBOL,
    Mode, Opcode,
)

# ============================================================
# Grammar
# ============================================================

GRAMMAR = r"""
    start: item*

    ?item: word
         | number

    word: WORD
    number: NUMBER

    NUMBER: /[+-]?\d+(?![^\s;#])/
    WORD: /[^\s;#+\-\d][^\s;#]*/

    COMMENT: /[;#][^\n]*/
    %ignore COMMENT
    %import common.WS
    %ignore WS
"""

parser = Lark(GRAMMAR, parser="lalr")

_NUMBER_RE = re.compile(r"[+-]?\d+")
_TOKEN_RE = re.compile(r"[^\s;#]+")


class AssemblyError(ValueError):
    """Unknown opcode or malformed program token."""

    def __init__(self, message: str, token: str, position: int,
                 line: int | None = None, column: int | None = None):
        self.message = message
        self.token = token
        self.position = position
        self.line = line
        self.column = column
        where = f"instruction {position}"
        if line is not None:
            where += f" (line {line}, column {column})"
        super().__init__(f"{message}: {token!r} at {where}")


# ============================================================
# Tokens
# ============================================================

@dataclass(frozen=True)
class SourceToken:
    kind: str               # "word" | "number" | "malformed"
    text: str
    line: int | None = None
    column: int | None = None

    @property
    def value(self) -> int:
        return int(self.text)


@v_args(inline=True)
class TokenBuilder(Transformer):
    def word(self, tok):
        return SourceToken("word", str(tok), tok.line, tok.column)

    def number(self, tok):
        return SourceToken("number", str(tok), tok.line, tok.column)

    def start(self, *items):
        return list(items)


token_builder = TokenBuilder()


def tokenize(text: str) -> list[SourceToken]:
    """Split program text into word/number tokens. Raises AssemblyError."""
    try:
        tree = parser.parse(text)
    except UnexpectedInput as e:
        pos = getattr(e, "pos_in_stream", None) or 0
        m = _TOKEN_RE.match(text, pos)
        bad = m.group(0) if m else text[pos:pos + 1]
        # everything before pos lexed cleanly
        position = len(tokenize(text[:pos])) if pos else 0
        raise AssemblyError("Malformed token", bad, position,
                            getattr(e, "line", None),
                            getattr(e, "column", None)) from None
    return token_builder.transform(tree)


# ============================================================
# Word decoding
# ============================================================

def decode_word(text: str) -> list[tuple[Opcode, Mode]] | None:
    """
    Resolve one word to its (opcode, mode) units, or None if unknown.

    A Hebrew word may hold several letters; a Latin word is one name.
    """
    suffix_mode = Mode.NONE
    body = text
    if len(body) > 1 and body[-1] in MODE_SUFFIXES:
        suffix_mode = MODE_SUFFIXES[body[-1]]
        body = body[:-1]

    op = NAME_TO_OPCODE.get(body.upper()) if body.isascii() else None
    if op is not None:
        return [(op, suffix_mode)]

    # Hebrew: letters, each optionally followed by one niqqud mark
    letters: list[str] = []
    modes: list[Mode] = []
    for ch in body:
        if ch in LETTER_TO_OPCODE:
            letters.append(ch)
            modes.append(Mode.NONE)
        elif ch in MODE_MARKS and letters and modes[-1] is Mode.NONE:
            modes[-1] = MODE_MARKS[ch]
        else:
            return None
    if not letters:
        return None

    if suffix_mode is not Mode.NONE:
        if modes[-1] is not Mode.NONE:
            return None
        modes[-1] = suffix_mode

    if "".join(letters) == SOVAV_SYMBOL and all(m is Mode.NONE for m in modes[:-1]):
        return [(Opcode.SOVAV, modes[-1])]

    return [(LETTER_TO_OPCODE[ch], mode) for ch, mode in zip(letters, modes)]


# ============================================================
# Assembly
# ============================================================

def _link(tokens: Iterable[SourceToken | Instruction]) -> list[Instruction]:
    program: list[Instruction] = []
    pending: tuple[Opcode, SourceToken] | None = None

    def fail(message: str, tok: SourceToken):
        raise AssemblyError(message, tok.text, len(program), tok.line, tok.column)

    for tok in tokens:
        if isinstance(tok, Instruction):
            if pending is not None:
                fail("Immediate operand missing", pending[1])
            program.append(tok)
            continue

        if tok.kind == "malformed":
            fail("Malformed token", tok)

        if tok.kind == "number":
            if pending is None:
                fail("Unexpected operand", tok)
            program.append(Instruction(pending[0], Mode.IMMEDIATE, tok.value))
            pending = None
            continue

        if pending is not None:
            fail("Immediate operand missing", pending[1])

        units = decode_word(tok.text)
        if units is None:
            fail("Unknown opcode", tok)
        for i, (op, mode) in enumerate(units):
            if mode is Mode.IMMEDIATE:
                if i != len(units) - 1:
                    fail("Immediate operand missing", tok)
                pending = (op, tok)
            else:
                program.append(Instruction(op, mode))

    if pending is not None:
        fail("Immediate operand missing", pending[1])
    return program


def _sequence_tokens(items: Iterable) -> Iterable[SourceToken | Instruction]:
    for item in items:
        if isinstance(item, Instruction):
            yield item
        elif isinstance(item, Opcode):
            yield Instruction(item)
        elif isinstance(item, int) and not isinstance(item, bool):
            yield SourceToken("number", str(item))
        elif isinstance(item, str):
            text = item.strip()
            if _NUMBER_RE.fullmatch(text):
                yield SourceToken("number", text)
            elif text and _TOKEN_RE.fullmatch(text):
                yield SourceToken("word", text)
            else:
                tokens = tokenize(item)
                if not tokens:
                    yield SourceToken("malformed", item)
                yield from tokens
        else:
            yield SourceToken("word", repr(item))


def assemble(source: str | Iterable) -> list[Instruction]:
    """
    Assemble program text, or a sequence of symbols/Opcodes/Instructions,
    into a list of Instructions. All-or-nothing.
    """
    if isinstance(source, str):
        return _link(tokenize(source))
    return _link(_sequence_tokens(source))


def disassemble(program: Iterable[Instruction | Opcode]) -> str:
    parts = []
    for instr in program:
        if isinstance(instr, Opcode):
            instr = Instruction(instr)
        parts.append(str(instr))
    return " ".join(parts)


if __name__ == "__main__":
    import sys
    text = " ".join(sys.argv[1:]) or "א ב ג סבב"
    for i, instr in enumerate(assemble(text)):
        print(f"{i:3d}  {instr.op.name:<7s} {instr.mode.value:<6s} {instr.immediate}")
