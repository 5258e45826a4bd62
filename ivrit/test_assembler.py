"""
Tests for the IvritCode assembler: Hebrew and Latin spellings, niqqud and
suffix modes, comments, and error reporting.
"""

from __future__ import annotations

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from ivrit.assembler import AssemblyError, assemble, decode_word, disassemble, tokenize
from ivrit.machine import Instruction
from ivrit.opcodes import HIRIQ, SHEVA, Mode, Opcode


def _ops(program):
    return [instr.op for instr in program]


# ---------------------------------------------------------------------------
# Spellings
# ---------------------------------------------------------------------------

def test_hebrew_letters_spaced_or_run_together():
    expected = [Instruction(Opcode.ALEF), Instruction(Opcode.BET), Instruction(Opcode.GIMEL)]
    assert assemble("א ב ג") == expected
    assert assemble("אבג") == expected
    assert assemble("א\nב\tג") == expected


def test_all_letters_in_order():
    program = assemble("אבגדהוזחטיכלמנסעפצקרשת")
    assert _ops(program) == list(Opcode)[:22]


def test_final_forms():
    assert _ops(assemble("ך ם ן ף ץ")) == [
        Opcode.KAF, Opcode.MEM, Opcode.NUN, Opcode.PE, Opcode.TSADI,
    ]


def test_sovav_whole_word_only():
    assert assemble("סבב") == [Instruction(Opcode.SOVAV)]
    assert _ops(assemble("ס ב ב")) == [Opcode.SAMEKH, Opcode.BET, Opcode.BET]
    assert _ops(assemble("סבבא")) == [Opcode.SAMEKH, Opcode.BET, Opcode.BET, Opcode.ALEF]


def test_latin_names_any_case():
    assert _ops(assemble("bet Gimel SOVEV aleph he")) == [
        Opcode.BET, Opcode.GIMEL, Opcode.SOVAV, Opcode.ALEF, Opcode.HEI,
    ]
    assert _ops(assemble("TAV ת tav")) == [Opcode.TAV] * 3


def test_comments_are_ignored():
    src = """
    א        ; identity
    # a whole-line comment ג
    ד;trailing
    """
    assert _ops(assemble(src)) == [Opcode.ALEF, Opcode.DALET]
    assert assemble("") == []
    assert assemble("; nothing here") == []


# ---------------------------------------------------------------------------
# Modes
# ---------------------------------------------------------------------------

def test_query_mode():
    assert assemble("ב" + SHEVA) == [Instruction(Opcode.BET, Mode.QUERY)]
    assert assemble("BET?") == [Instruction(Opcode.BET, Mode.QUERY)]
    assert assemble("סבב" + SHEVA) == [Instruction(Opcode.SOVAV, Mode.QUERY)]
    assert assemble("א" + SHEVA + "ב") == [
        Instruction(Opcode.ALEF, Mode.QUERY), Instruction(Opcode.BET),
    ]


def test_immediate_mode():
    assert assemble("ב" + HIRIQ + " 5") == [Instruction(Opcode.BET, Mode.IMMEDIATE, 5)]
    assert assemble("BET! -3") == [Instruction(Opcode.BET, Mode.IMMEDIATE, -3)]
    assert assemble("סבב" + HIRIQ + " 2 א") == [
        Instruction(Opcode.SOVAV, Mode.IMMEDIATE, 2), Instruction(Opcode.ALEF),
    ]
    assert assemble("TAV! +7") == [Instruction(Opcode.TAV, Mode.IMMEDIATE, 7)]


def test_decode_word():
    assert decode_word("GIMEL") == [(Opcode.GIMEL, Mode.NONE)]
    assert decode_word("ג" + SHEVA) == [(Opcode.GIMEL, Mode.QUERY)]
    assert decode_word("FOO") is None
    assert decode_word("ב" + SHEVA + SHEVA) is None
    assert decode_word("ב" + SHEVA + "?") is None


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

def test_unknown_token_is_named():
    with pytest.raises(AssemblyError) as info:
        assemble("א XYZ ב")
    err = info.value
    assert err.token == "XYZ"
    assert err.position == 1
    assert (err.line, err.column) == (1, 3)
    assert "XYZ" in str(err)
    assert isinstance(err, ValueError)


def test_unknown_token_on_later_line():
    with pytest.raises(AssemblyError) as info:
        assemble("א\n  QQ")
    assert info.value.token == "QQ"
    assert (info.value.line, info.value.column) == (2, 3)


def test_operand_errors():
    with pytest.raises(AssemblyError) as info:
        assemble("BET 5")
    assert info.value.message == "Unexpected operand"
    assert info.value.token == "5"

    with pytest.raises(AssemblyError) as info:
        assemble("BET!")
    assert info.value.message == "Immediate operand missing"
    assert info.value.token == "BET!"

    with pytest.raises(AssemblyError) as info:
        assemble("BET! GIMEL")
    assert info.value.message == "Immediate operand missing"

    # hiriq may only sit on the last letter of a word
    with pytest.raises(AssemblyError):
        assemble("ב" + HIRIQ + "ג 3")


def test_malformed_token():
    with pytest.raises(AssemblyError) as info:
        assemble("א 5x")
    assert info.value.message == "Malformed token"
    assert info.value.token == "5x"
    assert info.value.position == 1


# ---------------------------------------------------------------------------
# Sequences and disassembly
# ---------------------------------------------------------------------------

def test_sequence_input():
    program = assemble(["BET", "ב", Opcode.TAV, "GIMEL!", 3, Instruction(Opcode.NUN)])
    assert program == [
        Instruction(Opcode.BET), Instruction(Opcode.BET), Instruction(Opcode.TAV),
        Instruction(Opcode.GIMEL, Mode.IMMEDIATE, 3), Instruction(Opcode.NUN),
    ]
    with pytest.raises(AssemblyError) as info:
        assemble(["BET", "FOO"])
    assert info.value.token == "FOO"
    assert info.value.position == 1

    # empty and comment-only symbols are rejected, not dropped
    for blank in ("", "   ", "; x"):
        with pytest.raises(AssemblyError) as info:
            assemble(["BET", blank, "GIMEL"])
        assert info.value.message == "Malformed token"
        assert info.value.token == blank
        assert info.value.position == 1


def test_tokenize_positions():
    tokens = tokenize("א\nBET! 4")
    assert [(t.kind, t.text, t.line) for t in tokens] == [
        ("word", "א", 1), ("word", "BET!", 2), ("number", "4", 2),
    ]
    assert tokens[2].value == 4


def test_disassemble_reassembles():
    src = "א ב" + SHEVA + " ג" + HIRIQ + " 4 סבב TAV! -2 ס ב ב"
    program = assemble(src)
    text = disassemble(program)
    assert assemble(text) == program
    assert disassemble([Opcode.SOVAV, Opcode.ALEF]) == "סבב א"


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main():
    tests = [(name, fn) for name, fn in globals().items()
             if name.startswith("test_") and callable(fn)]
    failed = 0
    for name, fn in tests:
        try:
            fn()
            print(f"  ok    {name}")
        except AssertionError as e:
            failed += 1
            print(f"  FAIL  {name}: {e}")
    if failed:
        print(f"{failed} TESTS FAILED")
        sys.exit(1)
    print("ALL TESTS PASSED")


if __name__ == "__main__":
    main()
