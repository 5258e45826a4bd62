"""
Opcode and register tables for the IvritCode machine.

The 22 Hebrew letters name both the letter registers (slots 0-21) and the
base operators. The accumulator ("A", Aleph-Olam) is slot 22. The composite
round סבב has no register of its own.

This is the only place that knows about external symbols; the machine
itself works on Opcode values.
"""

from __future__ import annotations

from enum import Enum, IntEnum

# ---------------------------------------------------------------------------
# Letters and registers
# ---------------------------------------------------------------------------

LETTERS = "אבגדהוזחטיכלמנסעפצקרשת"

NUM_LETTERS = len(LETTERS)          # 22
ACC = NUM_LETTERS                   # 22
NUM_REGISTERS = NUM_LETTERS + 1     # 23

ACC_NAME = "A"

# Index -> register name
REGISTER_ORDER: list[str] = [*LETTERS, ACC_NAME]

# Final forms share their base letter's register and operator
FINAL_FORMS: dict[str, str] = {
    "ך": "כ",
    "ם": "מ",
    "ן": "נ",
    "ף": "פ",
    "ץ": "צ",
}

SOVAV_SYMBOL = "סבב"

# Niqqud marks
SHEVA = "\u05b0"   # query mode
HIRIQ = "\u05b4"   # immediate mode

# Latin suffixes with the same meaning
QUERY_SUFFIX = "?"
IMMEDIATE_SUFFIX = "!"


class Opcode(IntEnum):
    ALEF = 0
    BET = 1
    GIMEL = 2
    DALET = 3
    HEI = 4
    VAV = 5
    ZAYIN = 6
    CHET = 7
    TET = 8
    YOD = 9
    KAF = 10
    LAMED = 11
    MEM = 12
    NUN = 13
    SAMEKH = 14
    AYIN = 15
    PE = 16
    TSADI = 17
    QOF = 18
    RESH = 19
    SHIN = 20
    TAV = 21
    SOVAV = 22  # composite round

    @property
    def symbol(self) -> str:
        if self is Opcode.SOVAV:
            return SOVAV_SYMBOL
        return LETTERS[self.value]


class Mode(Enum):
    NONE = "none"
    QUERY = "sheva"
    IMMEDIATE = "hiriq"


BASE_OPCODES = tuple(op for op in Opcode if op is not Opcode.SOVAV)   # 22

# Opcodes whose IMMEDIATE form differs from the base form
IMMEDIATE_OPCODES = frozenset({Opcode.BET, Opcode.GIMEL, Opcode.TAV, Opcode.SOVAV})

MODE_MARKS: dict[str, Mode] = {SHEVA: Mode.QUERY, HIRIQ: Mode.IMMEDIATE}
MODE_SUFFIXES: dict[str, Mode] = {
    QUERY_SUFFIX: Mode.QUERY,
    IMMEDIATE_SUFFIX: Mode.IMMEDIATE,
}

# ---------------------------------------------------------------------------
# Symbol tables
# ---------------------------------------------------------------------------

# Hebrew letter -> opcode (final forms included)
LETTER_TO_OPCODE: dict[str, Opcode] = {ch: Opcode(i) for i, ch in enumerate(LETTERS)}
LETTER_TO_OPCODE.update({final: LETTER_TO_OPCODE[base] for final, base in FINAL_FORMS.items()})

# Latin name (upper case) -> opcode
NAME_TO_OPCODE: dict[str, Opcode] = {op.name: op for op in Opcode}
NAME_TO_OPCODE.update({
    "ALEPH": Opcode.ALEF,
    "HE": Opcode.HEI,
    "SOVEV": Opcode.SOVAV,
})

# Register name -> slot index (Hebrew, Latin, accumulator aliases)
REGISTER_INDEX: dict[str, int] = {name: i for i, name in enumerate(REGISTER_ORDER)}
REGISTER_INDEX.update({final: REGISTER_INDEX[base] for final, base in FINAL_FORMS.items()})
REGISTER_INDEX.update({op.name: op.value for op in BASE_OPCODES})
REGISTER_INDEX.update({"ALEPH": 0, "HE": 4, "ACC": ACC, "ALEPH_OLAM": ACC})


def register_index(name: str | int) -> int:
    """Resolve a register name or slot index. Raises ValueError."""
    if isinstance(name, int) and not isinstance(name, bool):
        if 0 <= name < NUM_REGISTERS:
            return name
        raise ValueError(f"Register index out of range: {name}")
    if isinstance(name, str):
        key = name.strip()
        if key in REGISTER_INDEX:
            return REGISTER_INDEX[key]
        if key.upper() in REGISTER_INDEX:
            return REGISTER_INDEX[key.upper()]
        if key.isdigit():
            return register_index(int(key))
    raise ValueError(f"Unknown register: {name!r}")


if __name__ == "__main__":
    print(f"{len(BASE_OPCODES)} base opcodes + {SOVAV_SYMBOL}")
    for op in Opcode:
        print(f"  {op.value:2d}  {op.symbol:>3s}  {op.name}")
