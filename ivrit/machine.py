"""
IvritCode machine: pure register transducer over Z/22Z.

A State is 23 integers: the 22 letter registers א..ת followed by the
accumulator A. Every operator reads the old state and returns a new one;
nothing is updated in place, so swaps and permutations never see a
half-written vector.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Sequence

from .opcodes import (
    ACC, HIRIQ, NUM_LETTERS, NUM_REGISTERS, REGISTER_ORDER, SHEVA,
    IMMEDIATE_OPCODES, Mode, Opcode, register_index,
)
from .ring import balanced, reduce, sign, trunc_div


# ---------------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------------

HALF = NUM_LETTERS // 2   # 11

# Quartet blocks over the letters: (0..3), (4..7), ..., (16..19).
# Slots 20 and 21 do not fill a block and are left alone by ש and ת.
QUARTET = 4
QUARTET_BLOCKS = tuple(
    range(start, start + QUARTET)
    for start in range(0, NUM_LETTERS - QUARTET + 1, QUARTET)
)

# Round working subset
RA, RB, RG, RD = 0, 1, 2, 3


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class State:
    """23 registers. Values are stored unreduced between operators."""

    regs: tuple[int, ...]

    def __post_init__(self):
        regs = tuple(self.regs)
        if len(regs) != NUM_REGISTERS:
            raise ValueError(
                f"State needs {NUM_REGISTERS} registers, got {len(regs)}")
        object.__setattr__(self, "regs", regs)

    def __getitem__(self, idx):
        return self.regs[idx]

    def __len__(self) -> int:
        return NUM_REGISTERS

    def __iter__(self):
        return iter(self.regs)

    @property
    def letters(self) -> tuple[int, ...]:
        return self.regs[:NUM_LETTERS]

    @property
    def accumulator(self) -> int:
        return self.regs[ACC]

    def residues(self) -> tuple[int, ...]:
        return tuple(reduce(x) for x in self.regs)

    def replace(self, updates: Mapping[int, int]) -> State:
        regs = list(self.regs)
        for idx, val in updates.items():
            regs[idx] = val
        return State(tuple(regs))

    def as_dict(self) -> dict[str, int]:
        return dict(zip(REGISTER_ORDER, self.regs))


def zero_state() -> State:
    return State((0,) * NUM_REGISTERS)


def initial_state(seed: Mapping[int | str, int] | Sequence[int] | None = None) -> State:
    """
    Build a State, zero-filling every slot the seed does not name.

    seed may be a mapping of slot index or register name (א, BET, A, ...)
    to value, or a sequence of up to 23 values filling slots from 0.
    """
    regs = [0] * NUM_REGISTERS
    if seed is None:
        return State(tuple(regs))

    if isinstance(seed, Mapping):
        for key, val in seed.items():
            regs[register_index(key)] = _as_int(val, key)
        return State(tuple(regs))

    values = list(seed)
    if len(values) > NUM_REGISTERS:
        raise ValueError(
            f"Seed has {len(values)} values, at most {NUM_REGISTERS} allowed")
    for idx, val in enumerate(values):
        regs[idx] = _as_int(val, idx)
    return State(tuple(regs))


def _as_int(val, key) -> int:
    if isinstance(val, bool) or not isinstance(val, int):
        raise ValueError(f"Seed value for {key!r} must be an integer, got {val!r}")
    return val


# ---------------------------------------------------------------------------
# Instruction
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Instruction:
    op: Opcode
    mode: Mode = Mode.NONE
    immediate: int = 0

    def __str__(self) -> str:
        if self.mode is Mode.QUERY:
            return self.op.symbol + SHEVA
        if self.mode is Mode.IMMEDIATE:
            return f"{self.op.symbol}{HIRIQ} {self.immediate}"
        return self.op.symbol


# ---------------------------------------------------------------------------
# Base operators
# ---------------------------------------------------------------------------
#
# Each takes the old register tuple and returns the new register list.
# `r` is residue, `b` is balanced representative.

def op_alef(old):
    # identity
    return list(old)


def op_bet(old):
    # second half += first half
    new = list(old)
    for i in range(HALF):
        new[i + HALF] = reduce(old[i + HALF] + old[i])
    return new


def op_gimel(old):
    # second half *= first half
    new = list(old)
    for i in range(HALF):
        new[i + HALF] = reduce(old[i + HALF] * old[i])
    return new


def op_dalet(old):
    new = list(old)
    for i in range(HALF):
        a, b = old[i], old[i + HALF]
        new[i] = reduce(b - a)
        new[i + HALF] = reduce(a - b)
    return new


def op_hei(old):
    new = list(old)
    signs = [sign(balanced(x)) for x in old[:NUM_LETTERS]]
    new[:NUM_LETTERS] = signs
    new[ACC] = reduce(sum(signs))
    return new


def op_vav(old):
    new = list(old)
    new[:HALF] = old[HALF:NUM_LETTERS]
    new[HALF:NUM_LETTERS] = old[:HALF]
    return new


def op_zayin(old):
    new = [reduce(x + 1) for x in old[:NUM_LETTERS]]
    new.append(old[ACC] + NUM_LETTERS)
    return new


def op_chet(old):
    new = [reduce(x - 1) for x in old[:NUM_LETTERS]]
    new.append(old[ACC] - NUM_LETTERS)
    return new


def op_tet(old):
    squares = [x * x for x in old[:NUM_LETTERS]]
    new = [reduce(sq) for sq in squares]
    new.append(reduce(sum(squares)))
    return new


def op_yod(old):
    return [old[ACC]] * NUM_LETTERS + [old[ACC]]


def op_kaf(old):
    new = list(old)
    for i in range(NUM_LETTERS):
        window = sum(old[(i + j) % NUM_LETTERS] for j in range(4))
        new[i] = reduce(window)
    return new


def op_lamed(old):
    b = [balanced(x) for x in old[:NUM_LETTERS]]
    total = sum(b)
    mean = trunc_div(total, NUM_LETTERS)
    new = [reduce(x - mean) for x in b]
    new.append(reduce(total))
    return new


def op_mem(old):
    b = [balanced(x) for x in old[:NUM_LETTERS]]
    smoothed = [
        trunc_div(b[i - 1] + b[i] + b[(i + 1) % NUM_LETTERS], 3)
        for i in range(NUM_LETTERS)
    ]
    new = [reduce(s) for s in smoothed]
    new.append(reduce(trunc_div(sum(smoothed), NUM_LETTERS)))
    return new


def op_nun(old):
    return [reduce(-balanced(x)) for x in old]


def op_samekh(old):
    k = reduce(old[ACC])
    new = [old[(i - k) % NUM_LETTERS] for i in range(NUM_LETTERS)]
    new.append(old[ACC])
    return new


def correlations(old) -> list[int]:
    """Correlation of the first half against the ring shifted by 11 + s."""
    b = [balanced(x) for x in old[:NUM_LETTERS]]
    return [
        sum(b[i] * b[(i + HALF + s) % NUM_LETTERS] for i in range(HALF))
        for s in range(HALF)
    ]


def op_ayin(old):
    new = list(old)
    new[ACC] = reduce(max(correlations(old)))
    return new


def op_pe(old):
    new = list(old)
    a = old[0]
    new[ACC] = a
    new[1] = reduce(old[1] + a)
    new[NUM_LETTERS - 1] = reduce(old[NUM_LETTERS - 1] + a)
    return new


def op_tsadi(old):
    new = list(old)
    first = [balanced(x) for x in old[:HALF]]
    second = [balanced(x) for x in old[HALF:NUM_LETTERS]]
    s1, s2 = sum(first), sum(second)
    new[ACC] = reduce(sign(s1 - s2))
    if s1 > s2:
        new[0] = reduce(max(first))
    elif s2 > s1:
        new[HALF] = reduce(max(second))
    return new


def op_qof(old):
    new = [reduce(old[NUM_LETTERS - 1 - i] + i) for i in range(NUM_LETTERS)]
    new.append(old[ACC])
    return new


def op_resh(old):
    stride = balanced(old[1]) or 1
    base = balanced(old[ACC])
    new = [reduce(base + i * stride) for i in range(NUM_LETTERS)]
    new.append(old[ACC])
    return new


def op_shin(old):
    new = list(old)
    for block in QUARTET_BLOCKS:
        a, b, c, d = (old[i] for i in block)
        mixed = (a * a + b, b * b + c, c * c + d, d * d + a)
        for i, val in zip(block, mixed):
            new[i] = reduce(val)
    new[ACC] = reduce(max(abs(balanced(x)) for x in new[:NUM_LETTERS]))
    return new


def _rotate_quartets(old, k: int | None = None):
    new = list(old)
    for block in QUARTET_BLOCKS:
        a, b, c, d = (old[i] for i in block)
        for i, val in zip(block, (c, d, a, b)):
            new[i] = val if k is None else reduce(val + k)
    return new


def op_tav(old):
    return _rotate_quartets(old)


def _round(old, k: int = 0):
    # unbounded integers: no reduction step
    new = list(old)
    a, b, g, d = old[RA], old[RB], old[RG], old[RD]
    m0 = a + 3 * g + k
    m1 = b + 5 * d + k
    new[RA] = m0 + m1
    new[RB] = m0 - m1
    new[RG] = 3 * m0 - m1
    new[RD] = 2 * m1 + a
    return new


def op_sovav(old):
    return _round(old)


OPERATORS: dict[Opcode, Callable] = {
    Opcode.ALEF: op_alef,
    Opcode.BET: op_bet,
    Opcode.GIMEL: op_gimel,
    Opcode.DALET: op_dalet,
    Opcode.HEI: op_hei,
    Opcode.VAV: op_vav,
    Opcode.ZAYIN: op_zayin,
    Opcode.CHET: op_chet,
    Opcode.TET: op_tet,
    Opcode.YOD: op_yod,
    Opcode.KAF: op_kaf,
    Opcode.LAMED: op_lamed,
    Opcode.MEM: op_mem,
    Opcode.NUN: op_nun,
    Opcode.SAMEKH: op_samekh,
    Opcode.AYIN: op_ayin,
    Opcode.PE: op_pe,
    Opcode.TSADI: op_tsadi,
    Opcode.QOF: op_qof,
    Opcode.RESH: op_resh,
    Opcode.SHIN: op_shin,
    Opcode.TAV: op_tav,
    Opcode.SOVAV: op_sovav,
}


# ---------------------------------------------------------------------------
# Immediate (hiriq) variants
# ---------------------------------------------------------------------------

def op_bet_imm(old, k: int):
    new = list(old)
    for i in range(HALF):
        new[i + HALF] = reduce(old[i + HALF] + old[i] + k)
    return new


def op_gimel_imm(old, k: int):
    new = list(old)
    for i in range(HALF):
        new[i + HALF] = reduce(old[i + HALF] * old[i] + k)
    return new


IMMEDIATE_OPERATORS: dict[Opcode, Callable] = {
    Opcode.BET: op_bet_imm,
    Opcode.GIMEL: op_gimel_imm,
    Opcode.TAV: _rotate_quartets,
    Opcode.SOVAV: _round,
}

assert set(IMMEDIATE_OPERATORS) == IMMEDIATE_OPCODES


# ---------------------------------------------------------------------------
# apply
# ---------------------------------------------------------------------------

def apply(state: State, op: Opcode | Instruction) -> State:
    """One transition. Total: every opcode on every state succeeds."""
    instr = op if isinstance(op, Instruction) else Instruction(Opcode(op))
    old = state.regs

    if instr.mode is Mode.QUERY:
        virtual = OPERATORS[instr.op](old)
        delta = sum(v - o for v, o in zip(virtual, old))
        return state.replace({ACC: reduce(delta)})

    if instr.mode is Mode.IMMEDIATE and instr.op in IMMEDIATE_OPERATORS:
        return State(tuple(IMMEDIATE_OPERATORS[instr.op](old, instr.immediate)))

    return State(tuple(OPERATORS[instr.op](old)))


def apply_all(state: State, program: Iterable[Opcode | Instruction]) -> State:
    for op in program:
        state = apply(state, op)
    return state
