"""
Ring primitives for the IvritCode machine.

Every register is read as an element of Z/22Z. Two views are used:
the residue in [0, 22) and the balanced representative in [-11, 10].
Which view an operator uses is part of its definition.
"""

from __future__ import annotations

MOD = 22
HALF = MOD // 2   # 11

BALANCED_MIN = -HALF       # -11
BALANCED_MAX = HALF - 1    # 10


def reduce(x: int) -> int:
    """Residue of x in [0, 22)."""
    return x % MOD


def balanced(x: int) -> int:
    """Balanced representative of x in [-11, 10]."""
    r = x % MOD
    return r - MOD if r >= HALF else r


def sign(x: int) -> int:
    if x > 0:
        return 1
    if x < 0:
        return -1
    return 0


def trunc_div(n: int, d: int) -> int:
    """Integer division rounding toward zero."""
    q = abs(n) // abs(d)
    return q if (n >= 0) == (d > 0) else -q


if __name__ == "__main__":
    assert [balanced(x) for x in (0, 10, 11, 21, 22, -1)] == [0, 10, -11, -1, 0, -1]
    assert reduce(-3) == 19
    assert trunc_div(-7, 2) == -3 and trunc_div(7, 2) == 3
    print("Ring spot-checks passed.")
