from __future__ import annotations

from gridle.common.constants import MULBERRY_INCREMENT, UINT32_MASK

_TWO_POW_32 = 4294967296.0


class Mulberry32:
    """32-bit seeded generator shared by every client of the daily challenge.

    The output stream must stay bit-identical with other ports of the game:
    every arithmetic step is wrapped to unsigned 32 bits exactly where a
    32-bit implementation would overflow.
    """

    def __init__(self, seed: int) -> None:
        self._state = seed & UINT32_MASK

    @property
    def state(self) -> int:
        return self._state

    def next_uint32(self) -> int:
        self._state = (self._state + MULBERRY_INCREMENT) & UINT32_MASK
        t = self._state
        t = ((t ^ (t >> 15)) * (t | 1)) & UINT32_MASK
        t ^= (t + (((t ^ (t >> 7)) * (t | 61)) & UINT32_MASK)) & UINT32_MASK
        return (t ^ (t >> 14)) & UINT32_MASK

    def next(self) -> float:
        """Return the next float in ``[0, 1)``."""
        return self.next_uint32() / _TWO_POW_32

    def randbelow(self, n: int) -> int:
        """``floor(next() * n)``; consumes one draw."""
        return int(self.next() * n)
