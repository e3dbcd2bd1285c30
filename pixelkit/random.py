"""Random number generators: uniform, Gaussian, LCG and combined Tausworthe."""

from __future__ import annotations

import math
import os
import random as _stdlib_random
import time

_MASK32 = 0xFFFFFFFF
_MASK48 = (1 << 48) - 1
_MASK64 = (1 << 64) - 1
_UINT_MAX = _MASK32
_ULONG_MAX = _MASK64

_DRAND_A = 0x5DEECE66D
_DRAND_C = 0xB

_LCG_A = 6364136223846793005
_LCG_C = 1442695040888963407

_TAUS_SCALE = 2.3283064365387e-10


def _taus_step(z: int, s1: int, s2: int, s3: int, m: int) -> int:
    b = ((((z << s1) & _MASK64) ^ z) >> s2) & _MASK32
    return ((((z & m) << s3) & _MASK64) ^ b)


def _lcg_step(z: int, a: int, c: int) -> int:
    return (a * z + c) & _MASK64


class Random:
    """A seeded source of several kinds of pseudo-random numbers."""

    def __init__(self, seed: int | None = None) -> None:
        if seed is None:
            seed = int(time.time()) % os.getpid()
        self.set_seed(seed)

    def set_seed(self, seed: int) -> None:
        """Reset every generator from ``seed``."""
        self._prng = _stdlib_random.Random(seed)
        self._drand_state = (((seed & _MASK32) << 16) | 0x330E) & _MASK48
        self._spare_normal: float | None = None

        self._lcg_x = seed & _MASK64

        self._taus = [int(self._rand_val() * _UINT_MAX) for _ in range(4)]

    def _rand_val(self) -> float:
        self._drand_state = (_DRAND_A * self._drand_state + _DRAND_C) & _MASK48
        return self._drand_state / float(1 << 48)

    def uniform(self) -> float:
        """A value drawn uniformly from [0, 1)."""
        return self._rand_val()

    def normal(self) -> float:
        """A value from the normal distribution with mean 0 and deviation 1."""
        return self._prng.normalvariate(0.0, 1.0)

    def box_muller_normal(self) -> float:
        """A standard normal value by the polar Box-Muller method.

        Values are produced in pairs; every second call returns the
        value kept from the call before.
        """
        if self._spare_normal is not None:
            value, self._spare_normal = self._spare_normal, None
            return value
        while True:
            v1 = 2.0 * self._rand_val() - 1.0
            v2 = 2.0 * self._rand_val() - 1.0
            rsq = v1 * v1 + v2 * v2
            if 0.0 < rsq < 1.0:
                break
        factor = math.sqrt(-2.0 * math.log(rsq) / rsq)
        self._spare_normal = v2 * factor
        return v1 * factor

    def lcg(self) -> float:
        """The next value of a 64-bit linear congruential generator, in [0, 1]."""
        self._lcg_x = ((_LCG_A * self._lcg_x + _LCG_C) & _MASK64) % _ULONG_MAX
        return self._lcg_x / _ULONG_MAX

    def taus(self) -> float:
        """The next value of a combined Tausworthe generator."""
        z1, z2, z3, z4 = self._taus
        z1 = _taus_step(z1, 13, 19, 12, 4294967294)
        z2 = _taus_step(z2, 2, 25, 4, 4294967288)
        z3 = _taus_step(z3, 3, 11, 17, 4294967280)
        z4 = _lcg_step(z4, 1664525, 1013904223)
        self._taus = [z1, z2, z3, z4]
        combined = z1 ^ z2 ^ z3 ^ z4
        return (_TAUS_SCALE * float(combined)) / float(_UINT_MAX)