"""Random variables used to draw flow sizes and inter-arrival times."""

from __future__ import annotations

import math
import random
from abc import ABC, abstractmethod
from bisect import bisect_left
from dataclasses import dataclass
from typing import Any, Iterator

MAX_ENTRIES = 65536
MSS_BYTES = 1460
HEADER_BYTES = 40


def _default_rng(rng: Any) -> Any:
    return random if rng is None else rng


class RandomVariable(ABC):
    """A source of random samples."""

    @abstractmethod
    def value(self) -> float:
        """Draw one sample."""


class UniformRandomVariable(RandomVariable):
    """Uniform samples in [min_, max_]."""

    def __init__(self, min_: float = 0.0, max_: float = 1.0, rng: Any = None) -> None:
        self.min_ = min_
        self.max_ = max_
        self.rng = _default_rng(rng)

    def value(self) -> float:
        return self.min_ + (self.max_ - self.min_) * self.rng.random()


class ExponentialRandomVariable(RandomVariable):
    """Exponential samples with mean ``avg``."""

    def __init__(self, avg: float, rng: Any = None) -> None:
        self.avg = avg
        self.urv = UniformRandomVariable(rng=rng)

    def value(self) -> float:
        u = self.urv.value()
        if u <= 0.0:
            return math.inf
        return -1.0 * self.avg * math.log(u)


@dataclass(frozen=True)
class CDFEntry:
    """One row of an empirical distribution."""

    val: float
    cdf: float


def _read_cdf(filename: str) -> Iterator[CDFEntry]:
    """Yield entries from a file whose lines read ``value <ignored> cdf``."""
    with open(filename, encoding="utf-8") as fh:
        for lineno, line in enumerate(fh, 1):
            fields = line.split()
            if not fields:
                continue
            if len(fields) < 3:
                raise ValueError(f"{filename}:{lineno}: expected three columns")
            yield CDFEntry(float(fields[0]), float(fields[2]))


class EmpiricalRandomVariable(RandomVariable):
    """Samples from a CDF table (in packets), interpolating between rows."""

    def __init__(self, filename: str = "", smooth: bool = True, rng: Any = None) -> None:
        self.smooth = smooth
        self.rng = _default_rng(rng)
        self.min_cdf = 0.0
        self.max_cdf = 1.0
        self.table: list[CDFEntry] = []
        self.mean_flow_size = 0.0
        if filename:
            self.load_cdf(filename)

    @property
    def num_entries(self) -> int:
        return len(self.table)

    def _load_table(self, filename: str) -> Iterator[tuple[CDFEntry, float, float]]:
        """Fill the table, yielding each entry with its frequency and flow size."""
        self.table = []
        prev_cd = 0.0
        prev_sz = 1
        for entry in _read_cdf(filename):
            if len(self.table) >= MAX_ENTRIES:
                raise ValueError(f"CDF table holds at most {MAX_ENTRIES} entries")
            freq = entry.cdf - prev_cd
            if freq < 0:
                raise ValueError(f"CDF decreases at value {entry.val}")
            flow_sz = (entry.val + prev_sz) / 2.0 if self.smooth else entry.val
            self.table.append(entry)
            yield entry, freq, flow_sz
            prev_cd = entry.cdf
            prev_sz = int(entry.val)

    def load_cdf(self, filename: str) -> int:
        """Load a CDF file; returns the number of entries."""
        w_sum = sum(freq * flow_sz for _, freq, flow_sz in self._load_table(filename))
        self.mean_flow_size = w_sum * MSS_BYTES
        return len(self.table)

    def value(self) -> float:
        if not self.table:
            return 0.0
        u = self.rng.random()
        mid = self.lookup(u)
        if mid and u < self.table[mid].cdf:
            lo, hi = self.table[mid - 1], self.table[mid]
            return self.interpolate(u, lo.cdf, lo.val, hi.cdf, hi.val)
        return self.table[mid].val

    def interpolate(self, x: float, x1: float, y1: float, x2: float, y2: float) -> float:
        """Linear interpolation of ``x`` between (x1, y1) and (x2, y2)."""
        return y1 + (x - x1) * (y2 - y1) / (x2 - x1)

    def lookup(self, u: float) -> int:
        """Index of the first entry whose CDF is >= ``u`` (last index if none)."""
        if u <= self.table[0].cdf:
            return 0
        last = len(self.table) - 1
        cdfs = [entry.cdf for entry in self.table]
        return min(bisect_left(cdfs, u, 1, max(last, 1)), last)


class EmpiricalBytesRandomVariable(EmpiricalRandomVariable):
    """Empirical distribution whose values are in bytes."""

    def __init__(self, filename: str = "", smooth: bool = True, rng: Any = None) -> None:
        self.size_with_header = 0.0
        super().__init__("", smooth, rng)
        if filename:
            self.load_cdf(filename)

    def load_cdf(self, filename: str) -> int:
        w_sum = 0.0
        self.size_with_header = 0.0
        for _, freq, flow_sz in self._load_table(filename):
            num_pkts = math.ceil(flow_sz / MSS_BYTES)
            self.size_with_header += freq * (HEADER_BYTES * num_pkts + flow_sz)
            w_sum += freq * flow_sz
        self.mean_flow_size = w_sum
        return len(self.table)


class NAryRandomVariable(EmpiricalRandomVariable):
    """Picks uniformly among the sizes listed in the first column of a file."""

    def __init__(self, filename: str, rng: Any = None) -> None:
        super().__init__(filename, rng=rng)
        self.flow_sizes: list[float] = []
        self.load_sizes(filename)

    def load_sizes(self, filename: str) -> int:
        """Read the first column of each line; returns the number of sizes."""
        with open(filename, encoding="utf-8") as fh:
            for line in fh:
                fields = line.split()
                if fields:
                    self.flow_sizes.append(float(fields[0]))
        return len(self.flow_sizes)

    def value(self) -> float:
        return self.flow_sizes[self.rng.randrange(len(self.flow_sizes))]


class CDFRandomVariable(EmpiricalRandomVariable):
    """Step distribution: returns the first value whose CDF covers the draw."""

    def __init__(self, filename: str, rng: Any = None) -> None:
        super().__init__(filename, smooth=False, rng=rng)

    def value(self) -> float:
        u = self.rng.random()
        for entry in self.table:
            if u <= entry.cdf:
                return entry.val
        return self.table[-1].val


class ConstantVariable(EmpiricalRandomVariable):
    """Always returns the same value."""

    def __init__(self, value: float) -> None:
        super().__init__("", smooth=False)
        self.v = value

    def value(self) -> float:
        return self.v


class GaussianRandomVariable(RandomVariable):
    """Normally distributed samples."""

    def __init__(self, avg: float, std: float, rng: Any = None) -> None:
        self.avg = avg
        self.std = std
        self.rng = random.Random() if rng is None else rng

    def value(self) -> float:
        return self.rng.gauss(self.avg, self.std)