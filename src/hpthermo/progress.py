from __future__ import annotations

import sys
from typing import Protocol, TextIO


class ProgressReporter(Protocol):
    """Receives sweep progress.

    ``current`` is the number of samples completed so far (1 after the first
    sample), not the zero-based index of the sample just computed.
    """

    def increment(self, current: int) -> None: ...


class ProgressBar:
    """Text progress bar: ``[|||||     ]`` drawn in place on one line.

    ``initialize`` draws the empty frame and rewinds to its start with a
    carriage return and a first pipe; each ``increment`` appends pipes up to
    the fraction of ``total`` reached, never past ``width``.
    """

    def __init__(self, width: int = 80, stream: TextIO | None = None) -> None:
        if width < 1:
            raise ValueError("width must be >= 1.")
        self.width = width
        self.stream = sys.stdout if stream is None else stream
        self.total = 0
        self.current = 0

    def initialize(self, total: int) -> None:
        if total < 1:
            raise ValueError("total must be >= 1.")
        self.total = total
        self.stream.write("[" + " " * self.width + "]\r[|")
        self.stream.flush()
        self.current = 1

    def increment(self, current: int) -> None:
        if self.total == 0:
            raise RuntimeError("ProgressBar.increment() called before initialize().")
        filled = min(int(self.width * current / self.total), self.width)
        if filled > self.current:
            self.stream.write("|" * (filled - self.current))
            self.stream.flush()
            self.current = filled

    def end(self) -> None:
        self.stream.write("\n")
        self.stream.flush()
        self.total = 0
        self.current = 0
