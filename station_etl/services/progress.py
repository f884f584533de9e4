"""Console progress output for long-running imports."""

import time
from typing import Optional, TextIO

from tqdm import tqdm


class ProgressReporter:
    """
    A tqdm bar sized to one importer call.

    `every` throttles redraws: the bar only refreshes after at least that many
    records have been processed since the last refresh. tqdm's rate column
    gives the records-per-second figure.
    """

    def __init__(
        self,
        label: str,
        total: int,
        every: int = 100,
        enabled: bool = True,
        stream: Optional[TextIO] = None,
    ):
        self.label = label
        self.total = total
        self.bar = tqdm(
            total=total,
            desc=f"  {label}",
            unit="records",
            miniters=max(1, every),
            disable=not enabled,
            file=stream,
        )
        self.started = time.monotonic()

    def advance(self, count: int = 1) -> None:
        self.bar.update(count)

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started

    def close(self) -> None:
        self.bar.close()

    def __enter__(self) -> "ProgressReporter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
