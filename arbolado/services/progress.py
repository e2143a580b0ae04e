from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Row progress display for CLI imports (TTY only).

In non-TTY environments (CI, piped output) no bar is created, so logs stay
free of control sequences.
"""

__all__ = [
    "RowProgress",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class RowProgress:
    """tqdm bar counting inserted rows; usable as a batch loader callback."""

    def __init__(self, total_rows: int, *, description: str = "Importing trees") -> None:
        self.total_rows = total_rows
        self.description = description
        self.done = 0

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total_rows,
                desc=description,
                unit="row",
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def set_total(self, total_rows: int) -> None:
        """Resize the bar once the number of rows to insert is known."""
        self.total_rows = total_rows
        if self.pbar is not None:
            self.pbar.reset(total=total_rows)

    def __call__(self, batch_rows: int) -> None:
        self.done += batch_rows
        if self.pbar is not None:
            self.pbar.update(batch_rows)

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> RowProgress:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
