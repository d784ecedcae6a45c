from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass

ALGORITHMS = ("pta", "cha")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class AnalysisConfig:
    """Knobs of one analysis run.

    ``entry`` is a method signature (``<Main: void main(java.lang.String[])>``)
    or ``Class.method``; None means the program's ``main``.
    """

    entry: str | None = None
    algorithm: str = "pta"
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        if self.algorithm not in ALGORITHMS:
            raise ValueError(f"unknown algorithm {self.algorithm!r}; expected one of {ALGORITHMS}")
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"unknown log level {self.log_level!r}")
        self.log_level = self.log_level.upper()

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> AnalysisConfig:
        return cls(entry=args.entry, algorithm=args.algorithm, log_level=args.log_level)


def configure_logging(level: str = "WARNING") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, force=True)
