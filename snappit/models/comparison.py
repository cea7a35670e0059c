"""Outcomes of comparing a capture against its baseline."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class OutcomeKind(str, Enum):
    NO_BASELINE = "no_baseline"
    SIZE_MISMATCH = "size_mismatch"
    MATCH = "match"
    MISMATCH = "mismatch"


class _Outcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    @property
    def passed(self) -> bool:
        return False


class NoBaseline(_Outcome):
    kind: Literal[OutcomeKind.NO_BASELINE] = OutcomeKind.NO_BASELINE

    @property
    def message(self) -> str:
        return "No previous screenshot found."


class SizeMismatch(_Outcome):
    kind: Literal[OutcomeKind.SIZE_MISMATCH] = OutcomeKind.SIZE_MISMATCH
    new_size: tuple[int, int]
    baseline_size: tuple[int, int]

    @property
    def message(self) -> str:
        return (
            "Screenshots differ with respect to dimension: "
            f"{self.new_size[0]}x{self.new_size[1]} vs baseline "
            f"{self.baseline_size[0]}x{self.baseline_size[1]}."
        )


class Match(_Outcome):
    kind: Literal[OutcomeKind.MATCH] = OutcomeKind.MATCH
    diff_ratio: float = 0.0

    @property
    def passed(self) -> bool:
        return True

    @property
    def message(self) -> str:
        return f"Screenshots match (diff: {self.diff_ratio:.2%})."


class MismatchAboveThreshold(_Outcome):
    kind: Literal[OutcomeKind.MISMATCH] = OutcomeKind.MISMATCH
    diff_ratio: float
    threshold: float

    @property
    def message(self) -> str:
        return (
            f"Screenshots do not match within threshold: diff {self.diff_ratio:.2%} "
            f"(threshold: {self.threshold:.2%})."
        )


ComparisonResult = Annotated[
    Union[NoBaseline, SizeMismatch, Match, MismatchAboveThreshold],
    Field(discriminator="kind"),
]
