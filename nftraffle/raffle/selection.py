"""Weighted winner lookup over an insertion-ordered entry ledger."""

from __future__ import annotations

from typing import Iterable, Tuple


def pick_weighted_winner(entries: Iterable[Tuple[str, int]], index: int) -> str:
    """Return the participant whose cumulative entry range contains ``index``.

    Participants are walked in the given order. With counts ``A=10, B=25``
    participant ``A`` owns indices ``0..9`` and ``B`` owns ``10..34``, so a
    uniform ``index`` gives each participant odds proportional to its entries.

    Parameters
    ----------
    entries : Iterable[tuple[str, int]]
        ``(participant, entry_count)`` pairs in ledger order.
    index : int
        Winning entry index, ``0 <= index < sum(counts)``.

    Raises
    ------
    ValueError
        If ``index`` is negative or not covered by ``entries``.
    """
    if index < 0:
        raise ValueError("index must not be negative")

    upper = 0
    for participant, count in entries:
        upper += count
        if index < upper:
            return participant
    raise ValueError(f"index {index} is outside the {upper} available entries")


__all__ = ["pick_weighted_winner"]
