from __future__ import annotations
from ..domain.models import BlockRange

def plan_ranges(creation_block: int, target_block: int, batch_size: int) -> list[BlockRange]:
    """
    Contiguous, non-overlapping inclusive ranges covering [creation_block, target_block].
    Each range ends at `start + batch_size` (so spans batch_size + 1 blocks) or at the target.
    """
    if batch_size <= 0:
        raise ValueError(f"batch_size must be > 0, got {batch_size}")
    out: list[BlockRange] = []
    b = creation_block
    while b <= target_block:
        fb, tb = b, min(target_block, b + batch_size)
        out.append(BlockRange(fb, tb))
        b = tb + 1
    return out

def merge_intervals(intervals: list[tuple[int,int]]) -> list[tuple[int,int]]:
    if not intervals: return []
    intervals = sorted(intervals)
    merged: list[list[int]] = [[intervals[0][0], intervals[0][1]]]
    for s, e in intervals[1:]:
        ms, me = merged[-1]
        if s <= me + 1: merged[-1][1] = max(me, e)
        else: merged.append([s, e])
    return [(s, e) for s, e in merged]
