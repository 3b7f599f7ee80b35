"""Chunk planning for analysis."""

from autoshorts_core.models.job import Chunk


def plan_chunks(duration: float, target: float = 1800, max_last: float = 2700) -> list[Chunk]:
    """
    Split ``[0, duration)`` into contiguous analysis chunks.

    Chunks of ``target`` seconds are cut while the remaining duration is
    longer than ``max_last``; whatever remains becomes the final chunk. With
    the defaults, a 100 minute source yields 30, 30 and 40 minute chunks,
    and anything up to 45 minutes is a single chunk.

    Args:
        duration: Source duration in seconds
        target: Regular chunk length in seconds
        max_last: Longest allowed final chunk in seconds

    Returns:
        Chunks indexed from 0 that exactly tile the duration

    Raises:
        ValueError: If the duration is negative or the sizes are inconsistent
    """
    if duration < 0:
        raise ValueError(f"Duration must not be negative: {duration}")
    if target <= 0:
        raise ValueError(f"Chunk target must be positive: {target}")
    if max_last < target:
        raise ValueError(f"Final chunk limit ({max_last}) must be at least the target ({target})")

    chunks = []
    start = 0.0
    while duration - start > max_last:
        chunks.append(Chunk(index=len(chunks), start=start, end=start + target))
        start += target

    if duration > start:
        chunks.append(Chunk(index=len(chunks), start=start, end=float(duration)))
    return chunks


def chunks_tile(chunks: list[Chunk], duration: float, tolerance: float = 1e-6) -> bool:
    """Check that chunks are contiguous, ordered and cover ``[0, duration)``."""
    if not chunks:
        return duration <= tolerance
    expected = 0.0
    for i, chunk in enumerate(chunks):
        if chunk.index != i or abs(chunk.start - expected) > tolerance or chunk.end <= chunk.start:
            return False
        expected = chunk.end
    return abs(expected - duration) <= tolerance
