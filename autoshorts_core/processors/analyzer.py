"""Chunk analysis coordinator."""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Any, Callable, Optional

from autoshorts_core.ai.base import AIClient
from autoshorts_core.ai.keys import KeyPool
from autoshorts_core.errors import (
    AnalysisExhausted,
    AnalysisRequestError,
    CredentialRejected,
    TransientAnalysisError,
)
from autoshorts_core.models.config import AnalysisConfig, MomentBounds
from autoshorts_core.models.job import Chunk, ChunkStatus, Moment, MomentCategory, moment_id
from autoshorts_core.utils.logs import submit_in_context
from autoshorts_core.utils.time import parse_timestamp


logger = logging.getLogger(__name__)

# Timestamps may overshoot the chunk end by this much (container rounding)
END_TOLERANCE = 1.0


def parse_moments(payload: Any, chunk: Chunk, bounds: MomentBounds) -> list[Moment]:
    """
    Convert an analysis payload into validated moments in global coordinates.

    Accepts ``{"moments": [...]}`` or a bare list. Each entry needs
    ``start_time``/``end_time`` (or ``start``/``end``) relative to the chunk.
    Malformed or out-of-bounds entries are dropped and logged.

    Raises:
        TransientAnalysisError: If the payload has no moment list at all
    """
    if isinstance(payload, dict):
        entries = payload.get("moments")
    else:
        entries = payload
    if not isinstance(entries, list):
        raise TransientAnalysisError(f"chunk {chunk.index}: response has no moment list")

    moments = []
    for n, entry in enumerate(entries, 1):
        if not isinstance(entry, dict):
            logger.warning("Chunk %d: dropping entry %d (not an object)", chunk.index, n)
            continue

        try:
            local_start = parse_timestamp(entry.get("start_time", entry.get("start")))
            local_end = parse_timestamp(entry.get("end_time", entry.get("end")))
        except ValueError as e:
            logger.warning("Chunk %d: dropping entry %d (%s)", chunk.index, n, e)
            continue

        if local_end > chunk.duration + END_TOLERANCE:
            logger.warning(
                "Chunk %d: dropping entry %d (ends at %.1fs, chunk is %.1fs)",
                chunk.index, n, local_end, chunk.duration,
            )
            continue

        start = chunk.start + local_start
        end = min(chunk.start + local_end, chunk.end)
        if not bounds.accepts(start, end):
            logger.warning(
                "Chunk %d: dropping entry %d (%.1fs is outside %g-%gs)",
                chunk.index, n, end - start, bounds.min_seconds, bounds.max_seconds,
            )
            continue

        caption = entry.get("description") or entry.get("caption")
        moments.append(
            Moment(
                id=moment_id(chunk.index, len(moments) + 1),
                start=start,
                end=end,
                category=MomentCategory.from_label(entry.get("category")),
                caption=caption.strip() if isinstance(caption, str) else None,
                source_chunk=chunk.index,
            )
        )

    return moments


class AnalysisCoordinator:
    """
    Submit chunks to the analysis service with key rotation and retries.

    Chunks are analyzed concurrently up to ``config.parallelism``. Chunks
    already done or failed are never resubmitted, so a resumed job only
    pays for the chunks it has not finished.
    """

    def __init__(
        self,
        client: AIClient,
        key_pool: KeyPool,
        config: Optional[AnalysisConfig] = None,
        bounds: Optional[MomentBounds] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.key_pool = key_pool
        self.config = config or AnalysisConfig()
        self.bounds = bounds or MomentBounds()
        self._sleep = sleep

    @property
    def max_attempts(self) -> int:
        """Attempts per chunk; always enough to try every key once."""
        return max(self.config.max_attempts_per_chunk, len(self.key_pool), 1)

    def analyze(
        self,
        chunks: list[Chunk],
        cancel_event: Optional[threading.Event] = None,
        on_chunk_done: Optional[Callable[[Chunk], None]] = None,
    ) -> list[Chunk]:
        """
        Analyze every unfinished chunk.

        Args:
            chunks: Chunks of one job, mutated in place
            cancel_event: When set, no further requests are started
            on_chunk_done: Called from the coordinating thread whenever a chunk
                reaches a terminal status

        Returns:
            The same chunk list

        Raises:
            AnalysisExhausted: If the pool holds no keys
        """
        pending = [c for c in chunks if not c.is_terminal]
        if not pending:
            return chunks
        if len(self.key_pool) == 0:
            raise AnalysisExhausted("no analysis API keys configured")

        workers = max(1, min(self.config.parallelism, len(pending)))
        logger.info("Analyzing %d chunk(s) with %d worker(s)", len(pending), workers)

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="analysis") as executor:
            futures = [submit_in_context(executor, self._run_chunk, chunk, cancel_event) for chunk in pending]
            for future in as_completed(futures):
                chunk = future.result()
                if chunk.is_terminal and on_chunk_done is not None:
                    on_chunk_done(chunk)

        return chunks

    def _run_chunk(self, chunk: Chunk, cancel_event: Optional[threading.Event]) -> Chunk:
        try:
            return self.analyze_chunk(chunk, cancel_event)
        except Exception as e:
            logger.exception("Chunk %d: unexpected analysis error", chunk.index)
            chunk.status = ChunkStatus.FAILED
            chunk.error = f"{type(e).__name__}: {e}"
            return chunk

    def analyze_chunk(self, chunk: Chunk, cancel_event: Optional[threading.Event] = None) -> Chunk:
        """Analyze one chunk until it is done, failed, or cancellation is requested."""
        if chunk.media_path is None:
            chunk.status = ChunkStatus.FAILED
            chunk.error = "chunk has no media file"
            return chunk

        prompt = self.client.format_moments_prompt(self.bounds.min_seconds, self.bounds.max_seconds)
        exhausted: set[str] = set()
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_attempts + 1):
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Chunk %d: cancelled before attempt %d", chunk.index, attempt)
                chunk.status = ChunkStatus.PENDING
                return chunk

            key = self.key_pool.acquire(exclude=exhausted)
            if key is None:
                break

            chunk.status = ChunkStatus.SUBMITTED
            chunk.attempts += 1
            logger.debug("Chunk %d: attempt %d with %s", chunk.index, attempt, key.name)

            try:
                response = self.client.analyze_media(
                    Path(chunk.media_path), prompt, key, timeout=self.config.timeout
                )
                payload = self.client.parse_json_response(response.content)
                if payload is None:
                    raise TransientAnalysisError("response is not JSON")
                chunk.moments = parse_moments(payload, chunk, self.bounds)

            except CredentialRejected as e:
                logger.warning("Chunk %d: key %s unusable: %s", chunk.index, key.name, e)
                exhausted.add(key.name)
                self.key_pool.rotate(key)
                last_error = e
                continue

            except TransientAnalysisError as e:
                logger.warning("Chunk %d: attempt %d failed: %s", chunk.index, attempt, e)
                last_error = e
                if attempt < self.max_attempts:
                    self._backoff(attempt, cancel_event)
                continue

            except AnalysisRequestError as e:
                logger.error("Chunk %d: request rejected: %s", chunk.index, e)
                chunk.status = ChunkStatus.FAILED
                chunk.error = f"AnalysisRequestError: {e}"
                return chunk

            chunk.status = ChunkStatus.DONE
            chunk.error = None
            logger.info("Chunk %d: %d moment(s)", chunk.index, len(chunk.moments))
            return chunk

        chunk.status = ChunkStatus.FAILED
        if len(exhausted) >= len(self.key_pool):
            chunk.error = f"{AnalysisExhausted.kind}: all {len(self.key_pool)} key(s) exhausted"
        else:
            chunk.error = f"{type(last_error).__name__}: {last_error}" if last_error else "no attempts made"
        logger.error("Chunk %d failed: %s", chunk.index, chunk.error)
        return chunk

    def _backoff(self, attempt: int, cancel_event: Optional[threading.Event]) -> None:
        delay = self.config.retry_backoff * attempt
        if delay <= 0:
            return
        if cancel_event is not None:
            cancel_event.wait(delay)
        else:
            self._sleep(delay)
