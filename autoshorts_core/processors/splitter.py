"""Cut the analysis copy of the source into chunk files."""

import logging
from pathlib import Path

from autoshorts_core.models.job import Chunk
from autoshorts_core.utils.video import split_segment


logger = logging.getLogger(__name__)


class ChunkSplitter:
    """Stream-copy one file per chunk with ffmpeg."""

    def __init__(self, timeout: int = 600):
        self.timeout = timeout

    def split(self, source: Path, chunk: Chunk, out_dir: Path) -> Path:
        """
        Write ``chunk_<index>.mp4`` for ``chunk``; an existing file is reused.

        Raises:
            SourceUnavailable: If ffmpeg fails or times out
        """
        out_dir.mkdir(parents=True, exist_ok=True)
        output_path = out_dir / f"chunk_{chunk.index:03d}.mp4"
        if output_path.exists() and output_path.stat().st_size > 0:
            return output_path

        logger.info("Splitting chunk %d [%.0fs - %.0fs]", chunk.index, chunk.start, chunk.end)
        return split_segment(source, output_path, chunk.start, chunk.duration, timeout=self.timeout)
