"""Moment collection, ordering and export."""

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Optional

from autoshorts_core.errors import InvalidMoment
from autoshorts_core.models.config import MomentBounds
from autoshorts_core.models.job import Chunk, ChunkStatus, Moment, MomentCategory
from autoshorts_core.utils.files import atomic_write_text
from autoshorts_core.utils.time import parse_timestamp


logger = logging.getLogger(__name__)

MOMENTS_JSON = "moments.json"
MOMENTS_TXT = "moments.txt"


def _sort_key(moment: Moment) -> tuple[float, int, str]:
    return moment.start, moment.source_chunk, moment.id


class MomentStore:
    """
    Holds the validated, ordered moments of one job.

    Moments are ordered by start time, ties broken by source chunk index.
    Ids are unique within the store.
    """

    def __init__(self, bounds: Optional[MomentBounds] = None, moments: Optional[Iterable[Moment]] = None):
        self.bounds = bounds or MomentBounds()
        self._moments: list[Moment] = []
        if moments is not None:
            self.replace(moments)

    @property
    def moments(self) -> list[Moment]:
        return list(self._moments)

    def __len__(self) -> int:
        return len(self._moments)

    def validate(self, moment: Moment) -> None:
        """
        Raises:
            InvalidMoment: If the moment is inverted or outside the duration bounds
        """
        if moment.end <= moment.start:
            raise InvalidMoment(f"moment {moment.id} ends at or before its start")
        if moment.start < 0:
            raise InvalidMoment(f"moment {moment.id} starts before the source")
        if not self.bounds.accepts(moment.start, moment.end):
            raise InvalidMoment(
                f"moment {moment.id} lasts {moment.duration:.1f}s, "
                f"outside {self.bounds.min_seconds:g}-{self.bounds.max_seconds:g}s"
            )

    def merge(self, chunks: Iterable[Chunk]) -> list[Moment]:
        """Collect moments from finished chunks in global order, dropping duplicate ids."""
        seen = set()
        merged = []
        for chunk in chunks:
            if chunk.status != ChunkStatus.DONE:
                continue
            for moment in chunk.moments:
                if moment.id in seen:
                    logger.debug("Dropping duplicate moment %s", moment.id)
                    continue
                seen.add(moment.id)
                merged.append(moment)

        self._moments = sorted(merged, key=_sort_key)
        return self.moments

    def replace(self, moments: Iterable[Moment]) -> list[Moment]:
        """
        Replace the collection with an edited list.

        Raises:
            InvalidMoment: If any moment is invalid or an id repeats
        """
        seen = set()
        accepted = []
        for moment in moments:
            self.validate(moment)
            if moment.id in seen:
                raise InvalidMoment(f"duplicate moment id {moment.id}")
            seen.add(moment.id)
            accepted.append(moment)

        self._moments = sorted(accepted, key=_sort_key)
        return self.moments

    def remove(self, ids: Iterable[str]) -> list[Moment]:
        drop = set(ids)
        unknown = drop - {m.id for m in self._moments}
        if unknown:
            raise InvalidMoment(f"unknown moment id(s): {', '.join(sorted(unknown))}")
        self._moments = [m for m in self._moments if m.id not in drop]
        return self.moments

    def export(self, directory: Path) -> tuple[Path, Path]:
        """
        Write ``moments.json`` and a human-readable ``moments.txt``.

        Returns:
            Paths of the JSON and text files
        """
        directory = Path(directory)
        json_path = directory / MOMENTS_JSON
        txt_path = directory / MOMENTS_TXT

        payload = [m.to_dict() for m in self._moments]
        atomic_write_text(json_path, json.dumps(payload, indent=2, ensure_ascii=False) + "\n")
        atomic_write_text(txt_path, self.to_text())

        logger.info("Exported %d moments to %s", len(self._moments), json_path)
        return json_path, txt_path

    def to_text(self) -> str:
        lines = ["=== Shorts Moments ===", ""]
        for i, m in enumerate(self._moments, 1):
            lines.append(f"{i}. [{m.start_formatted} - {m.end_formatted}] ({m.category.value}) #{m.id}")
            lines.append(f"   {m.caption or ''}".rstrip())
            lines.append("")
        return "\n".join(lines) + "\n"

    @staticmethod
    def load(path: Path) -> list[Moment]:
        """
        Read an edited ``moments.json``.

        Entries may omit ``id`` (new moments get ``edit-NNN``), ``category``
        (defaults to Other) and ``source_chunk``. Times may be seconds or
        timestamps.

        Raises:
            InvalidMoment: If the file cannot be read or an entry is malformed
        """
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise InvalidMoment(f"cannot read {path}: {e.strerror or e}") from e
        except json.JSONDecodeError as e:
            raise InvalidMoment(f"{path.name}: invalid JSON at line {e.lineno}: {e.msg}") from e

        if isinstance(data, dict):
            data = data.get("moments")
        if not isinstance(data, list):
            raise InvalidMoment(f"{path.name}: expected a list of moments")

        moments = []
        for n, entry in enumerate(data, 1):
            moments.append(_moment_from_edit(entry, n))
        return moments


def _moment_from_edit(entry: Any, n: int) -> Moment:
    if not isinstance(entry, dict):
        raise InvalidMoment(f"entry {n} is not an object")
    try:
        start = parse_timestamp(entry["start"])
        end = parse_timestamp(entry["end"])
    except KeyError as e:
        raise InvalidMoment(f"entry {n} is missing {e.args[0]!r}") from None
    except ValueError as e:
        raise InvalidMoment(f"entry {n}: {e}") from None

    try:
        source_chunk = int(entry.get("source_chunk", 0))
    except (TypeError, ValueError):
        raise InvalidMoment(f"entry {n}: source_chunk must be an integer") from None

    return Moment(
        id=str(entry.get("id") or f"edit-{n:03d}"),
        start=start,
        end=end,
        category=MomentCategory.from_label(entry.get("category")),
        caption=entry.get("caption"),
        source_chunk=source_chunk,
    )
