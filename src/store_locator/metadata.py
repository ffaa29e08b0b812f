"""Metadata handling for pipeline stages.

Each stage run records what it did (status, row counts per bucket) as a JSON
file in a ``_meta/`` subdirectory next to its output, so a curator can see
when a stage last ran and what it produced without re-reading the output.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path


@dataclass
class StageMetadata:
    """Metadata for a stage run.

    Attributes:
        stage: Stage name (e.g., "pivot", "reconcile").
        last_run: ISO timestamp of when the stage was run.
        status: Status of the stage run: "ok" or "failed".
        counts: Row counts per classification bucket.
        inputs: Input file paths read by the stage.

    """

    stage: str
    last_run: str  # ISO timestamp
    status: str  # "ok" | "failed"
    counts: dict[str, int] = field(default_factory=dict)
    inputs: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert metadata to dictionary for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> StageMetadata:
        """Create metadata from dictionary."""
        return cls(**data)

    @classmethod
    def now(
        cls,
        stage: str,
        status: str,
        counts: dict[str, int] | None = None,
        inputs: list[Path | str] | None = None,
    ) -> StageMetadata:
        return cls(
            stage=stage,
            last_run=datetime.now().isoformat(timespec="seconds"),
            status=status,
            counts=dict(counts or {}),
            inputs=[str(p) for p in inputs or []],
        )


def metadata_path(stage_dir: Path, stage: str) -> Path:
    """Compute the metadata file path for a stage.

    Args:
        stage_dir: Directory the stage writes into.
        stage: Stage name.

    Returns:
        Path to the metadata JSON file.

    """
    return stage_dir / "_meta" / f"{stage}.json"


def write_metadata(stage_dir: Path, metadata: StageMetadata) -> Path:
    """Write metadata JSON to the _meta/ subdirectory.

    Args:
        stage_dir: Directory the stage writes into.
        metadata: Metadata to write.

    Returns:
        Path of the written file.

    """
    meta_path = metadata_path(stage_dir, metadata.stage)
    meta_path.parent.mkdir(parents=True, exist_ok=True)

    with open(meta_path, "w", encoding="utf-8") as f:
        json.dump(metadata.to_dict(), f, indent=2, ensure_ascii=False)
    return meta_path


def read_metadata(stage_dir: Path, stage: str) -> StageMetadata | None:
    """Read metadata JSON if it exists.

    Returns:
        StageMetadata if the file exists and parses, None otherwise.

    """
    meta_path = metadata_path(stage_dir, stage)
    if not meta_path.is_file():
        return None

    try:
        return StageMetadata.from_dict(json.loads(meta_path.read_text(encoding="utf-8")))
    except (json.JSONDecodeError, KeyError, TypeError):
        # unreadable or from an older layout: same as never run
        return None
