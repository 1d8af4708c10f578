"""Write parsed beatmaps to Parquet files and JSON metadata."""

import json
import logging
from pathlib import Path

import pyarrow as pa
import pyarrow.parquet as pq

from osu_timeline.schemas.beatmap import (
    Beatmap,
    Hit,
    HitType,
    HoldNote,
    Slider,
    Spinner,
    end_point,
    hit_end_time,
)

logger = logging.getLogger(__name__)

# Maximum Parquet file size in bytes before starting a new file.
MAX_FILE_BYTES: int = 1_000_000_000  # 1 GB

# Points per exported slider polyline.
CURVE_SAMPLES: int = 32

# --- Arrow schemas -----------------------------------------------------------

HITS_SCHEMA = pa.schema(
    [
        pa.field("beatmap_hash", pa.string()),
        pa.field("version", pa.string()),
        pa.field("kind", pa.string()),
        pa.field("time", pa.float64()),
        pa.field("end_time", pa.float64()),
        pa.field("x", pa.float32()),
        pa.field("y", pa.float32()),
        pa.field("end_x", pa.float32()),
        pa.field("end_y", pa.float32()),
        pa.field("new_combo", pa.bool_()),
        pa.field("combo", pa.int32()),
        pa.field("combo_seq", pa.int32()),
        pa.field("color", pa.int16()),
        pa.field("sample_set", pa.int8()),
        pa.field("additions", pa.int16()),
        pa.field("repeat", pa.int16()),
        pa.field("pixel_length", pa.float32()),
        pa.field("duration", pa.float32()),
        pa.field("curve_x", pa.list_(pa.float32())),
        pa.field("curve_y", pa.list_(pa.float32())),
    ]
)

TIMING_SCHEMA = pa.schema(
    [
        pa.field("beatmap_hash", pa.string()),
        pa.field("offset", pa.float64()),
        pa.field("beat_duration", pa.float64()),
        pa.field("bpm", pa.float32()),
        pa.field("meter", pa.int16()),
        pa.field("sample_set", pa.int8()),
        pa.field("volume", pa.float32()),
        pa.field("kiai", pa.bool_()),
        pa.field("inherited", pa.bool_()),
    ]
)


def hit_kind(hit: Hit) -> str:
    if isinstance(hit.payload, Slider):
        return "slider"
    if isinstance(hit.payload, Spinner):
        return "spinner"
    if isinstance(hit.payload, HoldNote):
        return "hold"
    return "circle"


# --- Public API --------------------------------------------------------------


def _write_tables_chunked(
    tables_by_hash: dict[str, pa.Table],
    output_dir: Path,
    prefix: str,
    schema: pa.Schema,
    max_file_bytes: int = MAX_FILE_BYTES,
) -> list[Path]:
    """Write one row group per beatmap, starting a new file past *max_file_bytes*.

    Returns the list of written file paths.
    """
    written: list[Path] = []
    file_idx = 0
    writer: pq.ParquetWriter | None = None
    current_path: Path | None = None

    def _open_writer() -> tuple[pq.ParquetWriter, Path]:
        nonlocal file_idx
        p = output_dir / f"{prefix}_{file_idx:04d}.parquet"
        w = pq.ParquetWriter(p, schema, compression="snappy")
        file_idx += 1
        return w, p

    for _hash, table in sorted(tables_by_hash.items()):
        if table.num_rows == 0:
            continue
        if writer is None:
            writer, current_path = _open_writer()

        writer.write_table(table)

        assert current_path is not None
        current_size = current_path.stat().st_size
        if current_size >= max_file_bytes:
            writer.close()
            written.append(current_path)
            logger.debug("Closed %s (%d bytes)", current_path.name, current_size)
            writer = None

    if writer is not None:
        writer.close()
        assert current_path is not None
        written.append(current_path)

    return written


def _hit_columns(beatmap_hash: str, beatmap: Beatmap) -> dict[str, list]:
    cols: dict[str, list] = {k: [] for k in HITS_SCHEMA.names}
    version = beatmap.metadata.version or ""
    for hit in beatmap.hits:
        end = end_point(hit)
        cols["beatmap_hash"].append(beatmap_hash)
        cols["version"].append(version)
        cols["kind"].append(hit_kind(hit))
        cols["time"].append(hit.time)
        cols["end_time"].append(hit_end_time(hit))
        cols["x"].append(hit.position.x)
        cols["y"].append(hit.position.y)
        cols["end_x"].append(end.x)
        cols["end_y"].append(end.y)
        cols["new_combo"].append(bool(hit.type & HitType.NEW_COMBO))
        cols["combo"].append(hit.combo)
        cols["combo_seq"].append(hit.combo_seq)
        cols["color"].append(hit.color)
        cols["sample_set"].append(int(hit.sound.sample_set))
        cols["additions"].append(int(hit.sound.additions))
        if isinstance(hit.payload, Slider):
            slider = hit.payload
            curve = slider.curve.sample(CURVE_SAMPLES)
            cols["repeat"].append(slider.repeat)
            cols["pixel_length"].append(slider.length)
            cols["duration"].append(slider.duration)
            cols["curve_x"].append(curve[:, 0].tolist())
            cols["curve_y"].append(curve[:, 1].tolist())
        else:
            cols["repeat"].append(0)
            cols["pixel_length"].append(0.0)
            cols["duration"].append(hit_end_time(hit) - hit.time)
            cols["curve_x"].append([])
            cols["curve_y"].append([])
    return cols


def _timing_columns(beatmap_hash: str, beatmap: Beatmap) -> dict[str, list]:
    cols: dict[str, list] = {k: [] for k in TIMING_SCHEMA.names}
    for tp in beatmap.timing_points:
        cols["beatmap_hash"].append(beatmap_hash)
        cols["offset"].append(tp.offset)
        cols["beat_duration"].append(tp.beat_duration)
        cols["bpm"].append(tp.bpm)
        cols["meter"].append(tp.meter)
        cols["sample_set"].append(int(tp.sample_set))
        cols["volume"].append(tp.volume)
        cols["kiai"].append(tp.kiai)
        cols["inherited"].append(tp.inherited)
    return cols


def _metadata_record(beatmap_hash: str, beatmap: Beatmap) -> dict:
    meta = beatmap.metadata
    diff = beatmap.difficulty
    return {
        "hash": beatmap_hash,
        "path": beatmap.source,
        "format_version": beatmap.version,
        "mode": beatmap.mode.name.lower(),
        "title": meta.title,
        "artist": meta.artist,
        "creator": meta.creator,
        "version": meta.version,
        "beatmap_id": meta.beatmap_id,
        "beatmap_set_id": meta.beatmap_set_id,
        "audio_filename": beatmap.audio_filename,
        "background_filename": beatmap.background_filename,
        "circle_radius": diff.circle_radius,
        "overall_difficulty": diff.overall_difficulty,
        "approach_time": diff.approach_time,
        "slider_multiplier": diff.slider_multiplier,
        "hit_count": len(beatmap.hits),
        "timing_point_count": len(beatmap.timing_points),
        "breaks": [[b.start, b.end] for b in beatmap.breaks],
    }


def write_parquet(
    beatmaps: dict[str, Beatmap],
    output_dir: Path,
    max_file_bytes: int = MAX_FILE_BYTES,
) -> None:
    """Write parsed beatmaps to Parquet files and JSON metadata.

    Each beatmap gets its own row group so that readers can push down
    predicates and skip irrelevant data.  When a Parquet file exceeds
    *max_file_bytes* (default 1 GB), a new numbered file is started.

    Produces inside *output_dir*:
      - hits_NNNN.parquet  (one or more)
      - timing_NNNN.parquet  (one or more)
      - metadata.json

    Parameters
    ----------
    beatmaps:
        Fully loaded beatmaps, keyed by the MD5 of their .osu file.
    output_dir:
        Directory to write output files into. Created if it doesn't exist.
    max_file_bytes:
        Maximum size in bytes per Parquet file before splitting.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    hits_tables = {
        h: pa.table(_hit_columns(h, bm), schema=HITS_SCHEMA)
        for h, bm in beatmaps.items()
    }
    timing_tables = {
        h: pa.table(_timing_columns(h, bm), schema=TIMING_SCHEMA)
        for h, bm in beatmaps.items()
    }

    hits_files = _write_tables_chunked(
        hits_tables, output_dir, "hits", HITS_SCHEMA, max_file_bytes,
    )
    timing_files = _write_tables_chunked(
        timing_tables, output_dir, "timing", TIMING_SCHEMA, max_file_bytes,
    )

    logger.info(
        "Wrote %d hits files, %d timing files to %s",
        len(hits_files), len(timing_files), output_dir,
    )

    metadata_list = [_metadata_record(h, bm) for h, bm in sorted(beatmaps.items())]
    with open(output_dir / "metadata.json", "w", encoding="utf-8") as f:
        json.dump(metadata_list, f, indent=2)


def _read_chunked(path: Path, prefix: str) -> pa.Table:
    path = Path(path)
    if path.is_dir():
        files = sorted(path.glob(f"{prefix}_*.parquet"))
        if not files:
            raise FileNotFoundError(f"No {prefix} Parquet files in {path}")
        return pa.concat_tables([pq.read_table(f) for f in files])
    return pq.read_table(path)


def read_hits_parquet(path: Path) -> pa.Table:
    """Read hits Parquet file(s) and return a single Arrow table.

    Accepts either a single ``.parquet`` file or a directory containing
    ``hits_*.parquet`` files.
    """
    return _read_chunked(path, "hits")


def read_timing_parquet(path: Path) -> pa.Table:
    """Same as :func:`read_hits_parquet`, for timing points."""
    return _read_chunked(path, "timing")
