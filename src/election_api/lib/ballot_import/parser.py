"""Ballot CSV parser with delimiter/encoding detection and chunked reading.

Reads legacy or migrated ballot files (one row per ballot) for the bulk
import path.  Rows from this path bypass the vote admission guard; the
null/void detector is what audits them.
"""

from collections.abc import Iterator
from pathlib import Path

import pandas as pd
from loguru import logger

# Accepted header → field name
BALLOT_COLUMN_MAP: dict[str, str] = {
    "voter_id": "voter_id",
    "voterid": "voter_id",
    "position_id": "position_id",
    "positionid": "position_id",
    "candidate_id": "candidate_id",
    "candidateid": "candidate_id",
    "cast_at": "cast_at",
    "timestamp": "cast_at",
}

REQUIRED_COLUMNS = ("voter_id", "position_id", "candidate_id")

# Legacy exports mark a spoiled ballot with candidate id 0 or leave it blank.
SPOILED_MARKERS = frozenset({"", "0", "none", "spoiled"})


def detect_delimiter(file_path: Path) -> str:
    """Detect the CSV delimiter from the header line.

    Raises:
        ValueError: If no supported delimiter is present.
    """
    with file_path.open("r", encoding=detect_encoding(file_path)) as f:
        first_line = f.readline()

    counts = {
        ",": first_line.count(","),
        "|": first_line.count("|"),
        "\t": first_line.count("\t"),
    }
    delimiter = max(counts, key=counts.get)  # type: ignore[arg-type]
    if counts[delimiter] == 0:
        msg = f"Cannot detect delimiter in {file_path}"
        raise ValueError(msg)
    return delimiter


def detect_encoding(file_path: Path) -> str:
    """Detect file encoding by attempting to read with common encodings.

    Raises:
        ValueError: If encoding cannot be detected.
    """
    for encoding in ("utf-8", "latin-1"):
        try:
            with file_path.open("r", encoding=encoding) as f:
                f.read(8192)
            return encoding
        except UnicodeDecodeError:
            continue
    msg = f"Cannot detect encoding for {file_path}"
    raise ValueError(msg)


def normalize_candidate_id(value: object) -> str | None:
    """Map a raw candidate cell to a candidate id, or None for the spoiled marker."""
    if value is None:
        return None
    text = str(value).strip()
    if text.lower() in SPOILED_MARKERS:
        return None
    return text


def parse_ballot_chunks(file_path: Path, batch_size: int = 1000) -> Iterator[pd.DataFrame]:
    """Parse a ballot CSV in chunks.

    Args:
        file_path: Path to the CSV file.
        batch_size: Number of rows per chunk.

    Yields:
        DataFrames with columns ``voter_id``, ``position_id``, ``candidate_id``
        (None when spoiled) and ``cast_at`` (None when absent).

    Raises:
        ValueError: If a required column is missing.
    """
    delimiter = detect_delimiter(file_path)
    encoding = detect_encoding(file_path)
    logger.info(f"Parsing {file_path} with delimiter={delimiter!r}, encoding={encoding}, batch_size={batch_size}")

    reader = pd.read_csv(
        file_path,
        sep=delimiter,
        encoding=encoding,
        chunksize=batch_size,
        dtype=str,
        keep_default_na=False,
    )

    rename_map: dict[str, str] | None = None
    for chunk in reader:
        chunk.columns = chunk.columns.str.strip()

        if rename_map is None:
            rename_map = {}
            for csv_col in chunk.columns:
                field = BALLOT_COLUMN_MAP.get(csv_col.lower().replace(" ", "_"))
                if field is not None:
                    rename_map[csv_col] = field
                else:
                    logger.debug(f"Ignoring unknown CSV column: {csv_col!r}")
            missing = [c for c in REQUIRED_COLUMNS if c not in rename_map.values()]
            if missing:
                msg = f"Ballot file {file_path} is missing required column(s): {', '.join(missing)}"
                raise ValueError(msg)

        chunk = chunk.rename(columns=rename_map)
        if "cast_at" not in chunk.columns:
            chunk["cast_at"] = ""
        chunk = chunk[["voter_id", "position_id", "candidate_id", "cast_at"]].copy()
        for column in ("voter_id", "position_id", "cast_at"):
            chunk[column] = chunk[column].map(_blank_to_none)
        chunk["candidate_id"] = chunk["candidate_id"].map(normalize_candidate_id)

        yield chunk


def _blank_to_none(value: object) -> str | None:
    text = str(value).strip() if value is not None else ""
    return text or None
