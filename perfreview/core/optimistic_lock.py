from __future__ import annotations

from fastapi import HTTPException, Response, status
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from perfreview.core.errors import ConflictError


def parse_if_match(if_match: str | None) -> int | None:
    """
    Supports:
      If-Match: 3
      If-Match: "3"
    A missing header means the caller opted out of the version check.
    """
    if if_match is None:
        return None

    raw = if_match.strip()
    if raw.startswith('"') and raw.endswith('"') and len(raw) >= 2:
        raw = raw[1:-1]

    try:
        v = int(raw)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid If-Match header (expected integer version)",
        )

    if v <= 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid If-Match header (version must be positive)",
        )
    return v


def assert_version_matches(*, current_version: int, expected_version: int | None) -> None:
    if expected_version is not None and current_version != expected_version:
        raise ConflictError(
            "Stale version",
            details={"expected": current_version, "got": expected_version},
        )


def flush_or_conflict(db: Session) -> None:
    """Flush pending changes; a lost compare-and-swap on a versioned row becomes a conflict."""
    try:
        db.flush()
    except StaleDataError:
        raise ConflictError("Review was modified concurrently, reload and retry")


def set_etag(response: Response, version: int) -> None:
    # Quote it to behave like a real ETag
    response.headers["ETag"] = f'"{version}"'
