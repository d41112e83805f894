"""Classification of porcelain status codes into staging categories."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

# Codes git emits in either column of `git status --porcelain=v1`
KNOWN_CODES = frozenset(" MTADRCU?!")


class FileStatusCategory(str, Enum):
    """Where a changed file sits relative to the index."""

    UNTRACKED = "untracked"
    STAGED = "staged"
    UNSTAGED = "unstaged"
    PARTIALLY_STAGED = "partially-staged"


def file_extension(path: str) -> str:
    """Lower-cased extension with its dot, or "" (dotfiles have none)."""
    name = path.rstrip("/").rsplit("/", 1)[-1]
    if "." not in name.lstrip("."):
        return ""
    return "." + name.rsplit(".", 1)[-1].lower()


def _is_blank(code: Optional[str]) -> bool:
    return code is None or code == "" or code == " "


def classify(index_code: Optional[str], worktree_code: Optional[str]) -> FileStatusCategory:
    """Map a porcelain (X, Y) code pair to a FileStatusCategory.

    Rules, first match wins:
      - ``??`` is untracked.
      - index changed, worktree blank is staged.
      - index blank, worktree changed is unstaged.
      - both columns changed is partially-staged.

    A pair that matches none of the rules (both columns blank) or that
    carries a code git does not emit is classified as UNSTAGED and logged
    at debug level.
    """
    if index_code == "?" and worktree_code == "?":
        return FileStatusCategory.UNTRACKED

    unknown = [
        code for code in (index_code, worktree_code)
        if not _is_blank(code) and code not in KNOWN_CODES
    ]
    if unknown:
        logger.debug(
            f"Unrecognized status pair {index_code!r}{worktree_code!r}, treating as unstaged"
        )
        return FileStatusCategory.UNSTAGED

    index_blank = _is_blank(index_code)
    worktree_blank = _is_blank(worktree_code)

    if not index_blank and worktree_blank:
        return FileStatusCategory.STAGED
    if index_blank and not worktree_blank:
        return FileStatusCategory.UNSTAGED
    if not index_blank and not worktree_blank:
        return FileStatusCategory.PARTIALLY_STAGED

    logger.debug("Blank status pair, treating as unstaged")
    return FileStatusCategory.UNSTAGED


class StatusFileRecord(BaseModel):
    """One file record as sent by the backend status endpoint."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    to: str
    x: str = " "
    y: str = " "
    from_path: Optional[str] = Field(default=None, alias="from")


@dataclass(frozen=True)
class FileStatusEntry:
    """A file reported by a status refresh.

    Entries are replaced wholesale by the next refresh; they are never
    mutated.
    """

    path: str
    x: str
    y: str
    from_path: Optional[str] = None

    @property
    def category(self) -> FileStatusCategory:
        return classify(self.x, self.y)

    @property
    def status(self) -> FileStatusCategory:
        """Alias for category, matching the wire vocabulary."""
        return self.category

    @property
    def is_directory(self) -> bool:
        return self.path.endswith("/")

    @property
    def is_deleted(self) -> bool:
        """True when either the index or the worktree side is deleted."""
        return self.x == "D" or self.y == "D"

    @property
    def extension(self) -> str:
        return file_extension(self.path)

    @classmethod
    def from_wire(cls, record: dict[str, Any]) -> "FileStatusEntry":
        """Build an entry from a backend ``{to, x, y, from}`` record."""
        parsed = StatusFileRecord.model_validate(record)
        return cls(
            path=parsed.to,
            x=parsed.x or " ",
            y=parsed.y or " ",
            from_path=parsed.from_path,
        )


def parse_status_files(records: list[dict[str, Any]]) -> tuple[FileStatusEntry, ...]:
    """Parse the ``files`` array of a status response."""
    return tuple(FileStatusEntry.from_wire(record) for record in records)

