"""Diff context resolution and open diff view bookkeeping."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Generic, Iterable, Optional, TypeVar

from gitpanel.config.settings import DEFAULT_SUPPORTED_EXTENSIONS
from gitpanel.errors import FileDeletedError, UnsupportedDiffTargetError
from gitpanel.git.status import FileStatusCategory, FileStatusEntry, file_extension

logger = logging.getLogger(__name__)

H = TypeVar("H")


class SpecialRef(str, Enum):
    """Revisions that are not commits."""

    INDEX = "INDEX"
    WORKING = "WORKING"
    HEAD = "HEAD"


@dataclass(frozen=True)
class RevisionRef:
    """Either a special revision or a git ref (SHA or symbolic name).

    Exactly one of ``special_ref`` and ``git_ref`` is set.
    """

    special_ref: Optional[SpecialRef] = None
    git_ref: Optional[str] = None

    def __post_init__(self) -> None:
        if (self.special_ref is None) == (self.git_ref is None):
            raise ValueError("RevisionRef needs exactly one of special_ref or git_ref")

    @classmethod
    def special(cls, ref: SpecialRef | str) -> "RevisionRef":
        return cls(special_ref=SpecialRef(ref))

    @classmethod
    def git(cls, ref: str) -> "RevisionRef":
        return cls(git_ref=ref)

    @property
    def value(self) -> str:
        """The ref as a single string, e.g. ``WORKING`` or ``a1b2c3d``."""
        if self.special_ref is not None:
            return self.special_ref.value
        return self.git_ref  # type: ignore[return-value]

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class DiffContext:
    """The two revisions of a file to compare."""

    file_path: str
    previous_ref: RevisionRef
    current_ref: RevisionRef

    @property
    def identity_key(self) -> str:
        """Key shared by every request for the same file and target revision."""
        return f"diff-{self.file_path}-{self.current_ref.value}"


def _is_staged(status: Optional[FileStatusCategory | str]) -> bool:
    if status is None:
        return False
    try:
        return FileStatusCategory(status) == FileStatusCategory.STAGED
    except ValueError:
        logger.debug(f"Unknown status category {status!r}, comparing the working tree")
        return False


def default_diff_context(file_path: str, status: Optional[FileStatusCategory | str] = None) -> DiffContext:
    """Staged files compare INDEX to HEAD, everything else WORKING to HEAD.

    Unknown status strings are treated as not staged.
    """
    staged = _is_staged(status)
    current = SpecialRef.INDEX if staged else SpecialRef.WORKING
    return DiffContext(
        file_path=file_path,
        previous_ref=RevisionRef.git("HEAD"),
        current_ref=RevisionRef.special(current),
    )


class DiffContextResolver:
    """Decides what to compare for a file and whether it can be diffed."""

    def __init__(self, supported_extensions: Optional[Iterable[str]] = None):
        extensions = DEFAULT_SUPPORTED_EXTENSIONS if supported_extensions is None else supported_extensions
        self.supported_extensions = frozenset(ext.lower() for ext in extensions)

    def is_supported(self, file_path: str, is_text: bool = False) -> bool:
        return is_text or file_extension(file_path) in self.supported_extensions

    def resolve(
        self,
        file_path: str,
        context: Optional[DiffContext] = None,
        status: Optional[FileStatusCategory | str] = None,
        is_text: bool = False,
    ) -> DiffContext:
        """Resolve the diff context for ``file_path``.

        An explicit context keeps its revisions untouched; otherwise the
        default pair for ``status`` is used.

        Raises:
            UnsupportedDiffTargetError: If the file is neither a supported
                type nor known to be text.
        """
        if not self.is_supported(file_path, is_text):
            raise UnsupportedDiffTargetError(file_path, file_extension(file_path))

        if context is not None:
            if context.file_path != file_path:
                context = replace(context, file_path=file_path)
            return context
        return default_diff_context(file_path, status)

    def resolve_entry(
        self,
        entry: FileStatusEntry,
        context: Optional[DiffContext] = None,
        is_text: bool = False,
    ) -> DiffContext:
        """Resolve the context for a status entry, refusing deleted files.

        Raises:
            FileDeletedError: If either side of the entry is deleted.
            UnsupportedDiffTargetError: See ``resolve``.
        """
        if entry.is_deleted:
            raise FileDeletedError(entry.path)
        return self.resolve(entry.path, context, entry.category, is_text)


_default_resolver = DiffContextResolver()


def resolve_diff_context(
    file_path: str,
    context: Optional[DiffContext] = None,
    status: Optional[FileStatusCategory | str] = None,
    is_text: bool = False,
) -> DiffContext:
    """Resolve with the default set of supported extensions."""
    return _default_resolver.resolve(file_path, context, status, is_text)


class DiffViewRegistry(Generic[H]):
    """Map from diff identity key to the open view showing it.

    At most one view exists per key: ``open`` focuses the existing view
    instead of creating a second one.

    Args:
        create_view: Host callback building a view for a context.
        activate_view: Host callback bringing a view to focus.
    """

    def __init__(
        self,
        create_view: Callable[[DiffContext], H],
        activate_view: Callable[[H], None],
    ):
        self._create_view = create_view
        self._activate_view = activate_view
        self._views: dict[str, H] = {}

    def __contains__(self, key: object) -> bool:
        return key in self._views

    def __len__(self) -> int:
        return len(self._views)

    def keys(self) -> list[str]:
        return list(self._views)

    def get(self, key: str) -> Optional[H]:
        return self._views.get(key)

    def open(self, context: DiffContext) -> tuple[H, bool]:
        """Open or focus the view for ``context``.

        Returns:
            The view and whether it was newly created.
        """
        key = context.identity_key
        view = self._views.get(key)
        if view is not None:
            logger.debug(f"Focusing existing diff view {key}")
            self._activate_view(view)
            return view, False

        view = self._create_view(context)
        self._views[key] = view
        self._activate_view(view)
        logger.debug(f"Opened diff view {key}")
        return view, True

    def close(self, key: str) -> bool:
        """Forget a view the host closed."""
        return self._views.pop(key, None) is not None

    def clear(self) -> None:
        self._views.clear()
