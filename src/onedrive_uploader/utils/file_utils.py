"""File utility functions."""

import os
import re
import stat
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Tuple, Union

PathLike = Union[str, Path]


def _read_class_char(pattern: str, i: int) -> Tuple[Optional[str], int]:
    """Read one (possibly backslash-escaped) character of a character class."""
    if pattern[i] == '\\':
        if i + 1 >= len(pattern):
            return None, i + 1
        return pattern[i + 1], i + 2
    return pattern[i], i + 1


def glob_to_regex(pattern: str) -> Optional[str]:
    """Translate a glob pattern into an equivalent regular expression.

    Supports ``*``, ``?``, backslash escapes and character classes with
    ranges, negated by a leading ``^`` or ``!``. A ``]`` directly after the
    opening bracket is a literal member.

    Returns:
        The regular expression, or None if the pattern is malformed
    """
    out = []
    i, n = 0, len(pattern)
    while i < n:
        c = pattern[i]
        i += 1
        if c == '*':
            out.append('.*')
        elif c == '?':
            out.append('.')
        elif c == '\\':
            if i >= n:
                return None
            out.append(re.escape(pattern[i]))
            i += 1
        elif c == '[':
            negate = i < n and pattern[i] in '^!'
            if negate:
                i += 1
            members = []
            while True:
                if i >= n:
                    return None
                if pattern[i] == ']' and members:
                    i += 1
                    break
                lo, i = _read_class_char(pattern, i)
                if lo is None:
                    return None
                if i + 1 < n and pattern[i] == '-' and pattern[i + 1] != ']':
                    hi, i = _read_class_char(pattern, i + 1)
                    if hi is None or hi < lo:
                        return None
                    members.append(f"{re.escape(lo)}-{re.escape(hi)}")
                else:
                    members.append(re.escape(lo))
            out.append(f"[{'^' if negate else ''}{''.join(members)}]")
        else:
            out.append(re.escape(c))
    return ''.join(out)


@lru_cache(maxsize=256)
def _compile_pattern(pattern: str) -> Optional["re.Pattern[str]"]:
    regex = glob_to_regex(pattern)
    return re.compile(regex, re.DOTALL) if regex is not None else None


class FileHelper:
    """Helper class for file discovery and filtering."""

    @staticmethod
    def is_malformed_pattern(pattern: str) -> bool:
        """Check whether a glob pattern cannot be parsed.

        Unterminated character classes, reversed ranges and a trailing
        backslash are malformed.

        Args:
            pattern: Glob pattern

        Returns:
            True if the pattern cannot be parsed
        """
        return _compile_pattern(pattern) is None

    @staticmethod
    def matches_pattern(file_name: str, pattern: str) -> bool:
        """Match a base name against one glob pattern; malformed never matches."""
        compiled = _compile_pattern(pattern)
        return compiled is not None and compiled.fullmatch(file_name) is not None

    @staticmethod
    def is_excluded(file_path: PathLike, patterns: Iterable[str]) -> bool:
        """Check if a file's base name matches any exclusion pattern.

        Args:
            file_path: Path of the file (only its base name is matched)
            patterns: Glob patterns

        Returns:
            True if the file should be skipped
        """
        file_name = os.path.basename(os.fspath(file_path))
        return any(FileHelper.matches_pattern(file_name, pattern) for pattern in patterns)

    @staticmethod
    def walk_files(root: PathLike,
                   on_error: Optional[Callable[[OSError], None]] = None) -> Iterator[str]:
        """Yield every file below a directory, in sorted walk order.

        Args:
            root: Directory to walk
            on_error: Called with the error for each unreadable directory

        Yields:
            Absolute file paths
        """
        for dirpath, dirnames, filenames in os.walk(os.path.abspath(root), onerror=on_error):
            dirnames.sort()
            for name in sorted(filenames):
                yield os.path.join(dirpath, name)

    @staticmethod
    def discover_files(paths: Iterable[PathLike], excludes: Iterable[str] = (),
                       on_error: Optional[Callable[[str, OSError], None]] = None) -> List[str]:
        """Expand configured backup paths into the list of files to consider.

        Directories are walked recursively, files are taken as-is, and any
        file whose base name matches an exclusion pattern is dropped. Only
        regular files are returned. A path that cannot be accessed, or is not
        a regular file (FIFO, socket, device), is reported through
        ``on_error`` and skipped.

        Args:
            paths: Configured files and directories
            excludes: Glob patterns matched against base names
            on_error: Called with (path, error) for each skipped path

        Returns:
            Absolute file paths in discovery order
        """
        excludes = list(excludes)
        files: List[str] = []

        def report(path: str, error: OSError):
            if on_error is not None:
                on_error(path, error)

        def is_regular(file_path: str) -> bool:
            try:
                file_mode = os.stat(file_path).st_mode
            except OSError as e:
                report(file_path, e)
                return False
            if not stat.S_ISREG(file_mode):
                report(file_path, OSError("not a regular file"))
                return False
            return True

        for path in paths:
            path = os.fspath(path)
            try:
                mode = os.stat(path).st_mode
            except OSError as e:
                report(path, e)
                continue

            if stat.S_ISDIR(mode):
                walked = FileHelper.walk_files(
                    path, on_error=lambda e, base=path: report(e.filename or base, e)
                )
                files.extend(f for f in walked
                             if not FileHelper.is_excluded(f, excludes) and is_regular(f))
            elif FileHelper.is_excluded(path, excludes):
                continue
            elif stat.S_ISREG(mode):
                files.append(os.path.abspath(path))
            else:
                report(path, OSError("not a regular file"))

        return files

    @staticmethod
    def get_modified_time(file_path: PathLike) -> datetime:
        """Return a file's modification time as an aware UTC datetime.

        Raises:
            OSError: If the file cannot be stat'ed
        """
        st = os.stat(file_path)
        return datetime.fromtimestamp(st.st_mtime, tz=timezone.utc)

    @staticmethod
    def format_file_size(size_bytes: int) -> str:
        """Format file size in human readable format.

        Args:
            size_bytes: Size in bytes

        Returns:
            Formatted size string
        """
        if size_bytes == 0:
            return "0 B"

        size_names = ["B", "KB", "MB", "GB", "TB", "PB"]
        i = 0

        while size_bytes >= 1024 and i < len(size_names) - 1:
            size_bytes /= 1024.0
            i += 1

        return f"{size_bytes:.1f} {size_names[i]}"
