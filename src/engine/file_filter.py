"""
File discovery and path exclusion for the autolint engine.

This module decides which files are inspected and whether a rule's
``Excluded`` patterns apply to a source:

- Globs select files (``**/*.rb``); a ``!`` prefix excludes (``!lib``)
- Vendor/generated directories are always skipped
- Exclusion patterns match the path, its relative form, or any parent dir

Usage:
    from engine.file_filter import find_files_by_globs, path_matches

    files = find_files_by_globs(["**/*.rb", "!lib"])
    if path_matches(source.path, rule.config.excluded):
        ...  # skip this rule for this source
"""

import fnmatch
import glob
import os
import re
from typing import FrozenSet, Iterable, List, Optional, Sequence


# ============================================================================
# VENDOR / GENERATED DIRECTORY EXCLUSIONS
# ============================================================================
EXCLUDED_DIRS: FrozenSet[str] = frozenset([
    # Dependencies
    "vendor",
    "node_modules",
    ".bundle",

    # Build output
    "tmp",
    ".crystal",

    # Version control
    ".git",
    ".svn",
    ".hg",
])

_EXCLUDED_DIR_PATTERN = re.compile(
    r'(?:^|[/\\])(?:' + '|'.join(re.escape(d) for d in EXCLUDED_DIRS) + r')(?:[/\\]|$)'
)


def is_excluded_path(file_path: str) -> bool:
    """Check whether a path lies in a vendor/generated directory."""
    return bool(_EXCLUDED_DIR_PATTERN.search(file_path))


def _candidates(path: str, root: Optional[str]) -> List[str]:
    """Forms of ``path`` a pattern may be written against."""
    root = root or os.getcwd()
    forms = [path]
    absolute = os.path.abspath(os.path.join(root, path))
    forms.append(absolute)
    try:
        relative = os.path.relpath(absolute, root)
    except ValueError:
        # Different drive on Windows
        relative = path
    forms.append(relative)
    return [f.replace(os.sep, "/") for f in forms]


def path_matches(path: Optional[str], patterns: Optional[Iterable[str]],
                 root: Optional[str] = None) -> bool:
    """
    Check whether ``path`` matches any of ``patterns``.

    A pattern matches when it globs the path (absolute or relative to
    ``root``), or names one of its parent directories.

    Args:
        path: Source path; in-memory sources (None) never match
        patterns: fnmatch-style patterns
        root: Directory relative patterns are resolved against (default: cwd)
    """
    if not path or not patterns:
        return False

    forms = _candidates(path, root)
    for pattern in patterns:
        pattern = pattern.replace(os.sep, "/").rstrip("/")
        if not pattern:
            continue
        for form in forms:
            if fnmatch.fnmatch(form, pattern):
                return True
            # "spec" or "src/server" excludes everything below that directory
            if form.startswith(pattern + "/") or fnmatch.fnmatch(form, pattern + "/*"):
                return True
    return False


def find_files_by_globs(globs: Sequence[str], root: Optional[str] = None,
                        extensions: Optional[Sequence[str]] = None) -> List[str]:
    """
    Expand globs into a sorted list of files.

    Entries starting with ``!`` remove matching files from the result.
    Directories given as plain paths are searched recursively for
    ``extensions``.
    """
    root = root or os.getcwd()
    included: List[str] = []
    rejected: List[str] = []

    for entry in globs:
        if entry.startswith("!"):
            rejected.append(entry[1:])
            continue
        included.extend(_expand(entry, root, extensions))

    files = []
    for file_path in sorted(set(included)):
        if is_excluded_path(os.path.relpath(file_path, root)):
            continue
        if path_matches(file_path, rejected, root):
            continue
        files.append(file_path)
    return files


def _expand(entry: str, root: str, extensions: Optional[Sequence[str]]) -> List[str]:
    """Expand a single glob or path relative to ``root``."""
    pattern = entry if os.path.isabs(entry) else os.path.join(root, entry)

    if os.path.isdir(pattern):
        found = []
        for ext in extensions or ():
            found.extend(glob.glob(os.path.join(pattern, "**", f"*{ext}"), recursive=True))
        return [os.path.normpath(f) for f in found if os.path.isfile(f)]

    return [os.path.normpath(f) for f in glob.glob(pattern, recursive=True) if os.path.isfile(f)]
