#!/usr/bin/env python3
"""
fcopy - Copy files, directories or a git repository to the clipboard for LLMs

Walks the given targets, drops everything matched by the exclusion patterns
(command line plus the target's .gitignore) or hidden by a leading dot, and
serializes every surviving text file as a fenced Markdown code block.

Architecture:
    CLI Args → Configuration → Targets → Exclusion Policy →
    Traversal → Serialization → Output Buffer → Delivery
"""

from __future__ import annotations

import argparse
import base64
import logging
import os
import posixpath
import re
import shutil
import stat
import subprocess
import sys
import tempfile
import unicodedata
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass
from enum import Enum, auto
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import (
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Tuple,
)

# =============================================================================
# VERSION MANAGEMENT
# =============================================================================

__version__ = "1.0.0"


def get_version() -> str:
    """Get version from package metadata or fallback to hardcoded."""
    from importlib.metadata import PackageNotFoundError, version

    try:
        return version("fcopy")
    except PackageNotFoundError:
        return __version__


# =============================================================================
# OPTIONAL DEPENDENCIES
# =============================================================================

try:
    import pyperclip
    HAS_PYPERCLIP = True
except ImportError:
    HAS_PYPERCLIP = False


# =============================================================================
# CONSTANTS
# =============================================================================

class Defaults:
    """Default configuration values."""
    MAX_FILE_BYTES = 1024 * 1024
    IGNORE_FILENAME = ".gitignore"
    VCS_DIR = ".git"
    CLONE_PREFIX = "fcopy-git-"
    FALLBACK_REPO_NAME = "repo"
    # Order matters: the first tool found on PATH that succeeds wins.
    CLIPBOARD_TOOLS: Tuple[str, ...] = (
        "wl-copy",
        "xclip -selection clipboard",
        "xsel --clipboard",
    )


# Lower-cased base names that decide the hint before the extension does
SPECIAL_FILENAMES: Mapping[str, str] = MappingProxyType({
    "caddyfile": "caddyfile",
    "dockerfile": "dockerfile",
    "containerfile": "dockerfile",
    "makefile": "makefile",
})

LANGUAGE_HINTS: Mapping[str, str] = MappingProxyType({
    ".go": "go",
    ".md": "markdown", ".markdown": "markdown",
    ".sh": "bash", ".bash": "bash",
    ".py": "python",
    ".js": "javascript", ".mjs": "javascript", ".cjs": "javascript",
    ".ts": "typescript", ".tsx": "typescript",
    ".java": "java",
    ".c": "c", ".h": "c",
    ".cpp": "cpp", ".cxx": "cpp", ".hpp": "cpp", ".hxx": "cpp",
    ".cc": "cpp", ".hh": "cpp",
    ".cs": "csharp",
    ".rb": "ruby",
    ".php": "php",
    ".swift": "swift",
    ".kt": "kotlin", ".kts": "kotlin",
    ".rs": "rust",
    ".html": "html", ".htm": "html",
    ".css": "css",
    ".json": "json",
    ".yaml": "yaml", ".yml": "yaml",
    ".xml": "xml",
    ".sql": "sql",
    ".dockerfile": "dockerfile",
    ".txt": "text", ".text": "text",
})


# =============================================================================
# EXCEPTIONS
# =============================================================================

class FcopyError(Exception):
    """Base exception for fcopy errors."""


class TargetError(FcopyError):
    """Raised when a target cannot be processed and has to be abandoned."""


class CloneError(FcopyError):
    """Raised when a remote repository cannot be cloned."""


class DeliveryError(FcopyError):
    """Raised when the assembled output cannot be delivered."""


class PatternError(ValueError):
    """Raised for malformed glob syntax."""


# =============================================================================
# ENUMS AND DATA MODELS
# =============================================================================

class OutputMode(Enum):
    """Output destination modes."""
    CLIPBOARD = auto()
    FILE = auto()
    STDOUT = auto()


class Outcome(Enum):
    """What happened to one visited entry."""
    SERIALIZED = auto()
    SKIPPED = auto()
    ERRORED = auto()


@dataclass(frozen=True)
class EntryResult:
    """Decision taken for one file or directory."""
    display_path: str
    outcome: Outcome
    reason: str = ""


@dataclass(frozen=True)
class Target:
    """One top-level input: a file, a directory or a cloned repository."""
    abs_path: str
    display_root: str
    is_dir: bool
    # Temporary clone directories are never excluded at the root level.
    transient: bool = False


@dataclass(frozen=True)
class RunConfig:
    """Immutable run configuration."""
    paths: Tuple[str, ...]
    exclude_patterns: Tuple[str, ...]
    output_mode: OutputMode
    output_file: Optional[Path]
    terminal_clipboard: bool
    prompt: str
    follow_up_file: Optional[str]
    repo_url: Optional[str]
    log_level: int = logging.INFO

    @property
    def has_work(self) -> bool:
        return bool(self.paths or self.repo_url or self.prompt or self.follow_up_file)


class OutputBuffer:
    """Append-only byte buffer shared by every target, the prompt and the follow-up file."""

    def __init__(self) -> None:
        self._data = bytearray()

    def write(self, data: bytes) -> None:
        self._data += data

    def __len__(self) -> int:
        return len(self._data)

    def getvalue(self) -> bytes:
        return bytes(self._data)


# =============================================================================
# PATTERN MATCHER
# =============================================================================
#
# Glob semantics, identical on every platform and always case-sensitive:
#   *      any run of characters except "/"
#   ?      exactly one character except "/"
#   [...]  one character from the class; "^" or "!" negates, "a-z" ranges.
#          A class never matches "/".
#   \c     the literal character c
# The pattern has to match the whole string.
#
# translate_glob follows fnmatch.translate (build an anchored regex), except
# that "*", "?" and classes stop at "/" and malformed classes raise.

def to_slash(path: str) -> str:
    """Normalize host separators to forward slashes."""
    if os.sep != "/":
        path = path.replace(os.sep, "/")
    if os.altsep and os.altsep != "/":
        path = path.replace(os.altsep, "/")
    return path


def _class_char(pattern: str, pos: int) -> Tuple[str, int]:
    """Read one (possibly escaped) character inside a bracket expression."""
    if pos >= len(pattern):
        raise PatternError("unterminated character class")
    char = pattern[pos]
    if char == "\\":
        pos += 1
        if pos >= len(pattern):
            raise PatternError("trailing escape inside character class")
        char = pattern[pos]
    return char, pos + 1


def _translate_class(pattern: str, pos: int) -> Tuple[str, int]:
    """Translate the bracket expression starting after "[" at *pos*."""
    negate = False
    if pos < len(pattern) and pattern[pos] in "^!":
        negate = True
        pos += 1

    items: List[str] = []
    while True:
        if pos >= len(pattern):
            raise PatternError("unterminated character class")
        if pattern[pos] == "]":
            if not items:
                raise PatternError("empty character class")
            pos += 1
            break
        low, pos = _class_char(pattern, pos)
        if pos + 1 < len(pattern) and pattern[pos] == "-" and pattern[pos + 1] != "]":
            high, pos = _class_char(pattern, pos + 1)
            if low > high:
                raise PatternError(f"bad range {low}-{high}")
            items.append(f"{re.escape(low)}-{re.escape(high)}")
        else:
            items.append(re.escape(low))

    body = "".join(items)
    if negate:
        return f"[^/{body}]", pos
    return f"(?!/)[{body}]", pos


def translate_glob(pattern: str) -> str:
    """Translate a glob pattern into an anchored regular expression.

    Raises PatternError when the glob is malformed.
    """
    parts: List[str] = []
    pos = 0
    while pos < len(pattern):
        char = pattern[pos]
        pos += 1
        if char == "*":
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        elif char == "[":
            translated, pos = _translate_class(pattern, pos)
            parts.append(translated)
        elif char == "\\":
            if pos >= len(pattern):
                raise PatternError("trailing escape")
            parts.append(re.escape(pattern[pos]))
            pos += 1
        else:
            parts.append(re.escape(char))
    return "(?s:" + "".join(parts) + r")\Z"


@lru_cache(maxsize=512)
def _compile_glob(pattern: str) -> Optional[re.Pattern]:
    try:
        return re.compile(translate_glob(pattern))
    except PatternError as e:
        logging.debug(f"Ignoring malformed pattern '{pattern}': {e}")
        return None


def glob_match(pattern: str, name: str) -> bool:
    """Match *name* against *pattern*; malformed patterns never match."""
    compiled = _compile_glob(pattern)
    return compiled is not None and compiled.match(name) is not None


def matches(pattern: str, rel_path: str, base_name: str) -> bool:
    """Check whether one exclusion pattern covers a relative path.

    Slash-free patterns also match the base name at any depth, and a
    trailing "/" is stripped so "dist/" matches the directory itself.
    Pruning what lies below a matched directory is the walker's job.
    """
    pattern = pattern.strip()
    if not pattern:
        return False
    if _compile_glob(pattern) is None:
        return False

    if glob_match(pattern, rel_path):
        return True
    if "/" not in pattern and glob_match(pattern, base_name):
        return True

    if pattern.endswith("/"):
        stripped = pattern[:-1]
        if glob_match(stripped, rel_path):
            return True
        if "/" not in stripped and glob_match(stripped, base_name):
            return True
    return False


# =============================================================================
# IGNORE FILE LOADER
# =============================================================================

def parse_ignore_lines(lines: Iterable[str]) -> List[str]:
    """Keep the usable patterns of an ignore file, in order.

    Negations ("!pattern") are not supported and are dropped.
    """
    patterns = []
    for line in lines:
        line = line.strip()
        if not line or line.startswith("#") or line.startswith("!"):
            continue
        patterns.append(line)
    return patterns


def load_ignore_file(directory: str) -> List[str]:
    """Read the ignore file at the root of *directory* (not recursively)."""
    ignore_path = os.path.join(directory, Defaults.IGNORE_FILENAME)
    try:
        with open(ignore_path, "r", encoding="utf-8", errors="replace") as fh:
            return parse_ignore_lines(fh)
    except FileNotFoundError:
        return []
    except OSError as e:
        logging.warning(f"Could not read {ignore_path}: {e}")
        return []


# =============================================================================
# EXCLUSION POLICY
# =============================================================================

def parse_patterns(value: Optional[str]) -> List[str]:
    """Split a comma-separated pattern list, dropping empty entries."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


@dataclass(frozen=True)
class ExclusionPolicy:
    """Ordered, immutable set of exclusion patterns for one target."""
    patterns: Tuple[str, ...] = ()

    @classmethod
    def build(cls, global_patterns: Iterable[str], target: Target) -> "ExclusionPolicy":
        """Command-line patterns first, then the target's ignore file."""
        patterns = list(global_patterns)
        if target.is_dir:
            ignored = load_ignore_file(target.abs_path)
            if ignored:
                logging.info(
                    f"Detected {Defaults.IGNORE_FILENAME} in {target.display_root}, "
                    f"adding {len(ignored)} patterns."
                )
                patterns.extend(ignored)
        return cls(tuple(patterns))

    def is_excluded(self, rel_path: str) -> Tuple[bool, str]:
        """Return (excluded, matched pattern) for a relative path."""
        if not self.patterns:
            return False, ""
        rel_path = to_slash(rel_path)
        base_name = posixpath.basename(rel_path)
        for pattern in self.patterns:
            if matches(pattern, rel_path, base_name):
                return True, pattern
        return False, ""


# =============================================================================
# FILE SERIALIZER
# =============================================================================

def language_hint(path: str) -> str:
    """Get the Markdown language hint for a file name."""
    base_name = os.path.basename(path).lower()
    if base_name in SPECIAL_FILENAMES:
        return SPECIAL_FILENAMES[base_name]

    dot = base_name.rfind(".")
    if dot == -1:
        return ""
    ext = base_name[dot:]
    return LANGUAGE_HINTS.get(ext, ext[1:])


def is_binary(content: bytes) -> bool:
    """Heuristic binary check.

    A NUL pair starting in the first ten bytes is tolerated once, so text
    with a wide-character prefix still counts as text. Any other NUL marks
    the content as binary.
    """
    first = content.find(b"\x00")
    if first == -1:
        return False
    if first < 10 and content[first + 1:first + 2] == b"\x00":
        return content.find(b"\x00", first + 2) != -1
    return True


def emit_block(buffer: OutputBuffer, display_path: str, hint: str, content: bytes) -> None:
    """Append one fenced block to the buffer."""
    if len(buffer) > 0:
        buffer.write(b"\n\n")
    header = f"{hint} {display_path}" if hint else display_path
    buffer.write(f"```{header}\n".encode("utf-8"))
    buffer.write(content)
    if content and not content.endswith(b"\n"):
        buffer.write(b"\n")
    buffer.write(b"```\n")


def serialize_file(abs_path: str, display_path: str, buffer: OutputBuffer) -> EntryResult:
    """Read one file and append it to the buffer unless it is too large or binary."""
    try:
        with open(abs_path, "rb") as fh:
            content = fh.read()
    except OSError as e:
        logging.error(f"Error reading file {display_path}: {e}")
        return EntryResult(display_path, Outcome.ERRORED, str(e))

    if len(content) > Defaults.MAX_FILE_BYTES:
        logging.warning(f"Skipping large file (> 1MB): {display_path}")
        return EntryResult(display_path, Outcome.SKIPPED, f"larger than {Defaults.MAX_FILE_BYTES} bytes")

    if is_binary(content):
        logging.warning(f"Skipping likely binary file: {display_path}")
        return EntryResult(display_path, Outcome.SKIPPED, "binary content")

    logging.info(f"Adding file: {display_path}")
    emit_block(buffer, display_path, language_hint(abs_path), content)
    return EntryResult(display_path, Outcome.SERIALIZED)


# =============================================================================
# TRAVERSAL
# =============================================================================

def display_path_for(display_root: str, rel_path: str) -> str:
    """Join a display root and a relative path, always with forward slashes."""
    return posixpath.normpath(posixpath.join(to_slash(display_root), to_slash(rel_path)))


def _check_entry(
    rel_path: str,
    name: str,
    is_dir: bool,
    display_path: str,
    policy: ExclusionPolicy,
) -> Optional[EntryResult]:
    """Apply the exclusion policy, then the hidden-entry rule."""
    excluded, pattern = policy.is_excluded(rel_path)
    if excluded:
        if name != Defaults.VCS_DIR:
            logging.info(f"Skipping excluded path: {rel_path} (pattern: '{pattern}')")
        return EntryResult(display_path, Outcome.SKIPPED, f"matches exclude pattern '{pattern}'")

    if name.startswith("."):
        kind = "directory" if is_dir else "file"
        if name != Defaults.VCS_DIR:
            logging.info(f"Skipping hidden {kind}: {rel_path}")
        return EntryResult(display_path, Outcome.SKIPPED, f"hidden {kind}")
    return None


def _sorted_entries(path: str) -> List[os.DirEntry]:
    with os.scandir(path) as entries:
        return sorted(entries, key=lambda entry: entry.name)


def walk(
    abs_root: str,
    display_root: str,
    policy: ExclusionPolicy,
    buffer: OutputBuffer,
) -> List[EntryResult]:
    """Walk a directory depth-first and serialize every surviving file.

    Entries of a directory are visited in name order, files and
    subdirectories interleaved, and each subdirectory is finished before
    the next sibling. Excluded and hidden directories are pruned without
    being listed. Symlinks to directories are reported and not followed.

    A root that cannot be listed raises TargetError; a subdirectory that
    cannot be listed becomes an ERRORED entry and the walk continues.
    """
    logging.info(f"Processing directory: {display_root}")
    try:
        entries = _sorted_entries(abs_root)
    except OSError as e:
        raise TargetError(f"Error accessing {display_root}: {e}") from e

    results: List[EntryResult] = []
    _walk_entries(entries, "", display_root, policy, buffer, results)
    return results


def _walk_entries(
    entries: List[os.DirEntry],
    rel_dir: str,
    display_root: str,
    policy: ExclusionPolicy,
    buffer: OutputBuffer,
    results: List[EntryResult],
) -> None:
    for entry in entries:
        rel_path = f"{rel_dir}/{entry.name}" if rel_dir else entry.name
        display_path = display_path_for(display_root, rel_path)
        is_dir = entry.is_dir(follow_symlinks=False)

        skipped = _check_entry(rel_path, entry.name, is_dir, display_path, policy)
        if skipped is not None:
            results.append(skipped)
            continue

        if is_dir:
            try:
                children = _sorted_entries(entry.path)
            except OSError as e:
                logging.error(f"Error accessing {display_path}: {e}")
                results.append(EntryResult(display_path, Outcome.ERRORED, str(e)))
                continue
            _walk_entries(children, rel_path, display_root, policy, buffer, results)
        elif entry.is_symlink() and entry.is_dir():
            logging.warning(f"Skipping symlinked directory: {rel_path}")
            results.append(EntryResult(display_path, Outcome.SKIPPED, "symlinked directory"))
        else:
            results.append(serialize_file(entry.path, display_path, buffer))


# =============================================================================
# TARGETS
# =============================================================================

def resolve_target(arg: str) -> Target:
    """Build a Target for one command-line path."""
    abs_path = os.path.abspath(arg)
    try:
        info = os.stat(abs_path)
    except OSError as e:
        raise TargetError(f"Error stating path {arg}: {e}") from e

    display_root = os.path.normpath(arg) if os.path.isabs(arg) else arg
    return Target(abs_path, display_root, stat.S_ISDIR(info.st_mode))


def repo_name_from_url(url: str) -> str:
    """Readable repository name used as the display root of a clone."""
    name = url.rstrip("/").split("/")[-1]
    if name.endswith(".git"):
        name = name[:-len(".git")]
    return name or Defaults.FALLBACK_REPO_NAME


@contextmanager
def cloned_repository(url: str) -> Iterator[Target]:
    """Shallow-clone *url* into a temporary directory for the duration of the block."""
    git = shutil.which("git")
    if git is None:
        raise CloneError("'git' command not found in PATH. Required for -g flag.")

    temp_dir = tempfile.mkdtemp(prefix=Defaults.CLONE_PREFIX)
    try:
        logging.info(f"Cloning {url} into temporary directory...")
        try:
            subprocess.run(
                [git, "clone", "--depth", "1", url, temp_dir],
                stdout=sys.stderr,
                stderr=sys.stderr,
                check=True,
            )
        except (OSError, subprocess.CalledProcessError) as e:
            raise CloneError(f"Error cloning repository: {e}") from e

        yield Target(temp_dir, repo_name_from_url(url), True, transient=True)
    finally:
        logging.info(f"Cleaning up temp directory: {temp_dir}")
        shutil.rmtree(temp_dir, ignore_errors=True)


def process_target(
    target: Target,
    global_patterns: Iterable[str],
    buffer: OutputBuffer,
) -> List[EntryResult]:
    """Build the target's policy, pre-check its root and serialize it."""
    policy = ExclusionPolicy.build(global_patterns, target)

    if not target.transient:
        root = posixpath.normpath(to_slash(target.display_root))
        excluded, pattern = policy.is_excluded(root)
        if excluded:
            logging.info(f"Skipping path {target.display_root} (matches exclude pattern '{pattern}')")
            return [EntryResult(target.display_root, Outcome.SKIPPED, f"matches exclude pattern '{pattern}'")]

    if target.is_dir:
        return walk(target.abs_path, target.display_root, policy, buffer)
    return [serialize_file(target.abs_path, target.display_root, buffer)]


# =============================================================================
# ASSEMBLY
# =============================================================================

def append_prompt(prompt: str, buffer: OutputBuffer) -> None:
    if not prompt:
        return
    if len(buffer) > 0:
        buffer.write(b"\n\n")
    buffer.write(prompt.encode("utf-8"))
    logging.info("Appended prompt text.")


def append_follow_up(path_arg: str, buffer: OutputBuffer) -> Optional[EntryResult]:
    """Serialize the -f file after everything else; problems are logged, not fatal."""
    abs_path = os.path.abspath(path_arg)
    try:
        info = os.stat(abs_path)
    except OSError as e:
        logging.error(f"Error stating follow-up file -f {path_arg}: {e}")
        return None
    if stat.S_ISDIR(info.st_mode):
        logging.error(f"Path for -f ({path_arg}) is a directory, must be a file.")
        return None

    display_path = os.path.normpath(path_arg) if os.path.isabs(path_arg) else path_arg
    return serialize_file(abs_path, display_path, buffer)


def build_output(config: RunConfig) -> OutputBuffer:
    """Assemble the full artifact: target blocks, prompt, follow-up block."""
    buffer = OutputBuffer()
    with ExitStack() as stack:
        targets: List[Target] = []
        if config.repo_url:
            targets.append(stack.enter_context(cloned_repository(config.repo_url)))

        for arg in config.paths:
            try:
                targets.append(resolve_target(arg))
            except TargetError as e:
                logging.error(str(e))

        for target in targets:
            try:
                process_target(target, config.exclude_patterns, buffer)
            except TargetError as e:
                logging.error(str(e))

    append_prompt(config.prompt, buffer)
    if config.follow_up_file:
        append_follow_up(config.follow_up_file, buffer)
    return buffer


# =============================================================================
# TOKEN ESTIMATE
# =============================================================================

def estimate_tokens(content: str) -> Tuple[int, str]:
    """Rough token count from character classes."""
    if not content:
        return 0, ""

    word_chars = space_chars = symbol_chars = other_chars = 0
    for char in content:
        category = unicodedata.category(char)
        if category[0] == "L" or category == "Nd":
            word_chars += 1
        elif char.isspace():
            space_chars += 1
        elif category[0] in ("P", "S"):
            symbol_chars += 1
        else:
            other_chars += 1

    total = word_chars // 4 + space_chars // 5 + symbol_chars * 2 // 3 + other_chars * 2

    def thousands(count: int) -> int:
        return (count + 500) // 1000

    details = (
        f"~{total} tokens (from {thousands(word_chars)}k words, "
        f"{thousands(space_chars)}k whitespace, {thousands(symbol_chars)}k symbols"
    )
    if other_chars:
        details += f", {other_chars} other"
    return total, details + ")"


# =============================================================================
# OUTPUT WRITER
# =============================================================================

def _terminal_supports_osc52() -> bool:
    term = os.environ.get("TERM", "")
    return "kitty" in term or "xterm" in term or bool(os.environ.get("TMUX"))


def _write_osc52(content: bytes) -> None:
    encoded = base64.b64encode(content).decode("ascii")
    if os.environ.get("TMUX"):
        sys.stdout.write(f"\x1bPtmux;\x1b\x1b]52;c;{encoded}\x07\x1b\\")
    else:
        sys.stdout.write(f"\x1b]52;c;{encoded}\x07")
    sys.stdout.flush()


def _pipe_to(argv: List[str], label: str, content: bytes) -> bool:
    try:
        subprocess.run(argv, input=content, check=True)
    except (OSError, subprocess.CalledProcessError) as e:
        logging.warning(f"Failed to copy with `{label}`: {e}")
        return False
    return True


def copy_to_clipboard(content: bytes, terminal_aware: bool = False) -> Optional[str]:
    """Copy content to the clipboard, trying each mechanism in turn.

    Returns the name of the mechanism that worked, or None when there was
    nothing to copy. Raises DeliveryError when every mechanism failed.
    """
    if not content.strip():
        logging.warning("No content to copy to clipboard.")
        return None

    if terminal_aware and _terminal_supports_osc52():
        logging.info("Attempting clipboard copy via OSC 52 escape code...")
        _write_osc52(content)
        logging.info("Content sent to terminal for clipboard (OSC 52).")
        return "osc52"

    if os.environ.get("KITTY_WINDOW_ID"):
        kitty = shutil.which("kitty")
        if kitty is not None:
            logging.info("Attempting clipboard copy via `kitty +kitten clipboard`...")
            if _pipe_to([kitty, "+kitten", "clipboard"], "kitty +kitten clipboard", content):
                logging.info("Content copied to clipboard via `kitty +kitten clipboard`.")
                return "kitty"

    for tool in Defaults.CLIPBOARD_TOOLS:
        argv = tool.split()
        executable = shutil.which(argv[0])
        if executable is None:
            continue
        logging.info(f"Attempting clipboard copy via `{tool}`...")
        if _pipe_to([executable] + argv[1:], tool, content):
            logging.info(f"Content copied to clipboard via `{tool}`.")
            return tool

    logging.info("Falling back to pyperclip (may not work over SSH)...")
    hint = "Please install xclip/xsel or wl-clipboard, or use -t."
    if not HAS_PYPERCLIP:
        raise DeliveryError(f"pyperclip is not installed. {hint}")
    try:
        pyperclip.copy(content.decode("utf-8", errors="replace"))
    except pyperclip.PyperclipException as e:
        raise DeliveryError(f"Failed to copy to clipboard: {e}. {hint}") from e
    logging.info("Content copied to clipboard!")
    return "pyperclip"


class OutputWriter:
    """Handles output to various destinations."""

    @staticmethod
    def write(content: bytes, config: RunConfig) -> None:
        """Write content to configured destination."""
        if config.output_mode == OutputMode.FILE:
            OutputWriter._write_file(content, config.output_file)
        elif config.output_mode == OutputMode.STDOUT:
            OutputWriter._write_stdout(content)
        else:
            copy_to_clipboard(content, config.terminal_clipboard)

    @staticmethod
    def _write_file(content: bytes, path: Optional[Path]) -> None:
        if path is None:
            raise DeliveryError("No output file given")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        except OSError as e:
            raise DeliveryError(f"Failed to write to output file {path}: {e}") from e
        logging.info(f"Content written to file: {path}")

    @staticmethod
    def _write_stdout(content: bytes) -> None:
        sys.stdout.buffer.write(content)
        sys.stdout.buffer.flush()
        logging.info("Content written to stdout.")


# =============================================================================
# CONFIGURATION BUILDER
# =============================================================================

class ConfigBuilder:
    """Builds RunConfig from CLI arguments."""

    @staticmethod
    def from_args(args: argparse.Namespace) -> RunConfig:
        """Create config from parsed arguments."""
        if args.output:
            output_mode = OutputMode.FILE
        elif args.stdout:
            output_mode = OutputMode.STDOUT
        else:
            output_mode = OutputMode.CLIPBOARD

        return RunConfig(
            paths=tuple(args.paths),
            exclude_patterns=tuple(parse_patterns(args.exclude)),
            output_mode=output_mode,
            output_file=Path(args.output) if args.output else None,
            terminal_clipboard=args.terminal,
            prompt=args.prompt or "",
            follow_up_file=args.follow_up or None,
            repo_url=args.git or None,
            log_level=ConfigBuilder._log_level(args),
        )

    @staticmethod
    def _log_level(args: argparse.Namespace) -> int:
        if args.verbose:
            return logging.DEBUG
        if args.quiet:
            return logging.WARNING
        return logging.INFO


# =============================================================================
# CLI PARSER
# =============================================================================

def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog="fcopy",
        description="Processes files, directories, or git repositories, formats them as markdown.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  fcopy internal/ README.md              # Copy a directory and a file
  fcopy -g https://github.com/user/repo  # Shallow-clone and copy a repository
  fcopy -p "Refactor this" main.go       # Append a prompt after the code
  fcopy -x "*.log,dist/" -s .            # Exclude patterns, print to stdout
        """,
    )

    parser.add_argument(
        "paths",
        nargs="*",
        metavar="PATH",
        help="Paths to files or directories to process",
    )

    content = parser.add_argument_group("Content")
    content.add_argument("-p", "--prompt", metavar="TEXT", help="A prompt to append after the main file contents")
    content.add_argument(
        "-f", "--follow-up",
        metavar="FILE",
        help="Path to a file whose content will be appended after the prompt, formatted as markdown",
    )
    content.add_argument(
        "-x", "--exclude",
        metavar="PATTERNS",
        help="Comma-separated list of glob patterns to exclude (e.g., '.git,*.log,dist/*')",
    )
    content.add_argument("-g", "--git", metavar="URL", help="Git repository URL to clone and process (shallow clone)")

    out = parser.add_argument_group("Output Options")
    dest = out.add_mutually_exclusive_group()
    dest.add_argument("-o", "--output", metavar="FILE", help="Output to the specified file instead of clipboard")
    dest.add_argument("-s", "--stdout", action="store_true", help="Output to stdout instead of clipboard")
    out.add_argument(
        "-t", "--terminal",
        action="store_true",
        help="Use terminal-aware clipboard (OSC 52, kitty), ideal for SSH",
    )

    meta = parser.add_argument_group("Information")
    noise = meta.add_mutually_exclusive_group()
    noise.add_argument("-v", "--verbose", action="store_true", help="Show debug diagnostics")
    noise.add_argument("-q", "--quiet", action="store_true", help="Only show warnings and errors")
    meta.add_argument("--version", action="version", version=f"%(prog)s {get_version()}")

    return parser


# =============================================================================
# MAIN
# =============================================================================

def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)
    config = ConfigBuilder.from_args(args)

    logging.basicConfig(
        level=config.log_level,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    if not config.has_work:
        parser.print_usage(sys.stderr)
        return 1

    try:
        content = build_output(config).getvalue()

        text = content.decode("utf-8", errors="replace")
        if not text.strip():
            logging.warning("Output is empty or contains only whitespace.")
        else:
            _, details = estimate_tokens(text)
            logging.info(f"Estimated token count: {details}")

        OutputWriter.write(content, config)
        return 0

    except (CloneError, DeliveryError) as e:
        logging.error(str(e))
        return 1
    except KeyboardInterrupt:
        logging.warning("Interrupted")
        return 130
    except Exception:
        logging.exception("Critical error")
        return 1


if __name__ == "__main__":
    sys.exit(main())
