from __future__ import annotations

import fnmatch
import os
import re
import time
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

import pathspec
from pydantic import BaseModel, ConfigDict, computed_field

from codesnap.config import (
    DEFAULT_IGNORE_PATTERNS,
    MAX_WALK_DEPTH,
    NO_EXTENSION_IMPORTANT_FILES,
    SNIFF_LIMIT,
    SNIFF_MAX_FILE_SIZE,
    SNIFF_SAMPLE_BYTES,
    VCS_DIRECTORIES,
    is_binary_path,
    is_entry_point,
    is_high_priority_name,
)
from codesnap.logging import logger

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

SECONDS_PER_DAY = 24 * 60 * 60
PRINTABLE_RATIO = 0.9

_GLOB_CHARS = frozenset("*?[")

CONFIG_LIKE_SUFFIXES: tuple[str, ...] = (
    ".yaml",
    ".yml",
    ".json",
    ".tf",
    ".tfvars",
    ".hcl",
    ".toml",
    ".ini",
    ".env",
    ".tpl",
    ".tmpl",
    ".j2",
    ".template",
)

CONFIG_LIKE_NAMES: frozenset[str] = frozenset({
    "Dockerfile",
    "Makefile",
    "docker-compose.yml",
    "docker-compose.yaml",
})

CODE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"function\s+\w+\s*\("),
    re.compile(r"class\s+\w+"),
    re.compile(r"def\s+\w+\s*\("),
    re.compile(r"^\s*import\s+", re.MULTILINE),
    re.compile(r"^\s*from\s+.+\s+import", re.MULTILINE),
    re.compile(r"^\s*require\(", re.MULTILINE),
    re.compile(r"^\s*\w+\s*=\s*require\(", re.MULTILINE),
    re.compile(r'^\s*(?:module|resource|provider|variable|output)\s+"', re.MULTILINE),
    re.compile(r"^\s*(?:apiVersion|kind|metadata|spec):", re.MULTILINE),
)


def relpath(path: Path, root: Path) -> str:
    """Send the relative path of path from root.

    Args:
        path (Path): the path to "relativise"
        root (Path): the root to relativise from

    Returns:
        str: the relative path from root to path, with POSIX separators.
            If path is not under root, returns the original path as a string.
    """
    try:
        rel = str(path.relative_to(root)).replace("\\", "/")
    except ValueError:
        return str(path)
    return "" if rel == "." else rel


def normalize_globs(globs: Sequence[str]) -> list[str]:
    """Normalize a sequence of path glob patterns.

    Normalize a sequence of glob patterns by stripping whitespace and
    replacing backslashes with forward slashes.

    Args:
        globs (Sequence[str]): the glob patterns to normalize

    Returns:
        list[str]: the normalized glob patterns
    """
    out: list[str] = []
    for g in globs:
        g2 = (g or "").strip()
        if not g2:
            continue
        out.append(g2.replace("\\", "/"))
    return out


def match_any_glob(rel: str, globs: Sequence[str]) -> bool:
    """Check if a relative path matches any of the provided glob patterns.

    Args:
        rel (str): the relative path to check
        globs (Sequence[str]): the glob patterns to match against

    Returns:
        bool: True if `rel` matches any pattern in `globs`, False otherwise
    """
    return any(fnmatch.fnmatch(rel, g) for g in globs)


@dataclass(frozen=True)
class IgnoreRules:
    """Ignore globs split by what they are matched against.

    `dir_names` only prune directories, `any_names` match any path component,
    `dir_paths` / `any_paths` match the full relative path.
    """

    dir_names: tuple[str, ...] = ()
    any_names: tuple[str, ...] = ()
    dir_paths: tuple[str, ...] = ()
    any_paths: tuple[str, ...] = ()

    def ignores_dir(self, name: str, rel: str) -> bool:
        return (
            match_any_glob(name, self.dir_names)
            or match_any_glob(name, self.any_names)
            or match_any_glob(rel, self.dir_paths)
            or match_any_glob(rel, self.any_paths)
        )

    def ignores_file(self, name: str, rel: str) -> bool:
        return match_any_glob(name, self.any_names) or match_any_glob(rel, self.any_paths)


def compile_ignore_patterns(patterns: Sequence[str]) -> IgnoreRules:
    """Sort ignore globs such as `**/node_modules/**` or `build/*.log` into IgnoreRules.

    A leading `**/` means "at any depth" and a trailing `/**` means "the directory
    and everything below it"; what remains is matched against a single component
    when it has no slash, against the relative path otherwise.

    Args:
        patterns (Sequence[str]): raw ignore globs

    Returns:
        IgnoreRules: the compiled rules
    """
    dir_names: list[str] = []
    any_names: list[str] = []
    dir_paths: list[str] = []
    any_paths: list[str] = []
    for raw in normalize_globs(patterns):
        core = raw
        while core.startswith("**/"):
            core = core[3:]
        dir_only = core.endswith("/**")
        if dir_only:
            core = core[:-3]
        core = core.strip("/")
        if not core:
            continue
        if "/" in core:
            (dir_paths if dir_only else any_paths).append(core)
        else:
            (dir_names if dir_only else any_names).append(core)
    return IgnoreRules(
        dir_names=tuple(dir_names),
        any_names=tuple(any_names),
        dir_paths=tuple(dir_paths),
        any_paths=tuple(any_paths),
    )


class GitIgnoreFilter:
    """Answers whether a relative path is ignored by the root `.gitignore`."""

    def __init__(self, patterns: Sequence[str] = ()) -> None:
        self._spec = pathspec.PathSpec.from_lines("gitwildmatch", patterns)

    @classmethod
    def from_root(cls, root: Path) -> GitIgnoreFilter:
        """Load `<root>/.gitignore`; a missing or unreadable file ignores nothing."""
        gi = root / ".gitignore"
        if not gi.is_file():
            return cls()
        try:
            lines = gi.read_text(encoding="utf-8", errors="replace").splitlines()
        except OSError as e:
            logger.warning("gitignore_unreadable", path=str(gi), error=str(e))
            return cls()
        return cls(lines)

    def ignores(self, rel: str) -> bool:
        """Check whether `rel` (POSIX, relative to the root; directories end with `/`) is ignored."""
        return self._spec.match_file(rel)


class InfraDetection(BaseModel):
    """Infrastructure-as-code flavours found in a project."""

    model_config = ConfigDict(frozen=True)

    terraform: bool = False
    kubernetes: bool = False
    ansible: bool = False
    docker: bool = False
    packer: bool = False

    @computed_field
    @property
    def detected(self) -> bool:
        """True when any infrastructure flavour was found."""
        return self.terraform or self.kubernetes or self.ansible or self.docker or self.packer

    def extra_extensions(self) -> list[str]:
        """Extensions worth adding to the include list for the detected flavours."""
        out: list[str] = []
        if self.terraform:
            out.extend([".tf", ".tfvars", ".hcl"])
        if self.kubernetes or self.ansible:
            out.extend([".yaml", ".yml"])
        if self.packer:
            out.extend([".pkr.hcl", ".json"])
        return out

    def extra_filenames(self) -> list[str]:
        """Filenames worth adding to the include list for the detected flavours."""
        if self.docker:
            return ["Dockerfile", "docker-compose.yml", "docker-compose.yaml"]
        return []


_K8S_NAMES = frozenset({
    "deployment.yaml",
    "service.yaml",
    "ingress.yaml",
    "configmap.yaml",
    "secret.yaml",
    "Chart.yaml",
})
_ANSIBLE_NAMES = frozenset({"playbook.yml", "ansible.cfg", "inventory"})
_DOCKER_NAMES = frozenset({"Dockerfile", "docker-compose.yml", "docker-compose.yaml"})
_PACKER_SKIP = frozenset({"package.json", "package-lock.json"})


def _is_packer_json(path: Path) -> bool:
    try:
        if path.stat().st_size > SNIFF_MAX_FILE_SIZE:
            return False
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return False
    return '"builders"' in text and '"provisioners"' in text


def detect_infrastructure(root: Path) -> InfraDetection:
    """Detect infrastructure-as-code projects (terraform, kubernetes, ansible, docker, packer).

    Walks the tree once, honouring the default ignore patterns. Never raises:
    unreadable parts of the tree are simply not inspected.

    Args:
        root (Path): the project root

    Returns:
        InfraDetection: the flavours found
    """
    rules = compile_ignore_patterns(DEFAULT_IGNORE_PATTERNS)
    flags = dict.fromkeys(("terraform", "kubernetes", "ansible", "docker", "packer"), False)
    for dirpath, dirnames, filenames in os.walk(root):
        rel_dir = relpath(Path(dirpath), root)
        dirnames[:] = sorted(
            d
            for d in dirnames
            if d not in VCS_DIRECTORIES and not rules.ignores_dir(d, f"{rel_dir}/{d}" if rel_dir else d)
        )
        for name in filenames:
            if name.endswith((".tf", ".tfvars")):
                flags["terraform"] = True
            elif name in _K8S_NAMES or name.endswith(".helmignore"):
                flags["kubernetes"] = True
            elif name in _ANSIBLE_NAMES:
                flags["ansible"] = True
            elif name in _DOCKER_NAMES:
                flags["docker"] = True
            elif name.endswith(".pkr.hcl"):
                flags["packer"] = True
            elif not flags["packer"] and name.endswith(".json") and name not in _PACKER_SKIP:
                flags["packer"] = _is_packer_json(Path(dirpath) / name)
    detection = InfraDetection(**flags)
    if detection.detected:
        logger.info("infrastructure_detected", **flags)
    return detection


def is_likely_code(rel: str, sample: str) -> bool:
    """Heuristically decide whether a file with an unknown extension is code or config.

    Args:
        rel (str): the relative path of the file
        sample (str): the first few hundred characters of the file

    Returns:
        bool: True if the name or the sample looks like code, config or plain text
    """
    p = PurePosixPath(rel)
    name = p.name
    if (
        "config" in name
        or "conf" in name
        or name in CONFIG_LIKE_NAMES
        or name.endswith(CONFIG_LIKE_SUFFIXES)
    ):
        return True
    if sample and any(pattern.search(sample) for pattern in CODE_PATTERNS):
        return True
    ext = p.suffix
    if sample and 2 <= len(ext) <= 5:  # noqa: PLR2004
        printable = sum(1 for ch in sample if " " <= ch <= "~" or ch in "\t\r\n")
        return printable / len(sample) > PRINTABLE_RATIO
    return False


def sniff_code_file(path: Path, rel: str) -> bool:
    """Peek at the first bytes of a small file and apply `is_likely_code`.

    Args:
        path (Path): absolute path of the file
        rel (str): path relative to the project root

    Returns:
        bool: True if the file looks like code; False on any read error
    """
    try:
        if path.stat().st_size > SNIFF_MAX_FILE_SIZE:
            return False
        with path.open("rb") as f:
            chunk = f.read(SNIFF_SAMPLE_BYTES)
    except OSError:
        return False
    return is_likely_code(rel, chunk.decode("utf-8", errors="replace"))


def _matches_include(
    name: str,
    rel: str,
    *,
    include_filenames: frozenset[str],
    include_extensions: tuple[str, ...],
) -> bool:
    if name in include_filenames:
        return True
    if any(special in name for special in NO_EXTENSION_IMPORTANT_FILES):
        return True
    if is_high_priority_name(name) or is_entry_point(rel):
        return True
    return name.lower().endswith(include_extensions)


def _is_excluded_name(name: str, exact: frozenset[str], globs: Sequence[str]) -> bool:
    return name in exact or any(fnmatch.fnmatch(name, g) for g in globs)


def _modified_since(path: Path, cutoff: float) -> bool:
    try:
        return path.stat().st_mtime >= cutoff
    except OSError as e:
        logger.debug("stat_failed", path=str(path), error=str(e))
        return False


def iter_candidates(
    root: Path,
    *,
    ignore_patterns: Sequence[str],
    include_extensions: Sequence[str],
    include_filenames: Sequence[str],
    exclude_filenames: Sequence[str],
    respect_gitignore: bool,
    recent_days: int = 0,
    scan_all: bool = False,
    now: float | None = None,
) -> Iterator[str]:
    """Lazily yield the relative paths of files worth considering under `root`.

    Ignored directories are pruned before descending. Calling the function again
    restarts the walk from scratch.

    Args:
        root (Path): the project root
        ignore_patterns (Sequence[str]): ignore globs (`**/node_modules/**` style)
        include_extensions (Sequence[str]): extensions to include (`.py`)
        include_filenames (Sequence[str]): basenames always included (`package.json`)
        exclude_filenames (Sequence[str]): basenames or basename globs to exclude
        respect_gitignore (bool): apply `<root>/.gitignore`
        recent_days (int): when > 0, only files modified in the last `recent_days` days
        scan_all (bool): content-sniff every unknown file instead of the first SNIFF_LIMIT
        now (float | None): current POSIX time, for the recency filter

    Yields:
        str: relative POSIX paths in deterministic (sorted walk) order
    """
    rules = compile_ignore_patterns(ignore_patterns)
    gitignore = GitIgnoreFilter.from_root(root) if respect_gitignore else None
    cutoff = None
    if recent_days > 0:
        cutoff = (time.time() if now is None else now) - recent_days * SECONDS_PER_DAY
    extensions = tuple(e.lower() for e in include_extensions)
    names = frozenset(include_filenames)
    exclude_globs = [n for n in exclude_filenames if _GLOB_CHARS & set(n)]
    exclude_exact = frozenset(n for n in exclude_filenames if not _GLOB_CHARS & set(n))
    sniffed = 0

    def on_error(err: OSError) -> None:
        logger.warning("directory_unreadable", path=err.filename, error=err.strerror)

    for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
        here = Path(dirpath)
        rel_dir = relpath(here, root)
        depth = rel_dir.count("/") + 1 if rel_dir else 0
        kept: list[str] = []
        for d in sorted(dirnames):
            rel_d = f"{rel_dir}/{d}" if rel_dir else d
            if d in VCS_DIRECTORIES or rules.ignores_dir(d, rel_d):
                continue
            if gitignore is not None and gitignore.ignores(rel_d + "/"):
                continue
            kept.append(d)
        dirnames[:] = kept if depth < MAX_WALK_DEPTH else []

        for name in sorted(filenames):
            rel = f"{rel_dir}/{name}" if rel_dir else name
            if rules.ignores_file(name, rel) or _is_excluded_name(name, exclude_exact, exclude_globs):
                continue
            if gitignore is not None and gitignore.ignores(rel):
                continue
            if not _matches_include(name, rel, include_filenames=names, include_extensions=extensions):
                if is_binary_path(rel) or (not scan_all and sniffed >= SNIFF_LIMIT):
                    continue
                sniffed += 1
                if not sniff_code_file(here / name, rel):
                    continue
            if cutoff is not None and not _modified_since(here / name, cutoff):
                continue
            yield rel


def cap_candidates(rels: Sequence[str], max_files: int) -> list[str]:
    """Cap the candidate list, keeping every high-priority or entry-point file.

    Args:
        rels (Sequence[str]): candidates in discovery order
        max_files (int): the cap

    Returns:
        list[str]: priority matches first, then the remaining candidates in
            discovery order until the cap is reached
    """
    if len(rels) <= max_files:
        return list(rels)
    logger.info("candidates_capped", found=len(rels), limit=max_files)
    priority = [r for r in rels if is_high_priority_name(PurePosixPath(r).name) or is_entry_point(r)]
    chosen = set(priority)
    rest = [r for r in rels if r not in chosen][: max(0, max_files - len(priority))]
    return [*priority, *rest]


def discover(
    root: Path,
    *,
    ignore_patterns: Sequence[str],
    include_extensions: Sequence[str],
    include_filenames: Sequence[str],
    exclude_filenames: Sequence[str],
    respect_gitignore: bool,
    max_files: int,
    recent_days: int = 0,
    scan_all: bool = False,
    now: float | None = None,
) -> list[str]:
    """Discover and cap the candidate files under `root`.

    See `iter_candidates` for the filtering rules. An empty list is a valid result.

    Returns:
        list[str]: the capped relative paths
    """
    rels = list(
        iter_candidates(
            root,
            ignore_patterns=ignore_patterns,
            include_extensions=include_extensions,
            include_filenames=include_filenames,
            exclude_filenames=exclude_filenames,
            respect_gitignore=respect_gitignore,
            recent_days=recent_days,
            scan_all=scan_all,
            now=now,
        ),
    )
    capped = cap_candidates(rels, max_files)
    logger.info("discovery_finished", root=str(root), found=len(rels), kept=len(capped))
    return capped
