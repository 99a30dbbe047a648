"""codesnap: collect the most relevant files of a project into one LLM-ready document.

Usage
-----
Run `codesnap --help` for full options. Common examples:
    - Copy the current project to the clipboard:
        codesnap

    - Terraform / Kubernetes project, with a tree, into a file:
        codesnap --mode auto --tree --output context.md

    - Big repository, summarizing large files and stripping comments:
        codesnap -t 50000 --summarize-large-files --optimize-tokens

    - Save and reuse a set of options:
        codesnap -e py md --tree --save-config python
        codesnap --load-config python -d ../other-project
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pyperclip

from codesnap import __version__
from codesnap.discovery import detect_infrastructure
from codesnap.exceptions import CodesnapError, RootDirectoryError, SelectionCancelledError
from codesnap.interactive import select_files
from codesnap.logging import logger, setup_logging
from codesnap.pipeline import collect, package
from codesnap.profiles import ProfileStore
from codesnap.records import estimate_tokens
from codesnap.settings import KIB, Mode, Settings, build_run_config

if TYPE_CHECKING:
    from collections.abc import Sequence

    from codesnap.pipeline import CollectResult, PackageResult
    from codesnap.settings import RunConfig

SUMMARY_TOP_FILES = 10


def _split_csv(values: Sequence[str] | None) -> list[str] | None:
    if values is None:
        return None
    return [part.strip() for value in values for part in value.split(",") if part.strip()]


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="codesnap",
        description="Collect the most relevant files of a project into one document sized for an LLM context.",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    sel = p.add_argument_group("selection")
    sel.add_argument("-d", "--directory", type=Path, default=Path(), help="Directory to scan.")
    sel.add_argument("-i", "--ignore", action="extend", nargs="+", default=[], help="Additional ignore globs.")
    sel.add_argument("-e", "--extensions", action="extend", nargs="+", default=None, help="File extensions to include.")
    sel.add_argument("-f", "--files", action="extend", nargs="+", default=None, help="Specific filenames to include.")
    sel.add_argument("-x", "--exclude", action="extend", nargs="+", default=None, help="Filenames or globs to exclude.")
    sel.add_argument("--recent", type=int, default=0, help="Only files modified in the last N days.")
    sel.add_argument(
        "--mode",
        choices=[m.value for m in Mode],
        default=Mode.CODE.value,
        help="Project type preset (auto detects infrastructure projects).",
    )
    sel.add_argument(
        "--infrastructure",
        dest="mode",
        action="store_const",
        const=Mode.INFRA.value,
        help="Shortcut for --mode infra.",
    )
    sel.add_argument(
        "--no-gitignore",
        dest="respect_gitignore",
        action="store_false",
        help="Do not apply .gitignore rules.",
    )
    sel.add_argument("--scan-all", action="store_true", help="Content-sniff every file with an unknown extension.")
    sel.add_argument("--force-utf8", action="store_true", help="Skip files that are not valid UTF-8.")
    sel.add_argument("--interactive", action="store_true", help="Pick files interactively.")

    lim = p.add_argument_group("limits")
    lim.add_argument("-l", "--limit", type=int, default=1024, help="Total size limit in KB.")
    lim.add_argument("-t", "--tokens", type=int, default=100_000, help="Approximate token limit (0 = unlimited).")
    lim.add_argument("--max-file-size", type=int, default=100, help="Maximum size of a single file in KB.")
    lim.add_argument("--max-files", type=int, default=100, help="Maximum number of files.")

    fmt = p.add_argument_group("content")
    fmt.add_argument("--tree", action="store_true", help="Include the project structure.")
    fmt.add_argument("--list-only", action="store_true", help="List files without their content.")
    fmt.add_argument("--strip-comments", action="store_true", help="Remove code comments.")
    fmt.add_argument("--optimize-tokens", action="store_true", help="Apply token optimizations (strips comments).")
    fmt.add_argument("--truncate-large-files", action="store_true", help="Truncate files over --max-file-size.")
    fmt.add_argument("--summarize-large-files", action="store_true", help="Summarize files over --max-file-size.")
    fmt.add_argument(
        "--no-redact-credentials",
        dest="redact_credentials",
        action="store_false",
        help="Do not redact API keys and credentials.",
    )
    fmt.add_argument("--show-redacted", action="store_true", help="Report every redacted credential.")

    out = p.add_argument_group("output")
    out.add_argument("--dry-run", action="store_true", help="Show what would be collected, then stop.")
    out.add_argument("--summary", action="store_true", help="Only print the collection summary.")
    out.add_argument(
        "--no-copy", dest="clipboard", action="store_false", help="Print instead of copying to the clipboard."
    )
    out.add_argument("-o", "--output", type=Path, default=None, help="Write the document to this file.")
    out.add_argument("--verbose", action="store_true", help="Verbose logging.")
    out.add_argument("--log-file", type=str, default="", help="Log file path.")

    prof = p.add_argument_group("profiles")
    prof.add_argument("--save-config", type=str, default="", help="Save these options as a named profile.")
    prof.add_argument("--load-config", type=str, default="", help="Load a named profile.")
    prof.add_argument("--list-configs", action="store_true", help="List saved profiles.")
    return p


def parse_args(argv: Sequence[str] | None = None, *, profiles: ProfileStore | None = None) -> Settings:
    """Parse the command line into Settings, merging a loaded profile if requested.

    Options given explicitly on the command line (anything that differs from its
    default) win over the profile's values.

    Args:
        argv (Sequence[str] | None): command-line arguments, defaults to sys.argv
        profiles (ProfileStore | None): where `--load-config` looks for profiles

    Returns:
        Settings: the parsed settings

    Raises:
        ProfileNotFoundError: if the requested profile does not exist
        ProfileError: if the profile cannot be read
    """
    parser = build_parser()
    values: dict[str, Any] = vars(parser.parse_args(argv))
    for key in ("extensions", "files", "exclude", "ignore"):
        values[key] = _split_csv(values[key])

    if not values["load_config"]:
        return Settings(**values)

    explicit = {k: v for k, v in values.items() if v != parser.get_default(k)}
    loaded = (profiles or ProfileStore()).load(values["load_config"])
    logger.info("profile_loaded", name=values["load_config"], overrides=sorted(explicit))
    return Settings(**{**values, **loaded, **explicit})


def _err(message: str) -> None:
    print(message, file=sys.stderr)


def warn_limits(result: CollectResult, settings: Settings) -> None:
    """Tell the user when the selection exceeds the requested limits."""
    selection = result.selection
    limit_bytes = settings.limit * KIB
    if selection.total_size > limit_bytes:
        logger.warning("size_limit_exceeded", total_size=selection.total_size, limit=limit_bytes)
        _err(f"Warning: total size {selection.total_size} bytes exceeds the {settings.limit} KB limit.")
    if settings.tokens and selection.total_tokens > settings.tokens:
        logger.warning("token_limit_exceeded", tokens=selection.total_tokens, limit=settings.tokens)
        _err(f"Warning: ~{selection.total_tokens} tokens exceeds the {settings.tokens} token limit.")
    report = result.report
    if report.skipped_for_size:
        _err(f"Note: {report.skipped_for_size} files skipped because of size limits.")
    if report.skipped_for_encoding:
        _err(f"Note: {report.skipped_for_encoding} files skipped because they are not valid UTF-8.")
    if report.skipped_unreadable:
        _err(f"Note: {report.skipped_unreadable} files could not be read.")


def print_summary(result: CollectResult) -> None:
    """Print the collection summary: totals and the largest admitted files."""
    selection = result.selection
    report = result.report
    _err(f"Found {len(result.candidates)} candidate files, read {len(report.files)} ({report.total_size} bytes).")
    _err(
        f"Selected {len(selection.admitted)} files: {selection.total_size} bytes, ~{selection.total_tokens} tokens.",
    )
    if selection.rejected:
        _err(f"Left out {len(selection.rejected)} files to stay within the token budget.")
    largest = sorted(selection.admitted, key=lambda s: s.size, reverse=True)[:SUMMARY_TOP_FILES]
    if largest:
        _err("Largest files:")
        for n, s in enumerate(largest, start=1):
            _err(f"  {n:>2}. {s.rel} ({s.size} bytes, ~{estimate_tokens(s.size)} tokens, score {s.score})")


def report_redactions(packaged: PackageResult) -> None:
    for rel, findings in packaged.findings.items():
        for f in findings:
            logger.info("credential_redacted", path=rel, line=f.line, column=f.column, kind=f.kind)
            _err(f"  redacted {f.kind} in {rel}:{f.line}:{f.column} ({f.partial_value})")
    if packaged.findings:
        _err(f"Redacted {packaged.redaction_count} credentials in {len(packaged.findings)} files.")


def deliver(document: str, settings: Settings, *, file_count: int) -> None:
    """Write the document to a file, the clipboard, or stdout."""
    tokens = estimate_tokens(len(document))
    if settings.output is not None:
        settings.output.write_text(document, encoding="utf-8")
        _err(f"Wrote {settings.output} files={file_count} tokens=~{tokens}")
        return
    if settings.clipboard:
        try:
            pyperclip.copy(document)
        except pyperclip.PyperclipException as e:
            logger.warning("clipboard_unavailable", error=str(e))
            _err("Clipboard unavailable, printing the document instead.")
        else:
            _err(f"Copied {file_count} files (~{tokens} tokens) to the clipboard.")
            return
    sys.stdout.write(document)


def run(settings: Settings, profiles: ProfileStore) -> int:
    """Execute one codesnap run with already-parsed settings.

    Returns:
        int: the process exit code
    """
    if settings.list_configs:
        names = profiles.names()
        if not names:
            print(f"No saved configurations in {profiles.folder}.")
        for name in names:
            print(name)
        return 0

    if settings.save_config:
        path = profiles.save(settings.save_config, settings)
        _err(f"Configuration saved as {settings.save_config!r} ({path}).")

    root = settings.directory.resolve()
    if not root.is_dir():
        raise RootDirectoryError(folder=root)

    detection = detect_infrastructure(root) if settings.mode is Mode.AUTO else None
    if detection is not None and detection.detected:
        kinds = [k for k in ("terraform", "kubernetes", "ansible", "docker", "packer") if getattr(detection, k)]
        _err(f"Infrastructure project detected: {', '.join(kinds)}.")
    config: RunConfig = build_run_config(settings, detection)

    result = collect(config)
    if not result.candidates:
        _err("No files found matching the criteria.")
        return 0
    if not result.selection.admitted:
        _err("No files could be read within the configured limits.")
        return 0

    warn_limits(result, settings)
    if settings.dry_run or settings.summary:
        print_summary(result)
        return 0

    files = list(result.selection.admitted)
    if settings.interactive:
        files = [files[i] for i in select_files(files)]
        if not files:
            _err("No files selected.")
            return 0

    packaged = package(config, files)
    if settings.show_redacted:
        report_redactions(packaged)
    deliver(packaged.document, settings, file_count=len(files))
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    profiles = ProfileStore()
    try:
        settings = parse_args(argv, profiles=profiles)
    except CodesnapError as e:
        _err(f"Error: {e}")
        return 1

    setup_logging(settings.log_file or None, verbose=settings.verbose, force=True)

    try:
        return run(settings, profiles)
    except SelectionCancelledError as e:
        _err(str(e))
        return 0
    except CodesnapError as e:
        _err(f"Error: {e}")
        return 1
    except Exception as e:
        logger.exception("unexpected_error")
        _err(f"Error: {e}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
