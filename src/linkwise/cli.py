#!/usr/bin/env python3
"""
linkwise CLI: find byte-identical files across directory trees and optionally
consolidate them into hardlinks or remove the extra copies.
Report mode is the default and never modifies the filesystem.
"""
from __future__ import annotations  # Enable postponed evaluation of annotations (PEP 563)
import argparse
import sys
import os
import time
from pathlib import Path
from typing import List, Optional, NoReturn
import logging

logging.basicConfig(
    level=logging.ERROR,
    format="%(levelname)-8s | %(name)-25s | %(message)s"
)

# === EARLY DEPENDENCY VALIDATION ===
_MISSING_DEPS = []
try:
    import send2trash
except ImportError:
    _MISSING_DEPS.append("send2trash")

try:
    import xxhash
except ImportError:
    _MISSING_DEPS.append("xxhash")

if _MISSING_DEPS:
    print("❌ Missing required dependencies:", file=sys.stderr)
    print(f"   pip install {' '.join(_MISSING_DEPS)}", file=sys.stderr)
    sys.exit(1)

# === NORMAL IMPORTS (after validation) ===
from linkwise.backends import BackendError
from linkwise.commands import DeduplicationCommand
from linkwise.core.models import (
    ActionMode, ActionReport, DeduplicationParams, DuplicateSet, RunStatistics,
    DEFAULT_BATCH_SIZE, DEFAULT_DB_PATH, DEFAULT_TABLE_NAME,
)
from linkwise.services.action_service import ActionService
from linkwise.services.report_service import ReportService
from linkwise.utils.convert_utils import ConvertUtils
from linkwise.aliases import (
    MODE_ALIASES, MODE_CHOICES, MODE_HELP_TEXT,
    BACKEND_ALIASES, BACKEND_CHOICES, BACKEND_HELP_TEXT,
    ALGORITHM_CHOICES, EPILOG_TEXT
)

VERBOSITY_LEVELS = {0: logging.ERROR, 1: logging.INFO}


class CLIApplication:
    """Main CLI application controller."""

    def __init__(self):
        self.start_time: float = time.time()
        self.verbose: bool = False
        self.quiet: bool = False

        # Fix encoding for Windows consoles to prevent UnicodeEncodeError
        for stream in (sys.stdout, sys.stderr):
            if hasattr(stream, "reconfigure"):
                stream.reconfigure(encoding='utf-8')

    @staticmethod
    def parse_args(args=None) -> argparse.Namespace:
        """Parse command-line arguments."""
        parser = argparse.ArgumentParser(
            prog="linkwise",
            description="linkwise: duplicate file finder with hardlink consolidation",
            formatter_class=argparse.RawTextHelpFormatter,
            epilog=EPILOG_TEXT
        )

        parser.add_argument(
            "roots",
            nargs="+",
            type=str,
            help="Directories to scan for duplicates"
        )

        # Detection options
        parser.add_argument(
            "--mode",
            choices=MODE_CHOICES,
            default="report",
            type=str,
            help=MODE_HELP_TEXT
        )
        parser.add_argument(
            "--backend",
            choices=BACKEND_CHOICES,
            default="memory",
            type=str,
            help=BACKEND_HELP_TEXT
        )
        parser.add_argument(
            "--batch-size",
            default=DEFAULT_BATCH_SIZE,
            type=int,
            metavar='',
            dest="batch_size",
            help=f"Rows per insert transaction for the sqlite backend. Default: {DEFAULT_BATCH_SIZE}"
        )
        parser.add_argument(
            "--db",
            default=DEFAULT_DB_PATH,
            type=str,
            metavar='',
            help=f"SQLite catalog file (recreated on every run). Default: {DEFAULT_DB_PATH}"
        )
        parser.add_argument(
            "--table",
            default=DEFAULT_TABLE_NAME,
            type=str,
            metavar='',
            help=f"SQLite catalog table name. Default: {DEFAULT_TABLE_NAME}"
        )
        parser.add_argument(
            "--algorithm",
            choices=ALGORITHM_CHOICES,
            default="sha256",
            type=str,
            help="Full-content digest algorithm. Default: sha256"
        )
        parser.add_argument(
            "--block-size",
            default="64K",
            type=str,
            metavar='',
            dest="block_size",
            help="Front-block pre-filter size (e.g., 4K, 1MB); 0 disables it. Default: 64K"
        )
        parser.add_argument(
            "--workers",
            default=1,
            type=int,
            metavar='',
            help="Parallel hashing workers. Default: 1"
        )
        parser.add_argument(
            "--cross-device",
            action="store_true",
            dest="cross_device",
            help="Group identical files across filesystems too (report only; they cannot be hardlinked)"
        )

        # Actions
        parser.add_argument(
            "--dry-run",
            action="store_true",
            dest="dry_run",
            help="Show what hardlink/delete would do without changing anything"
        )
        parser.add_argument(
            "--trash",
            action="store_true",
            help="In delete mode, move duplicates to the system trash instead of removing them"
        )

        # Output options
        parser.add_argument(
            "--force",
            action="store_true",
            help="Skip confirmation prompt for hardlink/delete (required for automation/scripts)"
        )
        parser.add_argument(
            "--quiet", "-q",
            action="store_true",
            help="Suppress non-essential output"
        )
        parser.add_argument(
            "--verbose", "-v",
            action="count",
            default=0,
            help="Show progress and statistics (-v), add debug logging (-vv)"
        )

        return parser.parse_args(args)

    def validate_args(self, args: argparse.Namespace) -> None:
        """Validate command-line arguments before any traversal."""
        mode = MODE_ALIASES[args.mode]

        if args.force and not mode.is_destructive:
            self.error_exit("--force can only be used with --mode hardlink or --mode delete")
        if args.trash and mode is not ActionMode.DELETE:
            self.error_exit("--trash can only be used with --mode delete")
        if args.dry_run and not mode.is_destructive:
            self.warning("--dry-run has no effect in report mode")

        # Prevent interactive confirmation in non-TTY environments
        if mode.is_destructive and not args.force and not args.dry_run:
            if not sys.stdin.isatty() or not sys.stdout.isatty():
                self.error_exit(
                    "Cannot request interactive confirmation in non-interactive session.\n"
                    "Use --force flag to proceed without confirmation when piping output or running in scripts."
                )

        for root in args.roots:
            root_path = Path(root).resolve()
            if not root_path.exists():
                self.error_exit(f"Directory not found: {root}")
            if not root_path.is_dir():
                self.error_exit(f"Path is not a directory: {root}")

        if not ConvertUtils.is_valid_size_format(args.block_size):
            self.error_exit(f"Invalid size format: '{args.block_size}'")

        if args.cross_device and mode is ActionMode.HARDLINK:
            self.warning("Sets spanning filesystems will be reported as failures in hardlink mode")

    def create_params(self, args: argparse.Namespace) -> DeduplicationParams:
        """Create DeduplicationParams from CLI arguments."""
        try:
            return DeduplicationParams.from_human_readable(
                roots=[str(Path(root).resolve()) for root in args.roots],
                block_size_str=args.block_size,
                mode=MODE_ALIASES[args.mode],
                backend=BACKEND_ALIASES[args.backend],
                batch_size=args.batch_size,
                db_path=args.db,
                table_name=args.table,
                algorithm=args.algorithm,
                workers=args.workers,
                cross_device=args.cross_device,
                dry_run=args.dry_run,
                use_trash=args.trash,
            )
        except ValueError as e:
            self.error_exit(f"Parameter error: {e}")

    def progress_callback(self, stage: str, current: int, total: Optional[int]) -> None:
        """CLI progress callback - shows progress in console."""
        if not self.verbose:
            return

        if total and total > 0:
            percent = (current / total) * 100
            sys.stderr.write(
                f"\r  [{stage}] {current}/{total} ({percent:.1f}%)"
            )
            sys.stderr.flush()
        else:
            sys.stderr.write(f"\r  [{stage}] {current} items processed...")
            sys.stderr.flush()

    @staticmethod
    def stopped_flag() -> bool:
        """Check if operation should stop (placeholder for signal handling)."""
        return False

    def run_deduplication(self, command: DeduplicationCommand):
        """Execute detection; any failure here happens before a file is touched."""
        params = command.params
        if self.verbose:
            print(f"Finding duplicates (backend: {params.backend.value}, digest: {params.algorithm})...")

        try:
            sets, stats = command.execute(
                progress_callback=self.progress_callback if self.verbose else None,
                stopped_flag=self.stopped_flag
            )
        except BackendError as e:
            self.error_exit(f"Backend failure: {e}")
        except RuntimeError as e:
            self.error_exit(f"Deduplication failed: {e}")

        if self.verbose:
            sys.stderr.write("\n")
            print(stats.print_summary())
        return sets, stats

    def output_results(self, sets: List[DuplicateSet]) -> None:
        """Output duplicate sets as plain text."""
        if self.quiet:
            return
        print()
        print(ReportService.format_duplicate_sets(sets))

    def execute_actions(
            self,
            command: DeduplicationCommand,
            sets: List[DuplicateSet],
            force: bool = False
    ) -> List[ActionReport]:
        """Consolidate duplicate sets after confirmation. Per-file failures are reported, not fatal."""
        params = command.params
        if not params.mode.is_destructive or not sets:
            return []

        paths, planned_bytes = ActionService.plan(sets)
        if not paths:
            return []

        verb = params.mode.display_name.lower()
        if params.use_trash:
            verb = "move to trash"
        print()
        print("=" * 60)
        print(f"Plan: {verb} {len(paths)} files in {len(sets)} groups, keeping the first file of each group")
        print(f"Space to reclaim: {ConvertUtils.bytes_to_human(planned_bytes)}")
        print()

        if params.dry_run:
            print("Dry run: no files will be modified.")
        elif force:
            print(f"⚠️  WARNING: --force flag skips confirmation. Proceeding with {verb}...")
        else:
            # Safety check: confirm we're still in interactive mode
            if not sys.stdin.isatty() or not sys.stdout.isatty():
                self.error_exit(
                    "Lost interactive terminal during operation. "
                    "Use --force to proceed in non-interactive environments."
                )
            response = input(f"Are you sure you want to {verb} {len(paths)} files? [y/N]: ")
            if response.strip().lower() not in ("y", "yes"):
                print("Operation cancelled by user.")
                return []

        reports = command.apply(sets, stopped_flag=self.stopped_flag)

        failures = ReportService.format_action_failures(reports)
        if failures:
            print()
            print(failures)
        elif not params.dry_run:
            print(f"✅ Successfully processed {len(paths)} files.")
        return reports

    def output_summary(self, stats: RunStatistics, reports: List[ActionReport]) -> None:
        if self.quiet:
            return
        print()
        print(ReportService.format_summary(stats, reports))

    def warning(self, message: str) -> None:
        """Print a warning message to stderr."""
        if not self.quiet:
            print(f"⚠️  {message}", file=sys.stderr)

    @staticmethod
    def error_exit(message: str, code: int = 1) -> NoReturn:
        """Print error and exit."""
        print(f"❌ Error: {message}", file=sys.stderr)
        sys.exit(code)

    @staticmethod
    def configure_logging(verbosity: int) -> None:
        logging.getLogger().setLevel(VERBOSITY_LEVELS.get(verbosity, logging.DEBUG))

    def run(self, argv: Optional[List[str]] = None) -> None:
        """Main entry point with conditional output behavior."""
        args = self.parse_args(argv)
        self.verbose = args.verbose > 0
        self.quiet = args.quiet
        self.configure_logging(args.verbose)

        self.validate_args(args)
        params = self.create_params(args)

        if not self.quiet:
            print(f"Scanning: {', '.join(params.roots)}")

        command = DeduplicationCommand(params)
        sets, stats = self.run_deduplication(command)
        self.output_results(sets)
        reports = self.execute_actions(command, sets, force=args.force)
        self.output_summary(stats, reports)

        elapsed = time.time() - self.start_time
        if self.verbose:
            print(f"\n✅ Completed in {elapsed:.2f} seconds")


def main(argv: Optional[List[str]] = None) -> None:
    """Application entry point."""
    app = CLIApplication()
    try:
        app.run(argv)
    except KeyboardInterrupt:
        print("\n⚠️  Operation cancelled by user (Ctrl+C)")
        sys.exit(130)
    except Exception as e:
        if os.environ.get("DEBUG"):
            raise
        print(f"❌ Unexpected error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
