from linkwise.core.models import ActionMode, BackendKind, SUPPORTED_ALGORITHMS

MODE_ALIASES = {
    "report": ActionMode.REPORT,
    "hardlink": ActionMode.HARDLINK,
    "link": ActionMode.HARDLINK,
    "delete": ActionMode.DELETE,
    "rm": ActionMode.DELETE,
}

MODE_CHOICES = list(MODE_ALIASES.keys())

MODE_HELP_TEXT = (
    "What to do with confirmed duplicates:\n"
    "  report        : Only list duplicate sets (default, never modifies files)\n"
    "  hardlink/link : Replace every duplicate with a hardlink to the kept file\n"
    "  delete/rm     : Remove every duplicate, keeping one file per set\n"
    "Example:\n"
    "  %(prog)s ~/Photos --mode hardlink --dry-run"
)

BACKEND_ALIASES = {
    "memory": BackendKind.MEMORY,
    "sqlite": BackendKind.SQLITE,
}

BACKEND_CHOICES = list(BACKEND_ALIASES.keys())

BACKEND_HELP_TEXT = (
    "Where the catalog is grouped and resolved:\n"
    f"  memory : {BackendKind.MEMORY.description}\n"
    f"  sqlite : {BackendKind.SQLITE.description}\n"
)

ALGORITHM_CHOICES = list(SUPPORTED_ALGORITHMS)

EPILOG_TEXT = """
Examples:
  Report duplicates in two directories
  %(prog)s ~/Downloads ~/Documents

  Preview hardlinking without touching anything
  %(prog)s /srv/media --mode link --dry-run

  Hardlink duplicates without confirmation (for scripts)
  %(prog)s /srv/media --mode hardlink --force

  Catalog a very large tree in SQLite and move duplicates to trash
  %(prog)s /data --backend sqlite --db /var/tmp/catalog.db --mode rm --trash

  Report duplicates that live on different filesystems too
  %(prog)s /mnt/a /mnt/b --cross-device
"""
