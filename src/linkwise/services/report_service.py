"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

services/report_service.py
Plain-text rendering of duplicate sets, action outcomes and the run summary.
"""
from typing import List

from linkwise.core.models import ActionReport, DuplicateSet, RunStatistics
from linkwise.utils.convert_utils import ConvertUtils


class ReportService:
    @staticmethod
    def format_duplicate_sets(sets: List[DuplicateSet]) -> str:
        """Duplicate paths grouped by digest; the canonical member is marked [KEEP]."""
        if not sets:
            return "No duplicate groups found."

        total_files = sum(len(s.files) for s in sets)
        lines = [f"Found {len(sets)} duplicate groups ({total_files} files)"]
        for idx, dup in enumerate(sets, 1):
            size_str = ConvertUtils.bytes_to_human(dup.size)
            lines.append("")
            lines.append(
                f"📁 Group {idx} | Digest: {ConvertUtils.short_digest(dup.digest)} "
                f"| Size: {size_str} | Files: {len(dup.files)}"
            )
            for position, record in enumerate(dup.files):
                marker = "[KEEP]" if position == 0 else "[DUP] "
                lines.append(f"   {marker} {record.path}")
                for alias in record.aliases:
                    lines.append(f"          = {alias} (hardlink)")
        return "\n".join(lines)

    @staticmethod
    def format_action_failures(reports: List[ActionReport], limit: int = 20) -> str:
        failures = [r for report in reports for r in report.failed]
        if not failures:
            return ""
        lines = [f"Failed actions ({len(failures)}):"]
        for result in failures[:limit]:
            lines.append(f"  • {result.path}: {result.message}")
        if len(failures) > limit:
            lines.append(f"  ...and {len(failures) - limit} more")
        return "\n".join(lines)

    @staticmethod
    def format_summary(stats: RunStatistics, reports: List[ActionReport] = None) -> str:
        """
        Final summary. Always separates files compared, duplicates found and
        actions failed so a clean run can be told apart from a partial one.
        """
        reports = reports or []
        succeeded = sum(len(r.succeeded) for r in reports)
        failed = sum(len(r.failed) for r in reports)
        reclaimed = sum(r.bytes_reclaimed for r in reports)
        dry_run = any(r.dry_run for r in reports)

        lines = [
            "=" * 60,
            "Summary",
            "-" * 60,
            f"Files scanned:              {stats.files_scanned}",
            f"Files cataloged:            {stats.files_cataloged}",
            f"Zero-byte files:            {stats.zero_byte_files}",
            f"Scan errors:                {stats.scan_errors}",
            f"Unique-size eliminations:   {stats.unique_size_eliminations}",
            f"Hardlink eliminations:      {stats.hardlink_eliminations}",
            f"Partial-hash eliminations:  {stats.partial_hash_eliminations}",
            f"Files compared:             {stats.files_compared}",
            f"Hash failures:              {stats.hash_failures}",
            f"Duplicates found:           {stats.duplicate_files} files in {stats.duplicate_sets} groups",
            f"Reclaimable space:          {ConvertUtils.bytes_to_human(stats.reclaimable_bytes)}",
        ]
        label = "Actions planned" if dry_run else "Actions succeeded"
        lines.append(f"{label + ':':<28}{succeeded}")
        lines.append(f"{'Actions failed:':<28}{failed}")
        lines.append(f"{'Space reclaimed:':<28}{ConvertUtils.bytes_to_human(0 if dry_run else reclaimed)}")
        lines.append("=" * 60)
        return "\n".join(lines)
