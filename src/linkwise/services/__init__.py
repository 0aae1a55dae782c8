"""File operations, consolidation and reporting services."""

from .file_service import FileService
from .action_service import ActionService
from .report_service import ReportService

__all__ = ["FileService", "ActionService", "ReportService"]
