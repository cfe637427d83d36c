"""
Audit trail storage.

Each AuditRecord is written as its own JSON file, named by audit id.
"""

from pathlib import Path
from uuid import UUID

from worksheet_grader.models import AuditRecord


class AuditTrail:
    """Stores and retrieves audit records in a directory."""

    def __init__(self, directory: Path):
        self._directory = directory

    @property
    def directory(self) -> Path:
        return self._directory

    def save(self, audit: AuditRecord) -> Path:
        """Write an audit record and return its path."""
        self._directory.mkdir(parents=True, exist_ok=True)
        path = self._path_for(audit.audit_id)
        path.write_text(audit.model_dump_json(indent=2), encoding="utf-8")
        return path

    def load(self, audit_id: UUID | str) -> AuditRecord:
        """
        Read an audit record back.

        Raises:
            FileNotFoundError: If no record exists for the id.
        """
        path = self._path_for(audit_id)
        return AuditRecord.model_validate_json(path.read_text(encoding="utf-8"))

    def _path_for(self, audit_id: UUID | str) -> Path:
        return self._directory / f"audit_{audit_id}.json"
