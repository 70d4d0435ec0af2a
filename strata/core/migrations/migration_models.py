"""
Migration Models

Data models for migration metadata.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional
from datetime import datetime


class MigrationStatus(Enum):
    """Migration execution status."""
    PENDING = "pending"
    APPLIED = "applied"


@dataclass(frozen=True)
class MigrationFile:
    """
    A migration file discovered in the migrations directory.

    The name is the file's base name and is the migration's identity in the
    tracking table. Ordinal is the position in the sorted sequence.
    """
    name: str
    path: str
    ordinal: int

    def __str__(self) -> str:
        return f"Migration({self.name})"


@dataclass(frozen=True)
class MigrationRecord:
    """
    A row of the tracking table.
    """
    migration_name: str
    executed_at: Optional[datetime] = None


@dataclass
class MigrationState:
    """Status of one discovered migration against the tracking table."""
    name: str
    status: MigrationStatus = MigrationStatus.PENDING
    executed_at: Optional[datetime] = None

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "status": self.status.value,
            "executed_at": self.executed_at.isoformat() if self.executed_at else None,
        }


@dataclass
class RunResult:
    """
    Outcome of one MigrationRunner.run() call.
    """
    executed_names: List[str] = field(default_factory=list)
    skipped_names: List[str] = field(default_factory=list)

    @property
    def executed(self) -> int:
        return len(self.executed_names)

    @property
    def skipped(self) -> int:
        return len(self.skipped_names)

    def to_dict(self) -> Dict[str, int]:
        return {"executed": self.executed, "skipped": self.skipped}
