# inventory/models.py

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, NamedTuple, Optional

@dataclass
class InventoryRecord:
    name: str
    path: str
    extension: str = ''
    size: int = 0
    is_directory: bool = False
    created_time: int = 0
    modified_time: int = 0
    accessed_time: int = 0
    attributes: str = ''
    is_deleted: bool = False
    last_seen: Optional[int] = None
    id: Optional[int] = None

class InventoryStats(NamedTuple):
    directories: int
    files: int
    total_size: int

@dataclass
class ScanResult:
    root: str
    refresh: bool
    scan_time: int
    inserted: int = 0
    updated: int = 0
    marked_deleted: int = 0
    directories: int = 0
    files: int = 0
    total_size: int = 0
    inventory: Optional[InventoryStats] = None
    start_time: datetime = None
    end_time: datetime = None
    errors: List[str] = field(default_factory=list)

    @property
    def duration(self) -> float:
        if self.start_time is None or self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()
