# models/duplicate_models.py

from dataclasses import dataclass, field
from typing import Any, List, Optional

@dataclass
class DocumentRef:
    index: str
    id: str

@dataclass
class FailedDelete:
    index: str
    id: str
    status: Optional[int] = None
    error: Optional[Any] = None

@dataclass
class DeleteResult:
    requested: int = 0
    deleted: int = 0
    failed: List[FailedDelete] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

@dataclass
class GroupResult:
    index: str
    key: Any
    kept: DocumentRef
    deleted: List[DocumentRef]
    result: DeleteResult

@dataclass
class IndexSummary:
    index: str
    duplicate_keys: int = 0
    groups: List[GroupResult] = field(default_factory=list)

    @property
    def documents_deleted(self) -> int:
        return sum(group.result.deleted for group in self.groups)

    @property
    def failed(self) -> List[FailedDelete]:
        return [failure for group in self.groups for failure in group.result.failed]

@dataclass
class RunSummary:
    indices: List[IndexSummary] = field(default_factory=list)

    @property
    def documents_deleted(self) -> int:
        return sum(summary.documents_deleted for summary in self.indices)

    @property
    def failed(self) -> List[FailedDelete]:
        return [failure for summary in self.indices for failure in summary.failed]
