from __future__ import annotations

from dataclasses import dataclass, field
from typing import List


@dataclass
class ImportResult:
    """Outcome of a bulk import; bad rows are reported, not fatal."""

    success: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)

    def record_failure(self, label: str, message: str) -> None:
        self.failed += 1
        self.errors.append(f"{label}: {message}")

    def to_dict(self) -> dict:
        return {"success": self.success, "failed": self.failed, "errors": list(self.errors)}
