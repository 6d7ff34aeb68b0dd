from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from campus_portal.types import APPLICATION_STATUSES, TERMINAL_STATUSES

TransitionMode = Literal["permissive", "strict"]

STRICT_SUCCESSORS: dict[str, frozenset[str]] = {
    "applied": frozenset({"under_review", "rejected"}),
    "under_review": frozenset({"shortlisted", "rejected"}),
    "shortlisted": frozenset({"interviewed", "rejected"}),
    "interviewed": frozenset({"selected", "rejected"}),
    "selected": frozenset(),
    "rejected": frozenset(),
}


@dataclass(slots=True)
class TransitionPolicy:
    mode: TransitionMode = "permissive"

    def allows(self, current: str, new: str) -> bool:
        if new not in APPLICATION_STATUSES:
            return False

        if self.mode == "permissive":
            return True

        if self.mode == "strict":
            if current in TERMINAL_STATUSES:
                return False
            return new in STRICT_SUCCESSORS.get(current, frozenset())

        raise ValueError(f"unsupported transition mode '{self.mode}'")
