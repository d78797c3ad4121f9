"""Graph-side error types.

Validation never raises: structural problems come back as strings on a
ValidationResult. The errors here are for operations that cannot produce
anything usable at all (no start node, unreadable story file, a legacy
payload that fails its schema).
"""

from __future__ import annotations

from dataclasses import dataclass, field


class StoryGraphError(Exception):
    """Base class for unrecoverable story graph failures."""


@dataclass
class LoadError(StoryGraphError):
    """Raised when a story cannot be indexed for play.

    Attributes:
        reason: What went wrong.
        candidates: Start-node candidates found, when start detection failed.
    """

    reason: str
    candidates: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if not self.candidates:
            return self.reason
        shown = ", ".join(f"'{c}'" for c in self.candidates[:5])
        if len(self.candidates) > 5:
            shown += f", ... and {len(self.candidates) - 5} more"
        return f"{self.reason} (candidates: {shown})"


@dataclass
class ConversionError(StoryGraphError):
    """Raised when an authoring graph cannot be converted.

    Attributes:
        errors: Conversion errors, in the order they were found.
    """

    errors: list[str]

    def __post_init__(self) -> None:
        super().__init__(f"Conversion failed with {len(self.errors)} error(s)")

    def __str__(self) -> str:
        lines = ["Conversion failed:"]
        for e in self.errors[:5]:
            lines.append(f"  - {e}")
        if len(self.errors) > 5:
            lines.append(f"  - ... and {len(self.errors) - 5} more")
        return "\n".join(lines)


@dataclass
class MigrationError(StoryGraphError):
    """Raised when a legacy story payload fails its schema check.

    Attributes:
        reasons: One line per schema problem.
    """

    reasons: list[str]

    def __post_init__(self) -> None:
        super().__init__(f"Legacy story is malformed: {'; '.join(self.reasons[:3])}")
