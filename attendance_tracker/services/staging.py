"""Client-side staging of attendance edits.

A :class:`StagingBuffer` holds at most one pending status per student until
the edits are submitted in one bulk call. Rendering is a pure function of the
roster and the buffer.
"""
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from attendance_tracker.core.exceptions import ValidationError
from attendance_tracker.models.attendance import ATTENDANCE_STATUSES, PRESENT, ABSENT

PENDING = "pending"


class StagingBuffer:
    def __init__(self):
        self._edits: Dict[int, str] = {}

    def stage(self, student_id: int, status: str) -> None:
        if status not in ATTENDANCE_STATUSES:
            raise ValidationError(f"Invalid status '{status}'")
        self._edits[student_id] = status

    def get(self, student_id: int) -> Optional[str]:
        return self._edits.get(student_id)

    def discard(self, student_id: int) -> None:
        self._edits.pop(student_id, None)

    def clear(self) -> None:
        self._edits.clear()

    def items(self):
        return self._edits.items()

    def to_records(self, mark_date) -> List[Dict[str, Any]]:
        """Bulk-mark payload for every staged edit."""
        if isinstance(mark_date, date):
            mark_date = mark_date.isoformat()
        return [
            {"student_id": student_id, "date": mark_date, "status": status}
            for student_id, status in self._edits.items()
        ]

    def __len__(self):
        return len(self._edits)

    def __contains__(self, student_id):
        return student_id in self._edits

    def __bool__(self):
        return bool(self._edits)


@dataclass(frozen=True)
class RenderedRow:
    id: int
    roll_no: str
    name: str
    saved_status: Optional[str]
    status: str
    staged: bool


def apply_staged_edits(roster: Iterable[Mapping[str, Any]], buffer: StagingBuffer) -> List[RenderedRow]:
    rows = []
    for student in roster:
        saved = student.get("status")
        staged = buffer.get(student["id"])
        rows.append(RenderedRow(
            id=student["id"],
            roll_no=student["roll_no"],
            name=student["name"],
            saved_status=saved,
            status=staged or saved or PENDING,
            staged=staged is not None,
        ))
    return rows


def stage_all_present(roster: Iterable[Mapping[str, Any]], buffer: StagingBuffer) -> int:
    count = 0
    for student in roster:
        buffer.stage(student["id"], PRESENT)
        count += 1
    return count


def parse_roll_suffixes(text: str) -> List[str]:
    return [part.strip() for part in (text or "").split(",") if part.strip()]


def stage_absentees(
        roster: Iterable[Mapping[str, Any]],
        buffer: StagingBuffer,
        roll_suffixes: Sequence[str]
) -> Tuple[int, int]:
    """
    Stage students whose roll number ends with any suffix as absent and
    everyone else as present.

    Returns:
        (absent_count, present_count)
    """
    suffixes = [suffix for suffix in roll_suffixes if suffix]
    if not suffixes:
        raise ValidationError("No roll number suffixes given")

    absent = present = 0
    for student in roster:
        if any(str(student["roll_no"]).endswith(suffix) for suffix in suffixes):
            buffer.stage(student["id"], ABSENT)
            absent += 1
        else:
            buffer.stage(student["id"], PRESENT)
            present += 1
    return absent, present
