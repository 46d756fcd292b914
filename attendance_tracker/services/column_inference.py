from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

ROLL_NO = "roll_no"
NAME = "name"
EMAIL = "email"

# Field -> synonyms in priority order. The first header cell (left to right)
# containing any synonym wins.
COLUMN_RULES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    (ROLL_NO, ("roll", "id", "number", "no")),
    (NAME, ("name", "student", "full")),
    (EMAIL, ("email", "mail", "contact")),
)

REQUIRED_FIELDS = (ROLL_NO, NAME)


def _header_text(cell) -> str:
    if cell is None:
        return ""
    return str(cell).strip().lower()


def find_column_index(headers: Sequence, synonyms: Sequence[str]) -> Optional[int]:
    """Return the index of the first header containing any synonym, or None."""
    for index, cell in enumerate(headers):
        header = _header_text(cell)
        if not header:
            continue
        for synonym in synonyms:
            if synonym.lower() in header:
                return index
    return None


@dataclass(frozen=True)
class ColumnMap:
    roll_no: Optional[int]
    name: Optional[int]
    email: Optional[int]

    def missing_required(self) -> List[str]:
        return [field for field in REQUIRED_FIELDS if getattr(self, field) is None]


def infer_columns(headers: Sequence, rules=COLUMN_RULES) -> ColumnMap:
    indices: Dict[str, Optional[int]] = {
        field: find_column_index(headers, synonyms) for field, synonyms in rules
    }
    return ColumnMap(
        roll_no=indices.get(ROLL_NO),
        name=indices.get(NAME),
        email=indices.get(EMAIL),
    )
