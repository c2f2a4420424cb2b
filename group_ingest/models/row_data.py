from __future__ import annotations

from dataclasses import dataclass

"""RawRow model for the group ingestion pipeline.

A RawRow is one data row exactly as the source delivered it: column labels
as they literally appear in that source (they differ from sheet to sheet)
mapped to the raw cell text. Nothing here is cleaned; see
group_ingest.services.normalizer for that.
"""

__all__ = [
    "RawRow",
]


@dataclass(frozen=True)
class RawRow:
    """Logical representation of a single source row before normalization.

    `ordinal` is the 1-based position of the row among the data rows of its
    source. Empty rows still consume an ordinal, so ordinals stay aligned
    with the source for audit and traceability.
    """
    sheet: str  # Source-sheet label (provenance)
    ordinal: int  # 1-based data row position
    values: dict[str, str | None]  # Column label -> raw text (None = blank cell)

    def get(self, label: str) -> str | None:
        return self.values.get(label)
