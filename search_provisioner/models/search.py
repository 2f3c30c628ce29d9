from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class SearchHit(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    index: str = Field(..., alias="_index")
    id: str = Field(..., alias="_id")
    score: Optional[float] = Field(default=None, alias="_score")
    source: dict[str, Any] = Field(default_factory=dict, alias="_source")

    @staticmethod
    def from_response(body: dict[str, Any]) -> list["SearchHit"]:
        hits = (body.get("hits") or {}).get("hits") or []
        return [SearchHit.model_validate(h) for h in hits]


class DocumentOutcome(BaseModel):
    """Result for one input line of a bulk load."""

    line_number: int
    succeeded: bool
    document_id: Optional[str] = None
    status: Optional[int] = None
    reason: Optional[str] = None


class BulkLoadResult(BaseModel):
    index_name: str
    total: int = 0
    successful: int = 0
    failed: int = 0
    refreshed: bool = False
    outcomes: list[DocumentOutcome] = Field(default_factory=list)

    def record(self, outcome: DocumentOutcome) -> None:
        self.outcomes.append(outcome)
        self.total += 1
        if outcome.succeeded:
            self.successful += 1
        else:
            self.failed += 1

    @property
    def failures(self) -> list[DocumentOutcome]:
        return [o for o in self.outcomes if not o.succeeded]


class DataRecord(BaseModel):
    """One well-formed input line, sent as one document."""

    line_number: int
    document: dict[str, Any]
