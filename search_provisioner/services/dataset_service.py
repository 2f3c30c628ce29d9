from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterator, Union

from search_provisioner.models.search import DataRecord, DocumentOutcome


logger = logging.getLogger(__name__)


class DatasetService:
    """Reads a newline-delimited JSON file as one document per line.

    Blank lines are skipped. A line that is not valid UTF-8 or not a JSON
    object comes back as a failed `DocumentOutcome` so the loader can report
    it without sending it.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def read_records(self) -> Iterator[Union[DataRecord, DocumentOutcome]]:
        with self._path.open("rb") as fh:
            for line_number, line in enumerate(fh, start=1):
                raw = line.strip()
                if not raw:
                    continue
                yield self.parse_line(line_number, raw)

    @staticmethod
    def parse_line(line_number: int, raw: Union[bytes, str]) -> Union[DataRecord, DocumentOutcome]:
        if isinstance(raw, bytes):
            try:
                text = raw.decode("utf-8")
            except UnicodeDecodeError as exc:
                logger.debug("Skipping undecodable line %d: %s", line_number, exc)
                return DocumentOutcome(line_number=line_number, succeeded=False, reason=f"invalid UTF-8: {exc}")
        else:
            text = raw

        try:
            document = json.loads(text)
        except ValueError as exc:
            logger.debug("Skipping malformed line %d: %s", line_number, exc)
            return DocumentOutcome(line_number=line_number, succeeded=False, reason=f"invalid JSON: {exc}")

        if not isinstance(document, dict):
            return DocumentOutcome(
                line_number=line_number,
                succeeded=False,
                reason=f"expected a JSON object, got {type(document).__name__}",
            )
        return DataRecord(line_number=line_number, document=document)
