"""Sink contract for extracted question records."""

from __future__ import annotations

from abc import ABC, abstractmethod

RECORD_FIELDS = ("question", "companies", "tags", "answerCount", "askedWhen", "link")


class BaseExporter(ABC):
    """Append-only output; one ``export`` call per record."""

    @abstractmethod
    def export(self, record: dict) -> bool:
        """Append a single record; return ``False`` if the sink rejected it."""

    @abstractmethod
    def flush(self) -> None:
        """Flush buffered data to destination."""

    @abstractmethod
    def close(self) -> None:
        """Release underlying resources."""


__all__ = ["BaseExporter", "RECORD_FIELDS"]
