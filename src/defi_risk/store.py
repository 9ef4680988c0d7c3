import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

import pydantic
from pydantic import TypeAdapter

from defi_risk.errors import StoreError, ValidationError
from defi_risk.models.analysis import AnalysisResult
from defi_risk.models.portfolio import Portfolio

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 100

_history_adapter = TypeAdapter(list[AnalysisResult])


class PortfolioStore(Protocol):
    def load(self, path: Path) -> Portfolio: ...

    def save(self, path: Path, result: AnalysisResult) -> None: ...

    def load_history(self, path: Path) -> list[AnalysisResult]: ...


class JsonPortfolioStore:
    """Portfolio definitions and analysis history as JSON files."""

    def __init__(self, history_limit: int = HISTORY_LIMIT) -> None:
        self.history_limit = history_limit

    def load(self, path: Path) -> Portfolio:
        raw = self._read_json(Path(path), what="portfolio")
        try:
            return Portfolio.model_validate(raw)
        except pydantic.ValidationError as e:
            raise ValidationError(f"Invalid portfolio file {path}", cause=e) from e

    def load_history(self, path: Path) -> list[AnalysisResult]:
        """Persisted results, oldest first. A missing file is an empty history."""
        path = Path(path)
        if not path.exists():
            return []
        raw = self._read_json(path, what="history")
        try:
            return _history_adapter.validate_python(raw)
        except pydantic.ValidationError as e:
            raise StoreError(f"Malformed history file {path}", cause=e) from e

    def save(self, path: Path, result: AnalysisResult) -> None:
        """Append ``result`` and keep only the newest ``history_limit`` entries."""
        path = Path(path)
        try:
            history = self.load_history(path)
        except StoreError:
            logger.warning("Existing history at %s unreadable, starting fresh", path)
            history = []

        history.append(result)
        history = history[-self.history_limit :]
        payload = json.dumps(
            _history_adapter.dump_python(history, mode="json"),
            ensure_ascii=False,
            indent=2,
        )
        try:
            _atomic_write(path, payload)
        except OSError as e:
            raise StoreError(f"Failed to save result to {path}", cause=e) from e

    @staticmethod
    def _read_json(path: Path, what: str) -> object:
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise StoreError(f"Failed to read {what} from {path}", cause=e) from e
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise StoreError(f"{what.capitalize()} file {path} is not JSON", cause=e) from e


class MemoryPortfolioStore:
    """Keeps history in memory; used by demo runs so nothing touches disk."""

    def __init__(
        self,
        portfolio: Portfolio | None = None,
        history_limit: int = HISTORY_LIMIT,
    ) -> None:
        self.portfolio = portfolio
        self.history_limit = history_limit
        self.history: dict[Path, list[AnalysisResult]] = {}

    def load(self, path: Path) -> Portfolio:
        if self.portfolio is None:
            raise StoreError(f"No portfolio stored for {path}")
        return self.portfolio

    def save(self, path: Path, result: AnalysisResult) -> None:
        entries = self.history.setdefault(Path(path), [])
        entries.append(result)
        del entries[: -self.history_limit]

    def load_history(self, path: Path) -> list[AnalysisResult]:
        return list(self.history.get(Path(path), []))


def _atomic_write(path: Path, text: str) -> None:
    """Write via a sibling temp file and rename, so readers never see a partial file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise
