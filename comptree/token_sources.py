"""Operator and operand token sources for the composite tree generator.

Branch nodes draw an ``OperatorRecord`` (``pre``, ``inter`` and ``post``
fragments plus a ``low``/``high`` child-count range) and leaf nodes draw a
single operand token.  Both kinds of source are cursors over a finite
vocabulary that rewind to their beginning when exhausted:

* ``FileOperatorSource`` / ``FileOperandSource`` read whitespace separated
  tokens from text files.  Operator files group five tokens per record while
  operand files use one token per record.  Lines starting with ``#`` are
  ignored.
* ``SequenceOperatorSource`` / ``SequenceOperandSource`` wrap in-memory
  vocabularies and are handy for injection in tests.

Every fetch follows the same policy: when the source cannot supply a complete
record it rewinds once and retries.  A second exhaustion (or an I/O error)
surfaces as :class:`TokenSourceReadFailure`.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Deque, Generic, Iterable, List, Protocol, Sequence, TextIO, Tuple, TypeVar, Union

logger = logging.getLogger(__name__)

SENTINEL = "."
OPERATOR_FIELD_COUNT = 5
COMMENT_PREFIX = "#"

_RecordT = TypeVar("_RecordT")
_FileSourceT = TypeVar("_FileSourceT", bound="_FileSource")


class TokenSourceError(RuntimeError):
    """Base class for failures raised by token sources."""


class TokenSourceUnavailable(TokenSourceError):
    """Raised when a token source cannot be opened."""


class TokenSourceReadFailure(TokenSourceError):
    """Raised when a token source cannot supply a record, even after rewinding."""


class TokenSourceExhausted(TokenSourceError):
    """Raised internally when a source runs out of complete records."""


@dataclass(frozen=True, slots=True)
class OperatorRecord:
    """Fragments and child-count range consumed by a single branch node."""

    pre: str
    inter: str
    post: str
    low: int
    high: int

    def __post_init__(self) -> None:
        for label, fragment in (("pre", self.pre), ("inter", self.inter), ("post", self.post)):
            if not isinstance(fragment, str):
                raise TypeError(f"OperatorRecord.{label} must be a string")
        for label, bound in (("low", self.low), ("high", self.high)):
            if not isinstance(bound, int) or isinstance(bound, bool):
                raise TypeError(f"OperatorRecord.{label} must be an integer")
            if bound < 1:
                raise ValueError(f"OperatorRecord.{label} must be at least 1, got {bound}")

    @property
    def child_range(self) -> Tuple[int, int]:
        """Return the inclusive child-count range, ordered low to high.

        Records whose ``low`` exceeds ``high`` are treated as an unordered
        pair so the draw happens over ``[high, low]``.
        """

        return min(self.low, self.high), max(self.low, self.high)

    @classmethod
    def from_fields(cls, fields: Sequence[str], *, origin: str = "operator record") -> "OperatorRecord":
        """Parse ``pre inter post low high`` tokens into a record."""

        if len(fields) != OPERATOR_FIELD_COUNT:
            raise TokenSourceReadFailure(
                f"{origin}: expected {OPERATOR_FIELD_COUNT} fields, got {len(fields)}"
            )
        pre, inter, post, low_text, high_text = fields
        try:
            low = int(low_text, 10)
            high = int(high_text, 10)
        except ValueError as exc:
            raise TokenSourceReadFailure(
                f"{origin}: child counts must be integers, got {low_text!r} and {high_text!r}"
            ) from exc
        try:
            return cls(pre, inter, post, low, high)
        except ValueError as exc:
            raise TokenSourceReadFailure(f"{origin}: {exc}") from exc

    @classmethod
    def passthrough(cls, sentinel: str = SENTINEL) -> "OperatorRecord":
        """Return a record that wraps exactly one child without emitting text."""

        return cls(sentinel, sentinel, sentinel, 1, 1)


OperatorLike = Union[OperatorRecord, Tuple[str, str, str, int, int]]


class OperatorSource(Protocol):
    """Anything able to hand out operator records on request."""

    def next_operator(self) -> OperatorRecord:
        ...

    def rewind(self) -> None:
        ...


class OperandSource(Protocol):
    """Anything able to hand out operand tokens on request."""

    def next_operand(self) -> str:
        ...

    def rewind(self) -> None:
        ...


class _RewindingSource(Generic[_RecordT]):
    """Single rewind-and-retry policy shared by every concrete source."""

    def __init__(self, label: str) -> None:
        self.label = label

    def rewind(self) -> None:  # pragma: no cover - abstract
        raise NotImplementedError

    def _read_record(self) -> _RecordT:  # pragma: no cover - abstract
        raise NotImplementedError

    def _next_record(self) -> _RecordT:
        try:
            return self._read_record()
        except TokenSourceExhausted:
            logger.debug("%s exhausted; rewinding to the first record", self.label)

        self.rewind()
        try:
            return self._read_record()
        except TokenSourceExhausted as exc:
            raise TokenSourceReadFailure(
                f"{self.label} has no complete record even after rewinding"
            ) from exc


class _SequenceSource(_RewindingSource[_RecordT]):
    def __init__(self, items: Sequence[_RecordT], label: str) -> None:
        super().__init__(label)
        self._items = tuple(items)
        self._cursor = 0

    def __len__(self) -> int:
        return len(self._items)

    def rewind(self) -> None:
        self._cursor = 0

    def _read_record(self) -> _RecordT:
        if self._cursor >= len(self._items):
            raise TokenSourceExhausted(f"{self.label} has no records left")
        item = self._items[self._cursor]
        self._cursor += 1
        return item


class SequenceOperatorSource(_SequenceSource[OperatorRecord]):
    """In-memory operator vocabulary cycling through ``records``."""

    def __init__(self, records: Iterable[OperatorLike], *, label: str = "operator sequence") -> None:
        normalised: List[OperatorRecord] = []
        for record in records:
            if isinstance(record, OperatorRecord):
                normalised.append(record)
            else:
                normalised.append(OperatorRecord(*record))
        super().__init__(normalised, label)

    def next_operator(self) -> OperatorRecord:
        return self._next_record()


class SequenceOperandSource(_SequenceSource[str]):
    """In-memory operand vocabulary cycling through ``tokens``."""

    def __init__(self, tokens: Iterable[str], *, label: str = "operand sequence") -> None:
        items = list(tokens)
        for token in items:
            if not isinstance(token, str):
                raise TypeError("Operand tokens must be strings")
        super().__init__(items, label)

    def next_operand(self) -> str:
        return self._next_record()


class _FileSource(_RewindingSource[_RecordT]):
    """Whitespace token reader over a text file that supports rewinding."""

    def __init__(self, path: Union[str, Path], label: str) -> None:
        self.path = Path(path)
        super().__init__(f"{label} {self.path}")
        try:
            self._handle: TextIO = self.path.open("r", encoding="utf-8", errors="replace")
        except OSError as exc:
            raise TokenSourceUnavailable(f"Cannot open {label} {self.path}: {exc}") from exc
        self._pending: Deque[str] = deque()

    def __enter__(self: _FileSourceT) -> _FileSourceT:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._handle.closed

    def close(self) -> None:
        self._handle.close()

    def rewind(self) -> None:
        self._pending.clear()
        try:
            self._handle.seek(0)
        except (OSError, ValueError) as exc:
            raise TokenSourceReadFailure(f"Failed to rewind {self.label}: {exc}") from exc

    def _take_tokens(self, count: int) -> List[str]:
        """Return the next ``count`` tokens, discarding a partial trailing record."""

        tokens: List[str] = []
        while len(tokens) < count:
            if self._pending:
                tokens.append(self._pending.popleft())
                continue
            try:
                line = self._handle.readline()
            except (OSError, ValueError) as exc:
                raise TokenSourceReadFailure(f"Failed reading {self.label}: {exc}") from exc
            if not line:
                raise TokenSourceExhausted(f"{self.label} reached end of file")
            stripped = line.strip()
            if stripped.startswith(COMMENT_PREFIX):
                continue
            self._pending.extend(stripped.split())
        return tokens


class FileOperatorSource(_FileSource[OperatorRecord]):
    """Operator records read five tokens at a time from a text file."""

    def __init__(self, path: Union[str, Path]) -> None:
        super().__init__(path, "operator file")

    def _read_record(self) -> OperatorRecord:
        fields = self._take_tokens(OPERATOR_FIELD_COUNT)
        return OperatorRecord.from_fields(fields, origin=self.label)

    def next_operator(self) -> OperatorRecord:
        return self._next_record()


class FileOperandSource(_FileSource[str]):
    """Operand tokens read one at a time from a text file."""

    def __init__(self, path: Union[str, Path]) -> None:
        super().__init__(path, "operand file")

    def _read_record(self) -> str:
        return self._take_tokens(1)[0]

    def next_operand(self) -> str:
        return self._next_record()


def open_operator_source(path: Union[str, Path]) -> FileOperatorSource:
    """Open ``path`` as an operator vocabulary, raising ``TokenSourceUnavailable`` on failure."""

    return FileOperatorSource(path)


def open_operand_source(path: Union[str, Path]) -> FileOperandSource:
    """Open ``path`` as an operand vocabulary, raising ``TokenSourceUnavailable`` on failure."""

    return FileOperandSource(path)


__all__ = [
    "COMMENT_PREFIX",
    "FileOperandSource",
    "FileOperatorSource",
    "OPERATOR_FIELD_COUNT",
    "OperandSource",
    "OperatorRecord",
    "OperatorSource",
    "SENTINEL",
    "SequenceOperandSource",
    "SequenceOperatorSource",
    "TokenSourceError",
    "TokenSourceExhausted",
    "TokenSourceReadFailure",
    "TokenSourceUnavailable",
    "open_operand_source",
    "open_operator_source",
]
