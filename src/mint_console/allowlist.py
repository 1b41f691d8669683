"""Allow-list batch processing: collect, validate, dedupe and cap address lists."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from eth_typing import ChecksumAddress
from web3 import Web3

from .constants import MAX_BATCH_SIZE, MAX_BATCH_SLOTS, MIN_BATCH_SLOTS, PREVIEW_INVALID_LIMIT
from .exceptions import CapacityExceededError, EmptyBatchError, ValidationFailedError
from .types import BatchMode
from .utils import clamp_int, is_valid_address


@dataclass(frozen=True)
class InvalidEntry:
    position: int  # 1-based, in original input order
    value: str

    def describe(self) -> str:
        return f"Line {self.position}: {self.value}"


@dataclass(frozen=True)
class AllowListBatch:
    """A validated, deduplicated and capacity-checked address list."""

    mode: BatchMode
    raw_entries: tuple[str, ...]
    valid_entries: tuple[str, ...]
    invalid_entries: tuple[InvalidEntry, ...] = ()
    duplicates_removed: int = 0

    def __len__(self) -> int:
        return len(self.valid_entries)

    def contract_args(self) -> list[ChecksumAddress]:
        return [Web3.to_checksum_address(address) for address in self.valid_entries]


@dataclass(frozen=True)
class BatchPreview:
    mode: BatchMode
    total_entries: int
    valid_count: int
    unique_count: int
    duplicates_removed: int
    invalid_entries: tuple[InvalidEntry, ...]
    over_capacity: bool
    text: str

    @property
    def has_errors(self) -> bool:
        return bool(self.invalid_entries) or self.over_capacity


def collect_entries(values: Iterable[str | None]) -> list[str]:
    """Trim each raw value and drop the empty ones, keeping positional order."""

    return [entry for _, entry in _positioned(values)]


def _positioned(values: Iterable[str | None]) -> list[tuple[int, str]]:
    collected = []
    for position, value in enumerate(values, start=1):
        text = (value or "").strip()
        if text:
            collected.append((position, text))
    return collected


def validate_entries(
    raw_entries: Sequence[str], positions: Sequence[int] | None = None
) -> tuple[list[str], list[InvalidEntry]]:
    """Partition entries into valid addresses and (position, raw value) failures."""

    if positions is None:
        positions = range(1, len(raw_entries) + 1)

    valid: list[str] = []
    invalid: list[InvalidEntry] = []
    for position, entry in zip(positions, raw_entries):
        if is_valid_address(entry):
            valid.append(entry)
        else:
            invalid.append(InvalidEntry(position=position, value=entry))
    return valid, invalid


def dedupe(entries: Iterable[str]) -> tuple[list[str], int]:
    """Lowercase and drop repeats, keeping the first occurrence order."""

    seen: set[str] = set()
    unique: list[str] = []
    removed = 0
    for entry in entries:
        normalized = entry.lower()
        if normalized in seen:
            removed += 1
            continue
        seen.add(normalized)
        unique.append(normalized)
    return unique, removed


def capacity_check(entries: Sequence[str], max_entries: int = MAX_BATCH_SIZE) -> None:
    if len(entries) > max_entries:
        raise CapacityExceededError(len(entries), max_entries)


def build_batch(
    mode: BatchMode, values: Iterable[str | None], max_entries: int = MAX_BATCH_SIZE
) -> AllowListBatch:
    """Run the full collect -> validate -> dedupe -> capacity sequence.

    Raises:
        EmptyBatchError: nothing was entered
        ValidationFailedError: one or more entries are not addresses (every line is reported)
        CapacityExceededError: more unique addresses than ``max_entries``
    """

    positioned = _positioned(values)
    if not positioned:
        raise EmptyBatchError("Enter at least one address")

    positions = [position for position, _ in positioned]
    raw_entries = [entry for _, entry in positioned]
    valid, invalid = validate_entries(raw_entries, positions)
    if invalid:
        raise ValidationFailedError(
            [entry.describe() for entry in invalid],
            details={"invalid_count": len(invalid), "mode": mode.value},
        )

    unique, removed = dedupe(valid)
    capacity_check(unique, max_entries)

    return AllowListBatch(
        mode=mode,
        raw_entries=tuple(raw_entries),
        valid_entries=tuple(unique),
        duplicates_removed=removed,
    )


def preview_batch(
    mode: BatchMode, values: Iterable[str | None], max_entries: int = MAX_BATCH_SIZE
) -> BatchPreview:
    """Summarise the current entries without raising or mutating anything."""

    positioned = _positioned(values)
    raw_entries = [entry for _, entry in positioned]
    valid, invalid = validate_entries(raw_entries, [position for position, _ in positioned])
    unique, removed = dedupe(valid)
    over_capacity = len(unique) > max_entries

    if not positioned:
        text = ""
    else:
        lines = [f"Valid addresses: {len(unique)}"]
        if removed:
            lines.append(f"Duplicates removed: {removed}")
        if invalid:
            lines.append(f"Invalid entries ({len(invalid)}):")
            lines.extend(f"- {entry.describe()}" for entry in invalid[:PREVIEW_INVALID_LIMIT])
            if len(invalid) > PREVIEW_INVALID_LIMIT:
                lines.append(f"... and {len(invalid) - PREVIEW_INVALID_LIMIT} more")
        if over_capacity:
            verb = "added" if mode is BatchMode.ADD else "removed"
            lines.append(
                f"At most {max_entries} addresses can be {verb} at once (current: {len(unique)})"
            )
        text = "\n".join(lines)

    return BatchPreview(
        mode=mode,
        total_entries=len(raw_entries),
        valid_count=len(valid),
        unique_count=len(unique),
        duplicates_removed=removed,
        invalid_entries=tuple(invalid),
        over_capacity=over_capacity,
        text=text,
    )


class AllowListEditor(ABC):
    """Raw input for one batch direction; add and remove editors are independent."""

    def __init__(self, mode: BatchMode, max_entries: int = MAX_BATCH_SIZE) -> None:
        self.mode = mode
        self.max_entries = max_entries

    @abstractmethod
    def raw_values(self) -> list[str]:
        pass

    @abstractmethod
    def clear(self) -> None:
        pass

    def collect(self) -> list[str]:
        return collect_entries(self.raw_values())

    def build(self) -> AllowListBatch:
        return build_batch(self.mode, self.raw_values(), self.max_entries)

    def preview(self) -> BatchPreview:
        return preview_batch(self.mode, self.raw_values(), self.max_entries)


class AllowListSlots(AllowListEditor):
    """Fixed number of single-address input slots."""

    def __init__(self, mode: BatchMode, size: int = MIN_BATCH_SLOTS, max_entries: int = MAX_BATCH_SIZE):
        super().__init__(mode, max_entries)
        self._values: list[str] = []
        self.set_size(size)

    @property
    def size(self) -> int:
        return len(self._values)

    def set_size(self, value: int | str | None) -> int:
        """Resize to ``value`` slots (clamped to 1..100), keeping entries by position.

        A non-numeric size removes every slot.
        """
        count = clamp_int(value, MIN_BATCH_SLOTS, MAX_BATCH_SLOTS)
        if count is None:
            self._values = []
            return 0
        if count == len(self._values):
            return count

        kept = self._values[:count]
        self._values = kept + [""] * (count - len(kept))
        return count

    def set(self, index: int, value: str) -> None:
        self._values[index] = value

    def fill(self, values: Sequence[str]) -> None:
        """Write ``values`` into the leading slots, growing up to the slot cap if needed."""
        if len(values) > self.size:
            self.set_size(len(values))
        for index, value in enumerate(values[: self.size]):
            self._values[index] = value

    def raw_values(self) -> list[str]:
        return list(self._values)

    def clear(self) -> None:
        self._values = [""] * len(self._values)


class AllowListText(AllowListEditor):
    """Free-text input, one address per line."""

    def __init__(self, mode: BatchMode, text: str = "", max_entries: int = MAX_BATCH_SIZE):
        super().__init__(mode, max_entries)
        self.text = text

    def raw_values(self) -> list[str]:
        return self.text.splitlines()

    def clear(self) -> None:
        self.text = ""
