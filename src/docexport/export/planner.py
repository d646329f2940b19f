"""Size-adaptive upload planning.

Payloads up to :data:`SINGLE_UPLOAD_THRESHOLD` go up in one request. Larger
payloads are split by bisection: each step takes half of what remains,
clamped to the part-size limits, and folds any would-be undersized tail into
the current part.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Literal

MIB = 1024 * 1024

MIN_PART_SIZE = 5 * MIB
MAX_PART_SIZE = 100 * MIB
SINGLE_UPLOAD_THRESHOLD = 5 * MIB
MAX_PART_COUNT = 10_000

UploadType = Literal["single", "multipart"]


@dataclass(frozen=True)
class PartSpec:
    part_number: int
    offset: int
    length: int

    @property
    def end(self) -> int:
        return self.offset + self.length

    def slice(self, payload: bytes) -> bytes:
        return payload[self.offset : self.end]


@dataclass(frozen=True)
class UploadPlan:
    upload_type: UploadType
    total_size: int
    parts: tuple[PartSpec, ...]

    @property
    def is_multipart(self) -> bool:
        return self.upload_type == "multipart"

    def __len__(self) -> int:
        return len(self.parts)

    def __iter__(self) -> Iterator[PartSpec]:
        return iter(self.parts)

    def as_dict(self) -> dict:
        return {
            "upload_type": self.upload_type,
            "total_size": self.total_size,
            "parts": [{"part_number": p.part_number, "offset": p.offset, "length": p.length} for p in self.parts],
        }


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def partition(total: int) -> List[PartSpec]:
    parts: List[PartSpec] = []
    offset = 0
    while offset < total:
        remaining = total - offset
        if remaining <= MAX_PART_SIZE:
            size = remaining
        else:
            size = _clamp(remaining // 2, MIN_PART_SIZE, MAX_PART_SIZE)
            if remaining - size < MIN_PART_SIZE:
                size = remaining
        parts.append(PartSpec(part_number=len(parts) + 1, offset=offset, length=size))
        offset += size
    return parts


def plan_upload(total: int) -> UploadPlan:
    """Choose single-shot vs multipart for a payload of ``total`` bytes."""
    if total < 0:
        raise ValueError(f"payload size must be non-negative, got {total}")
    if total <= SINGLE_UPLOAD_THRESHOLD:
        return UploadPlan("single", total, (PartSpec(part_number=1, offset=0, length=total),))
    parts = partition(total)
    if len(parts) > MAX_PART_COUNT:  # pragma: no cover - needs a ~1 PB payload
        raise ValueError(f"payload of {total} bytes needs {len(parts)} parts (max {MAX_PART_COUNT})")
    return UploadPlan("multipart", total, tuple(parts))


__all__ = [
    "MIB",
    "MIN_PART_SIZE",
    "MAX_PART_SIZE",
    "SINGLE_UPLOAD_THRESHOLD",
    "MAX_PART_COUNT",
    "PartSpec",
    "UploadPlan",
    "UploadType",
    "partition",
    "plan_upload",
]
