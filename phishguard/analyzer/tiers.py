"""Remote model tiers, ordered from cheapest to most capable."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Optional


@dataclass(frozen=True)
class ModelTier:
    key: str
    model: str
    label: str
    rank: int


DEFAULT_TIERS: tuple[ModelTier, ...] = (
    ModelTier("flash-lite", "gemini-2.5-flash-lite", "Gemini 2.5 Flash Lite", 1),
    ModelTier("flash", "gemini-2.5-flash", "Gemini 2.5 Flash", 2),
    ModelTier("pro", "gemini-2.5-pro", "Gemini 2.5 Pro", 3),
)


class TierChain:
    """Immutable ordered sequence of tiers with a default starting tier."""

    def __init__(self, tiers: Iterable[ModelTier] = DEFAULT_TIERS, default_key: Optional[str] = None):
        self._tiers = tuple(tiers)
        if not self._tiers:
            raise ValueError("A tier chain needs at least one tier")
        keys = [tier.key for tier in self._tiers]
        if len(set(keys)) != len(keys):
            raise ValueError(f"Duplicate tier keys: {keys}")
        self.default_key = default_key or self._tiers[0].key
        if self.default_key not in keys:
            raise ValueError(f"Unknown default tier: {self.default_key}")

    def __len__(self) -> int:
        return len(self._tiers)

    def __iter__(self) -> Iterator[ModelTier]:
        return iter(self._tiers)

    def __getitem__(self, index: int) -> ModelTier:
        return self._tiers[index]

    @property
    def keys(self) -> list[str]:
        return [tier.key for tier in self._tiers]

    def index_of(self, key: str) -> int:
        for index, tier in enumerate(self._tiers):
            if tier.key == key:
                return index
        raise KeyError(key)

    def get(self, key: str) -> Optional[ModelTier]:
        for tier in self._tiers:
            if tier.key == key:
                return tier
        return None

    @property
    def default(self) -> ModelTier:
        return self._tiers[self.index_of(self.default_key)]

    def with_default(self, key: str) -> "TierChain":
        return TierChain(self._tiers, default_key=key)

    def from_default(self) -> tuple[ModelTier, ...]:
        """Tiers visited by one scan: the default tier and everything after it."""
        return self._tiers[self.index_of(self.default_key):]
