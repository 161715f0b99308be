"""
One-to-one mapping that can be looked up in both directions.
"""
from typing import Generic, Hashable, Iterable, Iterator, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V", bound=Hashable)

class BidirectionalMap(Generic[K, V]):
    """
    Keeps a forward and an inverse dict in lockstep.
    Any operation that would map two keys to one value raises ValueError("Breaking bijection").
    """
    _forward: dict[K, V]
    _inverse: dict[V, K]
    _inv: "BidirectionalMap[V, K] | None"

    def __init__(self, pairs: Iterable[tuple[K, V]] = ()):
        self._forward = dict(pairs)
        self._inverse = {v: k for k, v in self._forward.items()}
        if len(self._forward) != len(self._inverse):
            raise ValueError("Breaking bijection")
        self._inv = None

    def get(self, key: K, default: V | None = None) -> V | None:
        return self._forward.get(key, default)

    def inverse_get(self, value: V, default: K | None = None) -> K | None:
        return self._inverse.get(value, default)

    @property
    def inv(self) -> "BidirectionalMap[V, K]":
        """Live inverse sharing this map's storage. Changes through either side show in both."""
        if self._inv is None:
            inverse = BidirectionalMap.__new__(BidirectionalMap)
            inverse._forward, inverse._inverse = self._inverse, self._forward
            inverse._inv = self
            self._inv = inverse
        return self._inv

    def set(self, key: K, value: V) -> None:
        if value in self._inverse and self._inverse[value] != key:
            raise ValueError("Breaking bijection")
        self.delete(key)
        self._forward[key] = value
        self._inverse[value] = key

    def push(self, key: K, value: V) -> None:
        """Bind key to value, dropping whichever existing pair held the value."""
        if value in self._inverse:
            self.delete(self._inverse[value])
        self.set(key, value)

    def delete(self, key: K) -> bool:
        if key not in self._forward:
            return False
        value = self._forward.pop(key)
        del self._inverse[value]
        return True

    def clear(self) -> None:
        self._forward.clear()
        self._inverse.clear()

    def items(self):
        return self._forward.items()

    def __contains__(self, key: object) -> bool:
        return key in self._forward

    def __iter__(self) -> Iterator[K]:
        return iter(self._forward)

    def __len__(self) -> int:
        return len(self._forward)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, BidirectionalMap) and self._forward == other._forward

    def __repr__(self) -> str:
        return f"BidirectionalMap({self._forward!r})"
