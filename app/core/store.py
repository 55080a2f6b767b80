from typing import Callable, Dict, Generic, Hashable, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class SlotStore(Generic[K, V]):
    """
    Identity-keyed slots with an implicit default.

    Reading a key that was never written returns the default instead of
    raising; "absent" is never an error. Slots are never deleted, only
    reset to the default with `clear`.
    """

    def __init__(self, default: Callable[[], V]):
        self._default = default
        self._slots: Dict[K, V] = {}

    def get(self, key: K) -> V:
        if key in self._slots:
            return self._slots[key]
        return self._default()

    def set(self, key: K, value: V) -> None:
        self._slots[key] = value

    def clear(self, key: K) -> None:
        self._slots[key] = self._default()

    def __contains__(self, key: K) -> bool:
        return key in self._slots

    def __len__(self) -> int:
        return len(self._slots)

    def items(self):
        return self._slots.items()
