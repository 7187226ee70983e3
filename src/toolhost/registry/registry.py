"""Copy-on-write capability registry."""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterator, TypeVar

from toolhost.protocol.errors import UnknownCapability

logger = logging.getLogger(__name__)

D = TypeVar("D")

Handler = Callable[..., Any]
ChangeListener = Callable[[str], None]


@dataclass(frozen=True)
class RegistryEntry(Generic[D]):
    """A descriptor paired with the handler that serves it."""

    descriptor: D
    handler: Handler


class Registry(Generic[D]):
    """
    Name -> (descriptor, handler) mapping, mutable at runtime.

    Writers copy the current mapping under a lock and publish the copy
    with a single reference assignment. Readers take the published
    reference without locking, so a lookup or listing never blocks and
    never observes a half-applied change.

    Listing order is insertion order; overwriting an entry keeps its
    original position.
    """

    def __init__(self, kind: str, key: Callable[[D], str] | None = None):
        """
        Args:
            kind: Capability kind used in errors and change notices
                ("tool", "resource", "resource_template", "prompt").
            key: Extracts the routing key from a descriptor. Defaults to
                the descriptor's `key` attribute.
        """
        self.kind = kind
        self._key = key or (lambda descriptor: descriptor.key)
        self._entries: dict[str, RegistryEntry[D]] = {}
        self._write_lock = threading.Lock()
        self._listeners: list[ChangeListener] = []

    def register(self, descriptor: D, handler: Handler) -> None:
        """Insert or overwrite an entry (last write wins)."""
        name = self._key(descriptor)
        with self._write_lock:
            updated = dict(self._entries)
            replaced = name in updated
            updated[name] = RegistryEntry(descriptor=descriptor, handler=handler)
            self._entries = updated

        if replaced:
            logger.debug(f"Replaced {self.kind}: {name}")
        else:
            logger.debug(f"Registered {self.kind}: {name}")
        self._notify(name)

    def unregister(self, name: str) -> bool:
        """
        Remove an entry.

        Returns:
            True if the entry existed.
        """
        with self._write_lock:
            if name not in self._entries:
                return False
            updated = dict(self._entries)
            del updated[name]
            self._entries = updated

        logger.debug(f"Unregistered {self.kind}: {name}")
        self._notify(name)
        return True

    def lookup(self, name: str) -> RegistryEntry[D]:
        """
        Get an entry by name.

        Raises:
            UnknownCapability: If nothing is registered under the name.
        """
        entry = self._entries.get(name)
        if entry is None:
            raise UnknownCapability(self.kind, name)
        return entry

    def get(self, name: str) -> RegistryEntry[D] | None:
        return self._entries.get(name)

    def list(self) -> tuple[D, ...]:
        """Snapshot of all descriptors, in registration order."""
        return tuple(entry.descriptor for entry in self._entries.values())

    def entries(self) -> tuple[RegistryEntry[D], ...]:
        return tuple(self._entries.values())

    def __iter__(self) -> Iterator[D]:
        snapshot = self._entries
        return (entry.descriptor for entry in snapshot.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def on_change(self, listener: ChangeListener) -> None:
        """Register a callback invoked with the entry name after each mutation."""
        self._listeners.append(listener)

    def _notify(self, name: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(name)
            except Exception:
                logger.exception(f"{self.kind} registry listener failed")
