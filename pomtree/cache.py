"""Memo table of materialized artifacts."""

import logging
import threading
from typing import Callable, Dict, List, Optional

from .errors import CyclicDependency
from .models import Artifact, ArtifactKey

logger = logging.getLogger(__name__)


class _Slot:
    """One cache entry; in progress until `done` is set."""

    def __init__(self, owner: int):
        self.owner = owner
        self.done = threading.Event()
        self.artifact: Optional[Artifact] = None


class ArtifactCache:
    """
    Memo table keyed by (group, name, version).

    get_or_create() runs the factory for a key at most once. The slot is
    claimed before the factory runs, so a recursive request for the same
    key from inside the factory is detected as a cycle instead of recursing
    forever. Other threads asking for a key under construction block until
    it is done and get the same instance.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._slots: Dict[ArtifactKey, _Slot] = {}
        # thread ident -> key that thread is blocked on
        self._waiting: Dict[int, ArtifactKey] = {}

    def get_or_create(self, key: ArtifactKey, factory: Callable[[], Artifact]) -> Artifact:
        """
        Return the artifact for key, building it with factory on first use.

        Raises:
            CyclicDependency: if key is already being built by this thread, or
                waiting for it would deadlock with another thread
        """
        me = threading.get_ident()
        with self._lock:
            slot = self._slots.get(key)
            if slot is None:
                slot = _Slot(owner=me)
                self._slots[key] = slot
                building = True
            elif slot.done.is_set():
                return slot.artifact
            else:
                if self._closes_cycle(slot, me):
                    raise CyclicDependency(key)
                self._waiting[me] = key
                building = False

        if not building:
            return self._wait(key, slot, factory)

        try:
            artifact = factory()
        except BaseException:
            with self._lock:
                del self._slots[key]
            slot.done.set()
            raise

        slot.artifact = artifact
        slot.done.set()
        return artifact

    def _wait(self, key: ArtifactKey, slot: _Slot, factory: Callable[[], Artifact]) -> Artifact:
        logger.debug(f"Waiting for {':'.join(key)} to be materialized by another thread")
        try:
            slot.done.wait()
        finally:
            with self._lock:
                self._waiting.pop(threading.get_ident(), None)
        if slot.artifact is None:
            # The builder failed and vacated the slot; try again ourselves.
            return self.get_or_create(key, factory)
        return slot.artifact

    def _closes_cycle(self, slot: _Slot, me: int) -> bool:
        """Follow owner -> awaited key -> owner ... and see if it leads back to me."""
        owner = slot.owner
        seen = set()
        while owner not in seen:
            if owner == me:
                return True
            seen.add(owner)
            awaited = self._waiting.get(owner)
            if awaited is None:
                return False
            next_slot = self._slots.get(awaited)
            if next_slot is None or next_slot.done.is_set():
                return False
            owner = next_slot.owner
        return False

    def get(self, key: ArtifactKey) -> Optional[Artifact]:
        """Return the finished artifact for key, or None."""
        with self._lock:
            slot = self._slots.get(key)
        if slot is not None and slot.done.is_set():
            return slot.artifact
        return None

    def __contains__(self, key: ArtifactKey) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self.artifacts())

    def artifacts(self) -> List[Artifact]:
        """
        All finished artifacts, complete or not, in the order their keys were
        first requested. A nested artifact is requested after its dependent
        but finishes before it.
        """
        with self._lock:
            slots = list(self._slots.values())
        return [slot.artifact for slot in slots if slot.done.is_set() and slot.artifact is not None]

    def clear(self) -> None:
        with self._lock:
            if any(not slot.done.is_set() for slot in self._slots.values()):
                raise RuntimeError("Cannot clear the cache while artifacts are being materialized")
            self._slots.clear()
