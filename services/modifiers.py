"""Status modifiers: mutation steps applied to each assembled status document."""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Optional, Protocol, Tuple, runtime_checkable

from datastore.base import KeyValueStore, StoreError, StoreKeyNotFound
from models.status import SPACEAPI_VERSION, State, Status

logger = logging.getLogger(__name__)

SERVER_VERSION = "0.5.0"


@runtime_checkable
class StatusModifier(Protocol):
    def modify(self, status: Status) -> None:
        """Mutate ``status`` in place. Missing data must be a no-op."""
        ...


class StateFromPeopleNowPresent:
    """Derive the opening state from the first people-now-present sensor, if any."""

    def modify(self, status: Status) -> None:
        if status.sensors is None or not status.sensors.people_now_present:
            return
        count = status.sensors.people_now_present[0].value

        state = status.state or State()
        state.open = count > 0
        if count == 1:
            state.message = f"{count} person here right now"
        elif count > 1:
            state.message = f"{count} people here right now"
        status.state = state


class LibraryVersions:
    """Publish server and schema versions in the ``ext_versions`` extension."""

    def __init__(self, versions: Optional[Mapping[str, str]] = None) -> None:
        if versions is None:
            versions = {"spaceapi": SPACEAPI_VERSION, "spaceapi-server": SERVER_VERSION}
        self._versions = dict(versions)

    def modify(self, status: Status) -> None:
        status.set_extension("versions", dict(self._versions))


class OpenStateFromStore:
    """Read the opening state from store keys maintained by an external agent.

    ``open_key`` holds ``"open"`` when the space is open and anything else when
    it is closed. The optional ``lastchange_key`` (unix timestamp) and
    ``trigger_person_key`` are copied when present. Only an existing ``state``
    object is updated.
    """

    def __init__(
        self,
        store: KeyValueStore,
        open_key: str = "state_open",
        lastchange_key: Optional[str] = "state_lastchange",
        trigger_person_key: Optional[str] = "state_triggerperson",
    ) -> None:
        self._store = store
        self._open_key = open_key
        self._lastchange_key = lastchange_key
        self._trigger_person_key = trigger_person_key

    def modify(self, status: Status) -> None:
        if status.state is None:
            return

        flag = self._read(self._open_key)
        if flag is not None:
            status.state.open = flag.strip().lower() == "open"

        if self._lastchange_key:
            lastchange = self._read(self._lastchange_key)
            if lastchange is not None:
                try:
                    status.state.lastchange = int(lastchange)
                except ValueError:
                    logger.warning(
                        "Ignoring non-numeric lastchange value",
                        extra={"data_key": self._lastchange_key},
                    )

        if self._trigger_person_key:
            person = self._read(self._trigger_person_key)
            if person is not None:
                status.state.trigger_person = person

    def _read(self, key: str) -> Optional[str]:
        try:
            return self._store.get(key)
        except StoreKeyNotFound:
            return None
        except StoreError as exc:
            logger.warning(
                "Could not read state key, leaving state unchanged",
                extra={"data_key": key, "error": type(exc).__name__},
            )
            return None


class ModifierChain:
    """Applies modifiers in registration order.

    A modifier that raises is logged and skipped so the remaining ones still run.
    """

    def __init__(self, modifiers: Iterable[StatusModifier] = ()) -> None:
        self._modifiers: Tuple[StatusModifier, ...] = tuple(modifiers)

    def __iter__(self):
        return iter(self._modifiers)

    def __len__(self) -> int:
        return len(self._modifiers)

    def apply(self, status: Status) -> None:
        for modifier in self._modifiers:
            try:
                modifier.modify(status)
            except Exception:  # noqa: BLE001 - one bad modifier must not fail the document
                logger.exception(
                    "Status modifier failed",
                    extra={"modifier": type(modifier).__name__},
                )
