"""
SavedLedger - per-identity saved stories.
Each identity owns its own partition in the keyed store; signed-out sessions
read the anonymous partition but cannot write to it.
"""
import json
import logging
import time
from dataclasses import asdict
from typing import Callable, Dict, FrozenSet, List, Optional

from core.entities import Identity, SavedStory, ToggleOutcome
from core.errors import StoreError
from ingestion.base import Story
from services.database import KeyValueStore
from services.identity import IdentityProvider

logger = logging.getLogger(__name__)

KEY_PREFIX = "saved-"
ANONYMOUS_KEY = "anonymous"
SCHEMA_VERSION = 1


def partition_key(identity: Optional[Identity]) -> str:
    return f"{KEY_PREFIX}{identity.key if identity else ANONYMOUS_KEY}"


class SavedLedger:
    def __init__(
        self,
        store: KeyValueStore,
        identity_provider: IdentityProvider,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.identity_provider = identity_provider
        self.clock = clock

        self._active_key: Optional[str] = None
        self._saved: Dict[int, SavedStory] = {}

    @property
    def active_partition(self) -> Optional[str]:
        return self._active_key

    @property
    def saved_ids(self) -> FrozenSet[int]:
        return frozenset(self._saved)

    async def load(self) -> None:
        """Activate the partition of whoever is currently signed in."""
        await self.activate(self.identity_provider.current)

    async def activate(self, identity: Optional[Identity]) -> None:
        """
        Switch to the partition for *identity*, replacing the active set
        wholesale. Nothing carries over from the previous partition.
        """
        key = partition_key(identity)
        self._saved = await self._read_partition(key)
        self._active_key = key
        logger.info(f"Activated saved partition {key} ({len(self._saved)} stories)")

    async def toggle(self, item_id: int, story: Optional[Story] = None) -> ToggleOutcome:
        """
        Save or unsave *item_id* for the signed-in identity.
        Saving needs the Story itself; an id that is not a known story is
        rejected. Unsaving only needs the id.
        """
        identity = self.identity_provider.current
        if identity is None:
            logger.info(f"Save of story {item_id} rejected: no identity")
            return ToggleOutcome.AUTH_REQUIRED

        if self._active_key != partition_key(identity):
            await self.activate(identity)

        if item_id in self._saved:
            del self._saved[item_id]
            outcome = ToggleOutcome.UNSAVED
        elif story is None or story.id != item_id:
            logger.info(f"Save of story {item_id} rejected: not a known story")
            return ToggleOutcome.UNKNOWN_STORY
        else:
            self._saved[item_id] = self._saved_entry(story)
            outcome = ToggleOutcome.SAVED

        await self._write_partition()
        logger.info(f"Story {item_id} {outcome.value} for {identity.key}")
        return outcome

    def is_saved(self, item_id: int) -> bool:
        return item_id in self._saved

    def list_saved(self) -> List[SavedStory]:
        """Saved stories, most recently saved first."""
        return sorted(self._saved.values(), key=lambda s: s.saved_at, reverse=True)

    def _saved_entry(self, story: Story) -> SavedStory:
        return SavedStory(
            id=story.id,
            title=story.title,
            url=story.url,
            by=story.by,
            time=story.time,
            saved_at=self.clock(),
        )

    async def _read_partition(self, key: str) -> Dict[int, SavedStory]:
        try:
            raw = await self.store.get(key)
        except StoreError as e:
            logger.warning(f"Could not read saved partition {key}: {e}")
            return {}

        if raw is None:
            return {}

        try:
            payload = json.loads(raw)
            # Early clients stored a bare JSON array of ids
            if isinstance(payload, list):
                entries = [SavedStory(id=int(sid)) for sid in payload]
            elif payload.get("version") == SCHEMA_VERSION:
                entries = [SavedStory(**item) for item in payload["items"]]
            else:
                logger.warning(f"Ignoring saved partition {key} with version {payload.get('version')!r}")
                return {}
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Ignoring corrupt saved partition {key}: {e}")
            return {}

        return {entry.id: entry for entry in entries}

    async def _write_partition(self) -> None:
        payload = {
            "version": SCHEMA_VERSION,
            "items": [asdict(entry) for entry in self._saved.values()],
        }
        try:
            await self.store.set(self._active_key, json.dumps(payload).encode("utf-8"))
        except StoreError as e:
            logger.warning(f"Could not persist saved partition {self._active_key}: {e}")
