# coding: utf-8

"""
Attendance Roster

In-session set of identities confirmed present, keyed by identity and kept in
insertion order. Updates build a new mapping and publish it with a single
assignment, so readers always see a whole snapshot and a failed merge leaves
the previous roster untouched.
"""

import logging
import threading
from datetime import datetime
from types import MappingProxyType
from typing import Iterable, List, Optional, Sequence, Tuple

from .models import MatchResult, RosterEntry


class Roster:
    """
    Attendance Roster

    Presence is monotonic within a session: once an identity is present, no
    later match result can remove it or change its first-seen timestamp. Only
    ``reload`` (a full reload from the backend) replaces entries wholesale.
    """

    def __init__(self, entries: Iterable[RosterEntry] = (), logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self._write_lock = threading.Lock()
        self._entries = MappingProxyType(self._build(entries))

    @staticmethod
    def _build(entries: Iterable[RosterEntry]) -> dict:
        mapping = {}
        for entry in entries:
            # first occurrence of a key wins
            mapping.setdefault(entry.identity_key, entry)
        return mapping

    def snapshot(self) -> Tuple[RosterEntry, ...]:
        """Current entries in insertion order"""
        return tuple(self._entries.values())

    def present_entries(self) -> Tuple[RosterEntry, ...]:
        return tuple(e for e in self._entries.values() if e.present)

    def get(self, identity_key: str) -> Optional[RosterEntry]:
        return self._entries.get(identity_key)

    def __contains__(self, identity_key: object) -> bool:
        return identity_key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self.snapshot())

    def merge(self, results: Sequence[MatchResult], timestamp: datetime) -> List[RosterEntry]:
        """
        Merge match results into the roster

        Args:
            results: Match verdicts for one tick
            timestamp: First-seen time recorded for newly present identities

        Returns:
            Entries that became present during this merge
        """
        with self._write_lock:
            current = self._entries
            updated = dict(current)
            changed = []

            for result in results:
                if not result.matched:
                    continue
                if not result.identity_key:
                    self.logger.warning("Matched result without identity key ignored")
                    continue

                existing = updated.get(result.identity_key)
                if existing is not None and existing.present:
                    continue

                if existing is None:
                    entry = RosterEntry(
                        identity_key=result.identity_key,
                        display_name=result.display_name or result.identity_key,
                        present=True,
                        timestamp=timestamp,
                    )
                else:
                    # hydrated as absent; keep its position and metadata
                    entry = RosterEntry(
                        identity_key=existing.identity_key,
                        display_name=result.display_name or existing.display_name,
                        present=True,
                        timestamp=timestamp,
                        image_url=existing.image_url,
                    )
                updated[result.identity_key] = entry
                changed.append(entry)

            if changed:
                self._entries = MappingProxyType(updated)
                for entry in changed:
                    self.logger.info(f"Marked present: {entry.display_name} ({entry.identity_key})")
            return changed

    def reload(self, entries: Iterable[RosterEntry]):
        """Replace the whole roster with a fresh backend listing"""
        with self._write_lock:
            self._entries = MappingProxyType(self._build(entries))
        self.logger.info(f"Roster reloaded with {len(self._entries)} entries")

    def __repr__(self) -> str:
        return f"Roster(entries={len(self._entries)}, present={len(self.present_entries())})"
