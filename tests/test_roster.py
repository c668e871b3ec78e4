# coding: utf-8

from datetime import datetime

import pytest

from face_attendance.models import MatchResult, RosterEntry
from face_attendance.roster import Roster

T1 = datetime(2024, 3, 1, 9, 0, 0)
T2 = datetime(2024, 3, 1, 9, 5, 0)


def matched(key, name=None):
    return MatchResult(matched=True, identity_key=key, display_name=name)


UNKNOWN = MatchResult(matched=False)


class TestMerge:
    def test_unknown_and_matched(self):
        roster = Roster()
        new = roster.merge([UNKNOWN, matched("7", "Ann")], T1)

        assert [e.identity_key for e in new] == ["7"]
        assert len(roster) == 1
        entry = roster.get("7")
        assert entry.present is True
        assert entry.display_name == "Ann"
        assert entry.timestamp == T1

    def test_idempotent_and_first_seen_wins(self):
        roster = Roster()
        roster.merge([matched("7", "Ann")], T1)
        new = roster.merge([matched("7", "Ann")], T2)

        assert new == []
        assert len(roster) == 1
        assert roster.get("7").timestamp == T1

    def test_duplicate_within_one_batch(self):
        roster = Roster()
        new = roster.merge([matched("7", "Ann"), matched("7", "Ann")], T1)
        assert len(new) == 1
        assert len(roster) == 1

    def test_unknown_never_downgrades_presence(self):
        roster = Roster()
        roster.merge([matched("7", "Ann")], T1)
        roster.merge([UNKNOWN, UNKNOWN], T2)
        roster.merge([UNKNOWN, matched("8", "Bob")], T2)

        assert roster.get("7").present is True
        assert roster.get("7").timestamp == T1
        assert [e.identity_key for e in roster.snapshot()] == ["7", "8"]

    def test_matched_without_key_is_ignored(self):
        roster = Roster()
        assert roster.merge([MatchResult(matched=True)], T1) == []
        assert len(roster) == 0

    def test_missing_name_falls_back_to_key(self):
        roster = Roster()
        roster.merge([matched("42")], T1)
        assert roster.get("42").display_name == "42"

    def test_hydrated_absent_entry_is_promoted_in_place(self):
        roster = Roster([
            RosterEntry("1", "Cid", False, None, image_url="http://img/1.png"),
            RosterEntry("7", "Ann", False, None),
        ])
        new = roster.merge([matched("1", "Cid")], T1)

        assert len(new) == 1
        entry = roster.get("1")
        assert entry.present is True
        assert entry.timestamp == T1
        assert entry.image_url == "http://img/1.png"
        assert [e.identity_key for e in roster.snapshot()] == ["1", "7"]


class TestSnapshots:
    def test_snapshot_is_not_affected_by_later_merges(self):
        roster = Roster()
        roster.merge([matched("7", "Ann")], T1)
        before = roster.snapshot()
        roster.merge([matched("8", "Bob")], T2)

        assert len(before) == 1
        assert len(roster.snapshot()) == 2

    def test_reload_replaces_everything(self):
        roster = Roster()
        roster.merge([matched("7", "Ann")], T1)
        roster.reload([RosterEntry("9", "Dee", True, T2), RosterEntry("9", "Dup", True, T1)])

        assert "7" not in roster
        assert len(roster) == 1
        assert roster.get("9").display_name == "Dee"

    def test_present_entries(self):
        roster = Roster([RosterEntry("1", "Cid", False, None), RosterEntry("2", "Eve", True, T1)])
        assert [e.identity_key for e in roster.present_entries()] == ["2"]

    def test_merge_failure_leaves_roster_unchanged(self):
        roster = Roster()
        roster.merge([matched("7", "Ann")], T1)
        before = roster.snapshot()

        class Exploding:
            matched = True

            @property
            def identity_key(self):
                raise RuntimeError("bad result")

        with pytest.raises(RuntimeError):
            roster.merge([matched("8", "Bob"), Exploding()], T2)
        assert roster.snapshot() == before
