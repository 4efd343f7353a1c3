"""
Tests for apartment-keyed state, announcements and polls.

Broadcast records keep one entry per addressed apartment; every update
must touch only the acting apartment's entry.
"""

import pytest
from datetime import datetime, timedelta

from apartment_share.errors import InvalidInputError
from apartment_share.models.community import (
    Notification,
    NotificationType,
    create_announcement,
    create_poll,
    mark_all_read,
    unread_for,
)
from apartment_share.models.keyed_state import ApartmentKeyedState


BUILDING = ["G1", "F1", "F2", "S1", "S2", "T1", "T2"]


class TestApartmentKeyedState:
    """Tests for the per-apartment container."""

    def test_for_members_fills_every_entry(self):
        """Test that every member starts with the initial value."""
        state = ApartmentKeyedState.for_members(BUILDING, False)
        assert len(state) == 7
        assert all(value is False for _, value in state.items())

    def test_with_value_changes_only_one_entry(self):
        """Test that an update leaves the other entries untouched."""
        state = ApartmentKeyedState.for_members(BUILDING, False)
        updated = state.with_value("T2", True)

        assert updated["T2"] is True
        assert state["T2"] is False
        assert updated.count(lambda read: read) == 1
        assert updated.members == BUILDING

    def test_rejects_sparse_mapping(self):
        """Test that a map missing a member is refused."""
        with pytest.raises(InvalidInputError, match="missing"):
            ApartmentKeyedState(["G1", "F1"], {"G1": False})

    def test_rejects_unexpected_key(self):
        """Test that a map with a stranger is refused."""
        with pytest.raises(InvalidInputError, match="unexpected"):
            ApartmentKeyedState(["G1"], {"G1": False, "Z9": True})

    def test_rejects_empty_address_set(self):
        """Test that at least one apartment is needed."""
        with pytest.raises(InvalidInputError):
            ApartmentKeyedState.for_members([], False)

    def test_unknown_apartment_lookup(self):
        """Test that reading or writing an unaddressed apartment raises."""
        state = ApartmentKeyedState.for_members(["G1"], 0)
        with pytest.raises(InvalidInputError):
            state["F1"]
        with pytest.raises(InvalidInputError):
            state.with_value("F1", 1)


class TestAnnouncements:
    """Tests for broadcast announcements and their read map."""

    def test_announcement_read_map_starts_false(self):
        """Test that the read map has one False entry per apartment."""
        announcement = create_announcement("Water cut", "Tomorrow 10-12", BUILDING, "admin")

        assert announcement.type == NotificationType.ANNOUNCEMENT
        assert announcement.is_read == {apartment: False for apartment in BUILDING}

    def test_mark_read_touches_one_apartment(self):
        """Test that T2 reading leaves the other six unread."""
        announcement = create_announcement("Water cut", "Tomorrow", BUILDING, "admin")
        updated = announcement.mark_read("T2")

        assert updated.is_read_for("T2") is True
        assert sum(updated.is_read.values()) == 1
        assert announcement.is_read_for("T2") is False

    def test_empty_address_set_rejected(self):
        """Test that an announcement needs recipients."""
        with pytest.raises(InvalidInputError, match="No apartments"):
            create_announcement("Hello", "", [], "admin")

    def test_broadcast_requires_read_map(self):
        """Test the read-state shape follows the address shape."""
        with pytest.raises(ValueError):
            Notification(
                type=NotificationType.ANNOUNCEMENT,
                title="Hello",
                to_apartment_id=["G1", "F1"],
                is_read=False,
            )

    def test_unread_for_skips_expired_and_read(self):
        """Test the unread listing for one apartment."""
        now = datetime(2024, 12, 1, 12, 0)
        fresh = create_announcement("Fresh", "", BUILDING, "admin")
        expired = create_announcement(
            "Old", "", BUILDING, "admin", expires_at=now - timedelta(days=1)
        )
        already_read = create_announcement("Seen", "", BUILDING, "admin").mark_read("F1")

        unread = unread_for([fresh, expired, already_read], "F1", now=now)

        assert [n.title for n in unread] == ["Fresh"]

    def test_mark_all_read_returns_changed_only(self):
        """Test that only notifications that changed are returned."""
        first = create_announcement("One", "", BUILDING, "admin")
        second = create_announcement("Two", "", BUILDING, "admin").mark_read("S1")

        changed = mark_all_read([first, second], "S1")

        assert [n.id for n in changed] == [first.id]
        assert changed[0].is_read_for("S1") is True


class TestPolls:
    """Tests for one-vote-per-apartment polls."""

    def test_poll_starts_with_empty_ballots(self):
        """Test every eligible apartment has an empty ballot."""
        poll = create_poll("Paint colour?", ["Blue", "Green"], BUILDING, "admin")

        assert poll.ballots == {apartment: None for apartment in BUILDING}
        assert [option.id for option in poll.options] == ["opt1", "opt2"]
        assert poll.voter_count == 0

    def test_revote_overwrites(self):
        """Test that F1 voting A then B leaves only B."""
        poll = create_poll("Paint colour?", ["Blue", "Green"], BUILDING, "admin")
        poll = poll.cast_vote("F1", "opt1").cast_vote("F1", "opt2")

        assert poll.votes == {"F1": "opt2"}
        assert poll.voter_count == 1
        assert poll.results() == {"opt1": 0, "opt2": 1}

    def test_vote_on_closed_poll(self):
        """Test that a closed poll refuses votes."""
        poll = create_poll("Q?", ["Yes", "No"], BUILDING, "admin").close()
        with pytest.raises(InvalidInputError, match="closed"):
            poll.cast_vote("G1", "opt1")

    def test_vote_for_unknown_option(self):
        """Test that an unknown option is refused."""
        poll = create_poll("Q?", ["Yes", "No"], BUILDING, "admin")
        with pytest.raises(InvalidInputError, match="Unknown poll option"):
            poll.cast_vote("G1", "opt9")

    def test_ineligible_apartment_cannot_vote(self):
        """Test that only eligible apartments have ballots."""
        poll = create_poll("Q?", ["Yes", "No"], ["G1", "F1"], "admin")
        with pytest.raises(InvalidInputError):
            poll.cast_vote("T2", "opt1")

    def test_poll_needs_two_options(self):
        """Test option count validation."""
        with pytest.raises(ValueError, match="at least two options"):
            create_poll("Q?", ["Only"], BUILDING, "admin")

    def test_expired_poll_refuses_votes(self):
        """Test that votes after expiry are refused."""
        now = datetime(2024, 12, 1)
        poll = create_poll(
            "Q?", ["Yes", "No"], BUILDING, "admin", expires_at=now - timedelta(hours=1)
        )
        with pytest.raises(InvalidInputError):
            poll.cast_vote("G1", "opt1", now=now)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
