"""
Apartment-Keyed Shared State

One stored record addressed to many apartments (a broadcast
announcement, a poll) carries one sub-state entry per apartment instead
of one record per apartment.

INVARIANT: the container always holds exactly one entry for every member
of its address set. It is checked when the container is built and every
mutation keeps it, so readers never deal with a sparse map.
"""

from typing import Callable, Generic, Iterable, Iterator, Mapping, TypeVar

from apartment_share.errors import InvalidInputError


T = TypeVar("T")


class ApartmentKeyedState(Generic[T]):
    """
    Immutable map from apartment id to a per-apartment value.

    Usage:
        read = ApartmentKeyedState.for_members(["G1", "F1"], False)
        read = read.with_value("F1", True)
    """

    __slots__ = ("_entries",)

    def __init__(self, members: Iterable[str], entries: Mapping[str, T]):
        member_list = list(dict.fromkeys(members))
        if not member_list:
            raise InvalidInputError("Keyed state needs at least one apartment")

        missing = [m for m in member_list if m not in entries]
        extra = [k for k in entries if k not in member_list]
        if missing or extra:
            raise InvalidInputError(
                f"Keyed state does not match its address set "
                f"(missing: {missing}, unexpected: {extra})"
            )

        self._entries: dict[str, T] = {m: entries[m] for m in member_list}

    @classmethod
    def for_members(cls, members: Iterable[str], initial: T) -> "ApartmentKeyedState[T]":
        """Build a state with every member set to the same initial value."""
        member_list = list(dict.fromkeys(members))
        return cls(member_list, {m: initial for m in member_list})

    @classmethod
    def from_mapping(cls, entries: Mapping[str, T]) -> "ApartmentKeyedState[T]":
        """Rebuild a state from a stored map; its keys are the address set."""
        return cls(list(entries), entries)

    @property
    def members(self) -> list[str]:
        return list(self._entries)

    def __getitem__(self, apartment_id: str) -> T:
        try:
            return self._entries[apartment_id]
        except KeyError:
            raise InvalidInputError(
                f"Apartment {apartment_id} is not addressed by this record"
            ) from None

    def __contains__(self, apartment_id: object) -> bool:
        return apartment_id in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ApartmentKeyedState):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"ApartmentKeyedState({self._entries!r})"

    def items(self) -> list[tuple[str, T]]:
        return list(self._entries.items())

    def with_value(self, apartment_id: str, value: T) -> "ApartmentKeyedState[T]":
        """Return a copy where only apartment_id's entry changed."""
        if apartment_id not in self._entries:
            raise InvalidInputError(
                f"Apartment {apartment_id} is not addressed by this record"
            )
        entries = dict(self._entries)
        entries[apartment_id] = value
        return ApartmentKeyedState(self._entries.keys(), entries)

    def count(self, predicate: Callable[[T], bool]) -> int:
        return sum(1 for value in self._entries.values() if predicate(value))

    def to_dict(self) -> dict[str, T]:
        return dict(self._entries)
