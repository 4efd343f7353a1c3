"""
Community Models for Apartment Share

Notifications (payment requests, announcements) and polls.

Both kinds of broadcast record keep their per-apartment sub-state in an
ApartmentKeyedState:
- an announcement's read flags: one boolean per addressed apartment
- a poll's ballots: one entry per eligible apartment, None until it votes
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from apartment_share.errors import InvalidInputError
from apartment_share.models.expense import new_record_id
from apartment_share.models.keyed_state import ApartmentKeyedState


class NotificationType(str, Enum):
    PAYMENT_REQUEST = "payment_request"
    PAYMENT_RECEIVED = "payment_received"
    PAYMENT_CONFIRMED = "payment_confirmed"
    REMINDER = "reminder"
    ANNOUNCEMENT = "announcement"


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RequestStatus(str, Enum):
    """Status of a payment request notification."""
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    CANCELLED = "cancelled"


class Notification(BaseModel):
    """
    A message addressed to one apartment or broadcast to many.

    INVARIANT: when to_apartment_id is a list, is_read is a map with
    exactly one entry per addressed apartment. A single-addressee
    notification carries a plain boolean.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_record_id)
    type: NotificationType
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(default="", max_length=2000)
    amount: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    currency: Optional[str] = None
    from_apartment_id: Optional[str] = None
    to_apartment_id: Union[str, list[str]]
    related_expense_id: Optional[str] = None
    created_by: Optional[str] = None
    priority: NotificationPriority = NotificationPriority.MEDIUM
    is_active: bool = True
    is_read: Union[bool, dict[str, bool]] = False
    is_dismissed: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)
    expires_at: Optional[datetime] = None
    due_date: Optional[datetime] = None
    status: Optional[RequestStatus] = None
    category: Optional[str] = None
    requested_by: Optional[str] = None

    @model_validator(mode='after')
    def validate_read_state(self) -> 'Notification':
        """Keep the read-state shape in step with the address."""
        if isinstance(self.to_apartment_id, list):
            if not isinstance(self.is_read, dict):
                raise ValueError(
                    "A notification addressed to several apartments needs a "
                    "per-apartment read map"
                )
            try:
                ApartmentKeyedState(self.to_apartment_id, self.is_read)
            except InvalidInputError as e:
                raise ValueError(str(e)) from e
        elif isinstance(self.is_read, dict):
            raise ValueError(
                "A notification addressed to one apartment carries a boolean read flag"
            )
        return self

    @property
    def is_broadcast(self) -> bool:
        return isinstance(self.to_apartment_id, list)

    @property
    def read_state(self) -> Optional[ApartmentKeyedState[bool]]:
        """Per-apartment read flags, or None for a single addressee."""
        if self.is_broadcast:
            return ApartmentKeyedState(self.to_apartment_id, self.is_read)
        return None

    def addresses(self, apartment_id: str) -> bool:
        if self.is_broadcast:
            return apartment_id in self.to_apartment_id
        return self.to_apartment_id == apartment_id

    def is_read_for(self, apartment_id: str) -> bool:
        if not self.addresses(apartment_id):
            raise InvalidInputError(
                f"Notification {self.id} is not addressed to {apartment_id}"
            )
        if self.is_broadcast:
            return self.read_state[apartment_id]
        return bool(self.is_read)

    def mark_read(self, apartment_id: str) -> 'Notification':
        """
        Mark read on behalf of one apartment.

        Only that apartment's entry changes; returns a new notification.
        """
        if not self.addresses(apartment_id):
            raise InvalidInputError(
                f"Notification {self.id} is not addressed to {apartment_id}"
            )
        if self.is_broadcast:
            updated = self.read_state.with_value(apartment_id, True)
            return self.model_copy(update={"is_read": updated.to_dict()})
        return self.model_copy(update={"is_read": True})

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or datetime.utcnow()) >= self.expires_at


def create_announcement(
    title: str,
    message: str,
    apartment_ids: Iterable[str],
    created_by: str,
    priority: NotificationPriority = NotificationPriority.MEDIUM,
    expires_at: Optional[datetime] = None,
) -> Notification:
    """
    Build one announcement addressed to every given apartment.

    The read map is pre-populated with False for every apartment.
    """
    addressed = list(dict.fromkeys(apartment_ids))
    if not addressed:
        raise InvalidInputError("No apartments found to send the announcement to")

    read_state = ApartmentKeyedState.for_members(addressed, False)
    return Notification(
        type=NotificationType.ANNOUNCEMENT,
        title=title,
        message=message,
        to_apartment_id=addressed,
        created_by=created_by,
        priority=priority,
        is_read=read_state.to_dict(),
        expires_at=expires_at,
        is_active=True,
    )


def unread_for(
    notifications: Iterable[Notification],
    apartment_id: str,
    now: Optional[datetime] = None,
) -> list[Notification]:
    """Active, unexpired notifications this apartment has not read."""
    return [
        n for n in notifications
        if n.is_active
        and not n.is_expired(now)
        and n.addresses(apartment_id)
        and not n.is_read_for(apartment_id)
    ]


def mark_all_read(
    notifications: Iterable[Notification],
    apartment_id: str,
) -> list[Notification]:
    """Return updated copies of the notifications that changed."""
    return [
        n.mark_read(apartment_id)
        for n in notifications
        if n.addresses(apartment_id) and not n.is_read_for(apartment_id)
    ]


# =============================================================================
# POLLS
# =============================================================================

class PollOption(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    text: str = Field(..., min_length=1, max_length=200)


class Poll(BaseModel):
    """
    A one-vote-per-apartment poll.

    ballots holds an entry for every eligible apartment (None = not voted).
    Re-voting overwrites the apartment's entry.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_record_id)
    question: str = Field(..., min_length=1, max_length=500)
    options: list[PollOption]
    created_by: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
    expires_at: Optional[datetime] = None
    ballots: dict[str, Optional[str]]
    is_active: bool = True

    @field_validator('options')
    @classmethod
    def validate_options(cls, v: list[PollOption]) -> list[PollOption]:
        if len(v) < 2:
            raise ValueError("A poll needs at least two options")
        ids = [option.id for option in v]
        if len(set(ids)) != len(ids):
            raise ValueError("Poll option ids must be unique")
        return v

    @model_validator(mode='after')
    def validate_ballots(self) -> 'Poll':
        if not self.ballots:
            raise ValueError("A poll needs at least one eligible apartment")
        option_ids = {option.id for option in self.options}
        for apartment_id, option_id in self.ballots.items():
            if option_id is not None and option_id not in option_ids:
                raise ValueError(
                    f"Ballot for {apartment_id} names unknown option {option_id}"
                )
        return self

    @property
    def ballot_state(self) -> ApartmentKeyedState[Optional[str]]:
        return ApartmentKeyedState.from_mapping(self.ballots)

    @property
    def votes(self) -> dict[str, str]:
        """Cast votes only: apartment id -> option id."""
        return {
            apartment_id: option_id
            for apartment_id, option_id in self.ballots.items()
            if option_id is not None
        }

    @property
    def voter_count(self) -> int:
        return self.ballot_state.count(lambda option_id: option_id is not None)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or datetime.utcnow()) >= self.expires_at

    def cast_vote(
        self,
        apartment_id: str,
        option_id: str,
        now: Optional[datetime] = None,
    ) -> 'Poll':
        """Record (or replace) one apartment's vote; returns a new poll."""
        if not self.is_active or self.is_expired(now):
            raise InvalidInputError(f"Poll {self.id} is closed")
        if option_id not in {option.id for option in self.options}:
            raise InvalidInputError(f"Unknown poll option: {option_id}")
        updated = self.ballot_state.with_value(apartment_id, option_id)
        return self.model_copy(update={"ballots": updated.to_dict()})

    def close(self) -> 'Poll':
        return self.model_copy(update={"is_active": False})

    def results(self) -> dict[str, int]:
        """Vote count per option, zeros included, in option order."""
        counts = {option.id: 0 for option in self.options}
        for option_id in self.votes.values():
            counts[option_id] += 1
        return counts


def create_poll(
    question: str,
    option_texts: list[str],
    apartment_ids: Iterable[str],
    created_by: str,
    expires_at: Optional[datetime] = None,
) -> Poll:
    """Build a poll with an empty ballot for every eligible apartment."""
    eligible = list(dict.fromkeys(apartment_ids))
    if not eligible:
        raise InvalidInputError("A poll needs at least one eligible apartment")

    ballots = ApartmentKeyedState.for_members(eligible, None)
    return Poll(
        question=question,
        options=[
            PollOption(id=f"opt{index}", text=text)
            for index, text in enumerate(option_texts, start=1)
        ],
        created_by=created_by,
        expires_at=expires_at,
        ballots=ballots.to_dict(),
    )
