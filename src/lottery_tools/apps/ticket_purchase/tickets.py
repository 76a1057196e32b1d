"""Ticket number sets for a purchase.

A ticket holds six digits. On chain each ticket is encoded as a seven-digit
integer in ``[1_000_000, 1_999_999]``: a leading ``1`` followed by the six
digits in reverse order, so the first displayed digit is the least
significant one. ``TicketSet`` keeps the editable list of tickets for the
purchase screen and produces the encoded numbers at submission time.
"""

import logging
import random
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

logger = logging.getLogger(__name__)

TICKET_DIGITS = 6
MIN_TICKET_NUMBER = 1_000_000
MAX_TICKET_NUMBER = 1_999_999

_DIGITS = frozenset("0123456789")


@dataclass(frozen=True)
class Ticket:
    """One editable ticket.

    Args:
        id: Position of the ticket in the set.
        numbers: Six display digits; an empty string marks an unset digit.
        duplicate_with: Ids of other tickets in the set with the same digits.

    """

    id: int
    numbers: tuple[str, ...]
    duplicate_with: tuple[int, ...] = ()

    @property
    def is_complete(self) -> bool:
        """Return True when every digit has been set."""
        return len(self.numbers) == TICKET_DIGITS and all(d in _DIGITS for d in self.numbers)


def generate_ticket_numbers(
    count: int,
    existing: Iterable[int] = (),
    rng: random.Random | None = None,
) -> list[int]:
    """Return ``count`` distinct encoded ticket numbers not already held.

    Args:
        count: How many numbers to generate.
        existing: Encoded numbers the user already owns in this round.
        rng: Random source, injectable for deterministic tests.

    Returns:
        Distinct encoded ticket numbers.

    Raises:
        ValueError: If ``count`` exceeds the numbers still available.

    """
    rng = rng or random.Random()  # noqa: S311
    taken = set(existing)
    available = MAX_TICKET_NUMBER - MIN_TICKET_NUMBER + 1 - len(
        {n for n in taken if MIN_TICKET_NUMBER <= n <= MAX_TICKET_NUMBER}
    )
    if count > available:
        msg = f"cannot generate {count} unique tickets, only {available} left"
        raise ValueError(msg)

    generated: list[int] = []
    while len(generated) < count:
        candidate = rng.randint(MIN_TICKET_NUMBER, MAX_TICKET_NUMBER)
        if candidate in taken:
            continue
        taken.add(candidate)
        generated.append(candidate)
    return generated


def parse_retrieved_number(number: int) -> tuple[str, ...]:
    """Turn an encoded ticket number into its six display digits."""
    digits = str(number)[1:]
    return tuple(reversed(digits))


def encode_ticket(numbers: Sequence[str]) -> int:
    """Encode six display digits as the on-chain ticket number."""
    return int("1" + "".join(reversed(numbers)))


def _mark_duplicates(tickets: Sequence[Ticket]) -> list[Ticket]:
    marked: list[Ticket] = []
    for ticket in tickets:
        dupes = tuple(
            other.id
            for other in tickets
            if other.id != ticket.id and ticket.is_complete and other.numbers == ticket.numbers
        )
        marked.append(Ticket(id=ticket.id, numbers=ticket.numbers, duplicate_with=dupes))
    return marked


class TicketSet:
    """Editable set of tickets for one purchase.

    Generate random tickets that avoid the user's existing numbers for the
    round, let the user edit individual tickets, and encode the final set
    for ``buyTickets``.

    Args:
        count: Number of tickets to hold.
        user_current_tickets: Encoded numbers already owned this round.
        rng: Random source, injectable for deterministic tests.

    """

    def __init__(
        self,
        count: int = 0,
        user_current_tickets: Iterable[int] = (),
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the set with ``count`` random tickets."""
        self._rng = rng or random.Random()  # noqa: S311
        self._existing = tuple(user_current_tickets)
        self._tickets: list[Ticket] = []
        self.resize(count)

    @property
    def tickets(self) -> tuple[Ticket, ...]:
        """Return the current tickets."""
        return tuple(self._tickets)

    @property
    def all_complete(self) -> bool:
        """Return True when every ticket is fully set and none is a duplicate."""
        return all(t.is_complete and not t.duplicate_with for t in self._tickets)

    def resize(self, count: int) -> None:
        """Regenerate the set with ``count`` random tickets."""
        count = max(count, 0)
        numbers = generate_ticket_numbers(count, self._existing, self._rng)
        self._tickets = [
            Ticket(id=i, numbers=parse_retrieved_number(n)) for i, n in enumerate(numbers)
        ]

    def randomize(self) -> None:
        """Replace every ticket with fresh random numbers."""
        self.resize(len(self._tickets))
        logger.debug("Randomized %d tickets", len(self._tickets))

    def update_ticket(self, ticket_id: int, numbers: Sequence[str]) -> None:
        """Replace the digits of one ticket and recompute duplicate markers.

        Raises:
            KeyError: If no ticket has ``ticket_id``.
            ValueError: If ``numbers`` does not hold exactly six entries, or an
                entry is neither empty nor a single ASCII digit.

        """
        if len(numbers) != TICKET_DIGITS:
            msg = f"a ticket has {TICKET_DIGITS} digits, got {len(numbers)}"
            raise ValueError(msg)
        bad = [d for d in numbers if d != "" and d not in _DIGITS]
        if bad:
            msg = f"ticket entries must be a single digit 0-9 or empty, got {bad!r}"
            raise ValueError(msg)
        if not any(t.id == ticket_id for t in self._tickets):
            raise KeyError(ticket_id)
        updated = [
            Ticket(id=t.id, numbers=tuple(numbers)) if t.id == ticket_id else t
            for t in self._tickets
        ]
        self._tickets = _mark_duplicates(updated)

    def get_tickets_for_purchase(self) -> list[int]:
        """Return the encoded numbers of every complete ticket."""
        return [encode_ticket(t.numbers) for t in self._tickets if t.is_complete]
