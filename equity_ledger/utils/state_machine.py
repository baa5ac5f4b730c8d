"""
Finite state machine helper.

Each stateful entity declares its allowed transitions once; services
validate a transition at the boundary instead of checking status
strings at every call site.
"""

from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Generic, TypeVar

from equity_ledger.utils.exceptions import InvalidStateError


S = TypeVar("S", bound=Enum)


class StateMachine(Generic[S]):
    """
    Transition table for one entity type.

    Example:
        machine = StateMachine(
            "deposit_request",
            {Status.PENDING: {Status.APPROVED, Status.REJECTED}},
        )
        machine.ensure(Status.PENDING, Status.APPROVED)
    """

    def __init__(
        self, entity: str, transitions: Mapping[S, Iterable[S]]
    ) -> None:
        self.entity = entity
        self.transitions: dict[S, frozenset[S]] = {
            source: frozenset(targets) for source, targets in transitions.items()
        }

    def can_transition(self, current: S, target: S) -> bool:
        """Check whether current -> target is allowed."""
        return target in self.transitions.get(current, frozenset())

    def is_terminal(self, state: S) -> bool:
        """Check whether no transition leaves this state."""
        return not self.transitions.get(state)

    def ensure(self, current: S, target: S) -> S:
        """
        Validate a transition.

        Returns:
            The target state

        Raises:
            InvalidStateError: If the transition is not allowed
        """
        if not self.can_transition(current, target):
            raise InvalidStateError(
                f"Cannot move {self.entity} from {current.value} to {target.value}",
                entity=self.entity,
                current=current.value,
                target=target.value,
            )
        return target
