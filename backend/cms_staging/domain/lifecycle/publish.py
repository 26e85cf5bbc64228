from enum import Enum
from typing import Set

from cms_staging.domain.exceptions import IllegalPublishTransition


class PublishState(str, Enum):
    NOT_STARTED = "not_started"
    ABORTED = "aborted"
    IN_TRANSACTION = "in_transaction"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


# Explicit allowed state transitions
ALLOWED_PUBLISH_TRANSITIONS: dict[PublishState, Set[PublishState]] = {
    PublishState.NOT_STARTED: {PublishState.ABORTED, PublishState.IN_TRANSACTION},
    PublishState.IN_TRANSACTION: {PublishState.COMMITTED, PublishState.ROLLED_BACK},
    PublishState.ABORTED: set(),
    PublishState.COMMITTED: set(),
    PublishState.ROLLED_BACK: set(),
}

def assert_publish_transition(*, from_state: PublishState, to_state: PublishState) -> PublishState:
    """
    Guards publish lifecycle transitions.
    Returns the new state so callers can assign in one step.
    """
    allowed = ALLOWED_PUBLISH_TRANSITIONS.get(from_state, set())

    if to_state not in allowed:
        raise IllegalPublishTransition(from_state.value, to_state.value)

    return to_state
