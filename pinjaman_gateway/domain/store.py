"""LoanBook - holds the current state and runs the dispatch loop"""

from typing import Callable, Iterable, List, Optional

from pinjaman_gateway.domain.actions import Action
from pinjaman_gateway.domain.models import AppState
from pinjaman_gateway.domain.reducer import ActionResult, Clock, IdFactory, apply_action
from pinjaman_gateway.utils.date_utils import utcnow
from pinjaman_gateway.utils.id_utils import generate_id

# Called with (previous, current) after every state change
Listener = Callable[[AppState, AppState], None]


class LoanBook:
    """
    Single owner of the application state.

    Actions are applied one at a time; listeners (e.g. the persistence
    adapter) run after each transition that changed the state.
    """

    def __init__(
        self,
        state: Optional[AppState] = None,
        clock: Clock = utcnow,
        new_id: IdFactory = generate_id,
    ):
        self._state = state if state is not None else AppState()
        self._clock = clock
        self._new_id = new_id
        self._listeners: List[Listener] = []

    @property
    def state(self) -> AppState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that removes it"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, action: Action) -> ActionResult:
        result = apply_action(self._state, action, clock=self._clock, new_id=self._new_id)
        if result.state is not self._state:
            previous, self._state = self._state, result.state
            for listener in list(self._listeners):
                listener(previous, self._state)
        return result

    def dispatch_all(self, actions: Iterable[Action]) -> List[ActionResult]:
        return [self.dispatch(action) for action in actions]
