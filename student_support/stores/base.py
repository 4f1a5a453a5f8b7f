"""
Minimal unidirectional store

State is an immutable snapshot. The only way to change it is to
dispatch an Action, which a pure reducer folds into a new snapshot.
Listeners are called after every dispatch with the new state.
"""
from dataclasses import dataclass
from typing import Any, Callable, Generic, List, TypeVar

S = TypeVar("S")

Reducer = Callable[[S, "Action"], S]
Listener = Callable[[S], None]


@dataclass(frozen=True)
class Action:
    """A state transition request"""
    type: str
    payload: Any = None


class Store(Generic[S]):
    """
    Holds the current state and applies actions through a reducer

    Args:
        reducer: Pure function (state, action) -> new state
        initial_state: Starting snapshot
    """

    def __init__(self, reducer: Reducer, initial_state: S):
        self._reducer = reducer
        self._state = initial_state
        self._listeners: List[Listener] = []

    @property
    def state(self) -> S:
        return self._state

    def dispatch(self, action_type: str, payload: Any = None) -> S:
        """Apply one action and notify listeners"""
        self._state = self._reducer(self._state, Action(action_type, payload))
        for listener in list(self._listeners):
            listener(self._state)
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
