"""Process-wide shared state keyed by type."""

import logging
from typing import Any, Dict, Optional, Tuple, Type, TypeVar

from .exceptions import DataNotFoundError, RegistrationClosedError, TypeMismatchError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SharedState:
    """Heterogeneous container holding at most one value per type.

    Values are inserted during setup and read by handlers once the event loop
    runs. The runtime freezes the store when the loop starts; there is no
    mutation API after that, so concurrent reads need no locking.

    Example:
        state = SharedState()
        state.insert(MyConfig(example=True))

        config = state.get(MyConfig)  # MyConfig instance
        state.get(OtherConfig)  # None
    """

    def __init__(self):
        """Initialize an empty store."""
        self._values: Dict[type, Any] = {}
        self._frozen = False

    def insert(self, value: Any, as_type: Optional[type] = None) -> None:
        """Store a value, replacing any prior value of the same type.

        Args:
            value: Value to store
            as_type: Type to key the value by (defaults to ``type(value)``)

        Raises:
            RegistrationClosedError: If the store is frozen
            TypeMismatchError: If value is not an instance of as_type
        """
        if self._frozen:
            raise RegistrationClosedError("Shared state cannot change after the event loop started")

        key = as_type if as_type is not None else type(value)
        if as_type is not None and not isinstance(value, as_type):
            raise TypeMismatchError(
                f"Value of type {type(value).__name__} is not a {as_type.__name__}"
            )

        if key in self._values:
            logger.debug(f"Replacing shared state value for {key.__name__}")
        self._values[key] = value

    def get(self, key: Type[T]) -> Optional[T]:
        """Get the value stored for a type, or None if it was never inserted."""
        return self._values.get(key)

    def require(self, key: Type[T]) -> T:
        """Get the value stored for a type.

        Raises:
            DataNotFoundError: If no value of that type was inserted
        """
        if key not in self._values:
            raise DataNotFoundError(f"No shared state of type {_type_name(key)}")
        return self._values[key]

    def types(self) -> Tuple[type, ...]:
        """Types that currently hold a value."""
        return tuple(self._values)

    def freeze(self) -> None:
        """Forbid further insertions."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __contains__(self, key: type) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        names = ", ".join(_type_name(t) for t in self._values)
        return f"SharedState({names})"


def _type_name(key: Any) -> str:
    return getattr(key, "__name__", repr(key))
