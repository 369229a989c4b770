"""
Bidirectional map between sequential integer prompt ids and the opaque
string ids a remote backend assigns to its records.

The map lives in process memory only; ids issued before a restart are
not guaranteed to refer to the same record afterwards.
"""
import logging
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class IdentifierMap:
    """
    Injective mapping ``int <-> native id``.

    Integers come from a counter that only grows, so a removed integer is
    never handed out again.
    """

    def __init__(self, start: int = 1):
        self._next_id = start
        self._to_native: Dict[int, str] = {}
        self._to_integer: Dict[str, int] = {}

    def assign(self, native_id: str) -> int:
        """
        Map ``native_id`` to a new integer, or return its existing integer.

        Args:
            native_id: Backend-assigned record id

        Returns:
            The integer id for this record
        """
        existing = self._to_integer.get(native_id)
        if existing is not None:
            return existing

        integer_id = self._next_id
        self._next_id += 1
        self._to_native[integer_id] = native_id
        self._to_integer[native_id] = integer_id
        logger.debug(f"Mapped id {integer_id} -> {native_id}")
        return integer_id

    # Reads better at call sites that observe records from a query
    get_or_assign = assign

    def lookup_native(self, integer_id: int) -> Optional[str]:
        """Get the native id for an integer id."""
        return self._to_native.get(integer_id)

    def lookup_integer(self, native_id: str) -> Optional[int]:
        """Get the integer id for a native id without allocating one."""
        return self._to_integer.get(native_id)

    def remove(self, integer_id: int) -> Optional[str]:
        """
        Drop the mapping for ``integer_id``.

        Returns:
            The native id that was mapped, or None if there was none
        """
        native_id = self._to_native.pop(integer_id, None)
        if native_id is not None:
            self._to_integer.pop(native_id, None)
        return native_id

    def clear(self) -> None:
        """Forget all mappings. The counter keeps counting."""
        self._to_native.clear()
        self._to_integer.clear()

    def __contains__(self, integer_id: object) -> bool:
        return integer_id in self._to_native

    def __len__(self) -> int:
        return len(self._to_native)
