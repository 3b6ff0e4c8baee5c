from abc import ABC, abstractmethod


class BaseKeyValueStore(ABC):
    """Contract for the string key-value substrate behind the persistent stores."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value, or None when the key is absent.

        Raises:
            StorageError: if the medium cannot be read.
        """

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value.

        Raises:
            StorageQuotaError: if the write would exceed the medium's capacity.
            StorageError: on any other write failure.
        """

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete key. Removing an absent key is a no-op."""
