from abc import ABC, abstractmethod

class IRateLimiter(ABC):
    @abstractmethod
    def hit(self, key: str, limit: int, window_seconds: int) -> bool:
        """Records one hit for key. Returns False when the key is over its limit."""
        pass
