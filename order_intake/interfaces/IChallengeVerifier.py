from abc import ABC, abstractmethod
from typing import Optional

class IChallengeVerifier(ABC):
    @property
    @abstractmethod
    def enabled(self) -> bool:
        pass

    @abstractmethod
    def verify(self, token: str, remote_ip: Optional[str] = None) -> bool:
        pass
