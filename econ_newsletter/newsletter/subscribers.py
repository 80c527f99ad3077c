from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional


@dataclass
class Subscriber:
    id: str
    email: str


class SubscriberProvider(ABC):

    @abstractmethod
    async def get_confirmed_subscribers(self) -> List[Subscriber]:
        pass


class StaticSubscriberProvider(SubscriberProvider):
    """Confirmed subscribers taken from configuration."""

    def __init__(self, emails: List[str], limit: Optional[int] = None):
        self.emails = emails
        self.limit = limit

    async def get_confirmed_subscribers(self) -> List[Subscriber]:
        seen = set()
        subscribers = []
        for email in self.emails:
            normalized = email.strip().lower()
            if not normalized or normalized in seen:
                continue
            seen.add(normalized)
            subscribers.append(Subscriber(id=normalized, email=normalized))
        if self.limit is not None:
            subscribers = subscribers[:self.limit]
        return subscribers
