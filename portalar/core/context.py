from dataclasses import dataclass

import structlog

from portalar.core.config import Settings
from portalar.middleware.rate_limit import RateLimiters
from portalar.services.analytics import AnalyticsService
from portalar.services.auth import AuthGate
from portalar.services.content import ContentService
from portalar.services.summarizer import Summarizer
from portalar.storage.facade import Storage, build_storage

logger = structlog.get_logger()


@dataclass
class AppContext:
    """Everything request handlers need, built once per process"""

    settings: Settings
    storage: Storage
    content: ContentService
    analytics: AnalyticsService
    auth: AuthGate
    summarizer: Summarizer
    limiters: RateLimiters

    @classmethod
    def from_settings(cls, settings: Settings, storage: Storage | None = None) -> "AppContext":
        storage = storage or build_storage(settings)
        return cls(
            settings=settings,
            storage=storage,
            content=ContentService(storage),
            analytics=AnalyticsService(storage),
            auth=AuthGate(settings),
            summarizer=Summarizer(settings),
            limiters=RateLimiters.from_settings(settings),
        )

    async def startup(self) -> None:
        # Storage failures propagate: the app must not serve without a database
        await self.storage.initialize()
        await self.limiters.connect(self.settings.redis_url)

    async def shutdown(self) -> None:
        await self.storage.close()
        await self.limiters.close()
        await self.summarizer.aclose()
