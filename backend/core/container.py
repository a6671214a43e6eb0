"""
Conteneur d'injection de dépendances et configuration application.

Instancie les composants centraux (settings, dépôts, moteur astro, LLM, services)
et expose un singleton `container` utilisé par le reste de l'application.
"""

from backend.core.settings import Settings, get_settings
from backend.domain.analysis_cache import AnalysisCacheStore
from backend.domain.astrology_panel import AstrologyPanelService
from backend.domain.fate_analysis import FateAnalysisService
from backend.domain.insight import InsightService
from backend.infra.astro.simplified_ephemeris import SimplifiedEphemerisEngine
from backend.infra.llm.gemini_client import GeminiLLM, RetryPolicy
from backend.infra.repo.analysis_cache_repo import SqlAnalysisCacheRepo
from backend.infra.repo.db import get_engine, get_session_factory, init_schema
from backend.infra.repo.profile_repo import SqlProfileRepo
from backend.infra.repositories import (
    InMemoryAnalysisCacheRepo,
    InMemoryProfileRepo,
    RedisAnalysisCacheRepo,
    RedisProfileRepo,
)


class Container:
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self._init_repositories()
        self.astro = SimplifiedEphemerisEngine()
        self.llm = GeminiLLM(
            api_key=self.settings.GEMINI_API_KEY,
            model=self.settings.GEMINI_MODEL,
            base_url=self.settings.GEMINI_BASE_URL,
            retry=RetryPolicy(
                max_retries=self.settings.LLM_MAX_RETRIES,
                base_delay_ms=self.settings.LLM_BACKOFF_BASE_MS,
                max_delay_ms=self.settings.LLM_BACKOFF_MAX_MS,
                timeout_s=self.settings.LLM_TIMEOUT_S,
            ),
        )
        self.cache = AnalysisCacheStore(self.cache_repo)
        self.fate = FateAnalysisService(self.llm, records_limit=self.settings.RECENT_RECORDS_LIMIT)
        self.insight = InsightService(self.llm)
        self.panel = AstrologyPanelService(
            self.profile_repo, self.astro, self.cache, self.fate, self.insight
        )

    def _init_repositories(self) -> None:
        """Choisit le stockage: SQL si DATABASE_URL, Redis si REDIS_URL, sinon mémoire."""
        if self.settings.DATABASE_URL:
            engine = get_engine(self.settings.DATABASE_URL)
            init_schema(engine)
            sessions = get_session_factory(engine)
            self.profile_repo = SqlProfileRepo(sessions)
            self.cache_repo = SqlAnalysisCacheRepo(sessions)
            self.storage_backend = "sql"
            return
        if self.settings.REDIS_URL:
            try:
                self.profile_repo = RedisProfileRepo(self.settings.REDIS_URL)
                self.cache_repo = RedisAnalysisCacheRepo(self.settings.REDIS_URL)
                self.storage_backend = "redis"
                return
            except Exception as err:
                if self.settings.REQUIRE_REDIS:
                    raise RuntimeError("Redis required but unavailable") from err
                self.storage_backend = "memory-fallback"
        else:
            if self.settings.REQUIRE_REDIS:
                raise RuntimeError("Redis required but REDIS_URL not set")
            self.storage_backend = "memory"
        self.profile_repo = InMemoryProfileRepo()
        self.cache_repo = InMemoryAnalysisCacheRepo()


container = Container()
