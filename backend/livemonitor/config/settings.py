from pydantic_settings import BaseSettings
from pydantic import field_validator
from functools import lru_cache
from typing import List


# IRC rooms are of the form #lang.wikipedia
# http://meta.wikimedia.org/wiki/List_of_Wikipedias#1_000_000.2B_articles
MILLION_PLUS_LANGUAGES = ['en', 'de', 'fr', 'nl']

# http://meta.wikimedia.org/wiki/List_of_Wikipedias#100_000.2B_articles
ONE_HUNDRED_THOUSAND_PLUS_LANGUAGES = [
    'it', 'pl', 'es', 'ru', 'ja', 'pt', 'zh', 'vi', 'sv', 'uk', 'ca', 'no',
    'fi', 'cs', 'fa', 'hu', 'ro', 'ko', 'ar', 'tr', 'id', 'sk', 'eo', 'da',
    'kk', 'sr', 'lt', 'ms', 'he', 'eu', 'bg', 'sl', 'vo', 'hr', 'war', 'hi',
    'et',
]


class Settings(BaseSettings):
    """
    Monitor settings loaded from environment variables.

    Environment variables can come from:
    - .env file (loaded by run_monitor.py)
    - System environment

    Language lists are JSON arrays in the environment, e.g.
    MILLION_PLUS_LANGUAGES='["en","de"]'.
    """

    # Environment
    environment: str = "development"
    log_level: str = "INFO"

    # An article cluster is thrown out of the monitoring loop if its last
    # edit is longer ago than this
    seconds_since_last_edit: int = 240

    # Max gap between consecutive edits of a breaking news candidate
    seconds_between_edits: int = 60

    # Minimum number of edits before a cluster is a breaking news candidate
    breaking_news_threshold: int = 5

    # Minimum number of distinct editors of a breaking news candidate
    number_of_concurrent_editors: int = 2

    # Edit bots account for many false positives
    discard_wikipedia_bots: bool = True

    # Eviction sweeper period
    sweep_interval_seconds: float = 10.0

    # Monitored languages
    monitor_long_tail_wikipedias: bool = True
    million_plus_languages: List[str] = MILLION_PLUS_LANGUAGES
    one_hundred_thousand_plus_languages: List[str] = ONE_HUNDRED_THOUSAND_PLUS_LANGUAGES

    # Recent changes feed
    irc_server: str = "irc.wikimedia.org"
    irc_port: int = 6667
    irc_nick: str = "wikipedia-live-monitor"
    irc_feed_nick: str = "rc-pmtpa"
    irc_project: str = ".wikipedia"
    irc_reconnect_delay_seconds: float = 5.0

    # MediaWiki API (required by Wikimedia's User-Agent policy)
    user_agent: str = (
        "Wikipedia Live Monitor * IRC nick: wikipedia-live-monitor"
    )
    wiki_api_url_template: str = "https://{language}.wikipedia.org/w/api.php"
    http_timeout_seconds: float = 10.0
    langlinks_cache_ttl: int = 300

    # Per-cluster change history kept for output records
    max_tracked_changes: int = 100

    # Output
    output_dir: str = "."

    # Status API
    api_host: str = "0.0.0.0"
    port: int = 8080

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Ignore extra env vars

    @field_validator(
        'breaking_news_threshold',
        'number_of_concurrent_editors',
        'max_tracked_changes',
    )
    @classmethod
    def at_least_one(cls, v):
        """Thresholds and caps below 1 make the heuristics meaningless"""
        if v < 1:
            raise ValueError(f"must be >= 1, got {v}")
        return v

    @field_validator('million_plus_languages', 'one_hundred_thousand_plus_languages')
    @classmethod
    def normalize_languages(cls, v):
        return [lang.strip().lower() for lang in v if lang.strip()]

    @field_validator('one_hundred_thousand_plus_languages')
    @classmethod
    def disjoint_language_sets(cls, v, info):
        """High-volume and long-tail language sets must not overlap"""
        overlap = set(v) & set(info.data.get('million_plus_languages', []))
        if overlap:
            raise ValueError(f"languages listed in both sets: {sorted(overlap)}")
        return v

    @property
    def monitored_languages(self) -> List[str]:
        """High-volume languages, plus the long tail when enabled"""
        languages = list(self.million_plus_languages)
        if self.monitor_long_tail_wikipedias:
            languages.extend(self.one_hundred_thousand_plus_languages)
        return languages

    @property
    def irc_channels(self) -> List[str]:
        return [f"#{lang}{self.irc_project}" for lang in self.monitored_languages]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
