"""
Workers - long-running consumers that own mutable monitor state.
"""
from .monitor_worker import (
    MonitorWorker,
    EditReceived,
    LanguageLinksResolved,
    EnrichmentReady,
)

__all__ = ['MonitorWorker', 'EditReceived', 'LanguageLinksResolved', 'EnrichmentReady']
