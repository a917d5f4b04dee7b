"""
Delivery: scheduling and study queue for saved vocabulary.

Components:
- Card, Deck, ReviewLog: Domain records
- CardStore: SQLite persistence
- Scheduler: Learning-ladder spaced repetition
- DueSelector: Capped, ordered study queue
- StatisticsEngine: Derived statistics and forecasts
"""

from .due_selector import DueSelector, StudyQueue
from .models import Card, Deck, Phase, Rating, ReviewLog, phase_of
from .scheduler import Scheduler, SchedulerConfig, format_interval
from .state_store import CardStore
from .statistics import StatisticsEngine, StatsSnapshot

__all__ = [
    # Records
    "Card",
    "Deck",
    "ReviewLog",
    "Rating",
    "Phase",
    "phase_of",
    # Persistence
    "CardStore",
    # Scheduling
    "Scheduler",
    "SchedulerConfig",
    "format_interval",
    "DueSelector",
    "StudyQueue",
    # Statistics
    "StatisticsEngine",
    "StatsSnapshot",
]
