"""Observers - independent consumers of the per-turn observation."""

from multicomp.observers.base import JsonStore, Observer
from multicomp.observers.competence import CompetenceObserver
from multicomp.observers.gradient import GradientObserver
from multicomp.observers.memory import MemoryObserver
from multicomp.observers.pattern import PatternObserver
from multicomp.observers.scar import ScarObserver

__all__ = [
    "Observer",
    "JsonStore",
    "PatternObserver",
    "ScarObserver",
    "CompetenceObserver",
    "GradientObserver",
    "MemoryObserver",
]
