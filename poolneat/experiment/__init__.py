from .agent import Agent
from .pool import Pool

__all__ = ["Agent", "Pool"]
