import os
from typing import Callable, List, Optional

from ..experiment import Agent
from ..network import io


class Leaderboard:
    """The best agents ever evaluated, kept sorted by descending fitness.

    Entries are copies, so later mutation of the evaluated agents never
    changes them. The leaderboard is a reference only and never feeds pools.
    """
    def __init__(self, capacity: int, clone: Optional[Callable[[Agent], Agent]] = None):
        if capacity < 1:
            raise ValueError("Leaderboard capacity must be >= 1")
        self.capacity = capacity
        self.clone = clone if clone is not None else Agent.copy
        self.agents: List[Agent] = []

    def __len__(self):
        return len(self.agents)

    @property
    def best(self) -> Optional[Agent]:
        return self.agents[0] if self.agents else None

    @property
    def worst(self) -> Optional[Agent]:
        return self.agents[-1] if self.agents else None

    @property
    def best_fitness(self) -> float:
        """Fitness of the best entry, or -inf when empty."""
        return self.agents[0].fitness if self.agents else float("-inf")

    def consider(self, agent: Agent) -> bool:
        """Offers an evaluated agent. Returns True if a copy was admitted."""
        if len(self.agents) >= self.capacity:
            if agent.fitness <= self.agents[-1].fitness:
                return False
            self.agents.pop()

        self.agents.append(self.clone(agent))
        self._sort()
        return True

    def _sort(self):
        self.agents.sort(key=lambda a: a.fitness, reverse=True)

    def save(self, path: str) -> None:
        """Writes every entry's network, best first, with its fitness as a comment."""
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, "w") as f:
            for rank, agent in enumerate(self.agents, start=1):
                f.write(f"# Rank {rank}: fitness={agent.fitness!r}\n")
                f.write(io.dumps(agent.network))
                f.write("\n")
