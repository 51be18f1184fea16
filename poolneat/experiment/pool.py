from typing import List

from .agent import Agent


class Pool:
    """An isolated population sharing one topology lineage.

    The next generation is built in a second buffer and swapped in, so
    advancing a generation never copies the agent list.
    """
    def __init__(self, agents: List[Agent] = None):
        self._live: List[Agent] = list(agents) if agents else []
        self._next_gen: List[Agent] = []

    @property
    def agents(self) -> List[Agent]:
        return self._live

    @property
    def best(self) -> Agent:
        """The first agent, which is the fittest after `sort_by_fitness`."""
        return self._live[0]

    def sort_by_fitness(self) -> None:
        self._live.sort(key=lambda a: a.fitness, reverse=True)

    def prepare_for_next_gen(self) -> None:
        self._next_gen.clear()

    def add_agent_to_next_gen(self, agent: Agent) -> None:
        self._next_gen.append(agent)

    def make_next_gen_live(self) -> None:
        self._live, self._next_gen = self._next_gen, self._live

    def __len__(self):
        return len(self._live)

    def __iter__(self):
        return iter(self._live)
