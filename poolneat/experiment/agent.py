import random
from typing import Optional

from ..config import ExperimentConfig
from ..network import MutationType, Network, NetworkMutator


class Agent:
    """An individual: a network brain plus its latest fitness and age."""
    def __init__(self, network: Network):
        self.network = network
        self.fitness: float = 0.0
        self.age: int = 0

    def copy(self, network_id: Optional[int] = None) -> "Agent":
        """Deep copy with its own network. Age starts over; fitness is kept."""
        agent = Agent(self.network.copy(network_id))
        agent.fitness = self.fitness
        return agent

    def mutator(self, rng: random.Random) -> NetworkMutator:
        return NetworkMutator(self.network, rng)

    def mutate(self, rng: random.Random, config: ExperimentConfig) -> MutationType:
        """Applies one simple mutation according to the configured policy."""
        if config.simple_mutation_policy == "weighted":
            mutation = config.choose_mutation_type(rng)
        else:
            mutation = MutationType.MODIFY_WEIGHT
        self.mutator(rng).apply(mutation)
        return mutation

    def crossover(self, other: "Agent", rng: random.Random, network_id: Optional[int] = None) -> "Agent":
        """Breeds a child whose link weights come from either parent at random.

        Both parents are expected to share a topology, which holds for agents
        of the same pool. Links missing from `other` keep this agent's weight.
        """
        child = self.copy(network_id)
        child.fitness = 0.0
        for link in child.network.links.values():
            if rng.random() < 0.5:
                link.weight = self.network.links[link.id].weight
            else:
                donor = other.network.links.get(link.id)
                link.weight = donor.weight if donor is not None else self.network.links[link.id].weight
        return child

    def __repr__(self):
        return f"Agent(Id#{self.network.id}, F={self.fitness:.3f}, age={self.age})"
