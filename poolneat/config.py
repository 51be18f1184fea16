import random
from dataclasses import dataclass, field
from typing import Optional, Tuple

from .network.mutator import MutationType

SIMPLE_MUTATION_POLICIES = ("weight", "weighted")


@dataclass(frozen=True)
class ExperimentConfig:
    # Network shape, fixed for the lifetime of an experiment. Inputs exclude the bias.
    num_inputs: int
    num_outputs: int

    # =====================
    # Evolutionary Loop
    # =====================
    desired_fitness: float = 0.80
    max_rounds: Optional[int] = None       # None runs until desired_fitness is reached
    seed: Optional[int] = None
    num_workers: int = 1

    # =====================
    # Pools
    # =====================
    max_pool_count: int = 500
    best_agent_count: int = 100
    pool_size: int = 25
    num_new_pools_to_create: int = 10
    num_generation_iterations: int = 100

    # Next generation, ideally summing to pool_size
    next_gen_num_to_preserve: int = 5
    next_gen_num_to_breed: int = 15
    next_gen_num_to_mutate_simple: int = 5

    # =====================
    # Network
    # =====================
    link_weight_min: float = -1.0
    link_weight_max: float = 1.0
    enable_network_verifications: bool = True

    # =====================
    # Mutation
    # =====================
    # "weight": simple mutations always modify one weight.
    # "weighted": simple mutations draw their type from the amounts below.
    simple_mutation_policy: str = "weight"
    mutation_amount_modify_weight: int = 100
    mutation_amount_add_link: int = 10
    mutation_amount_add_node: int = 10
    mutation_amount_delete_link: int = 5
    mutation_amount_delete_node: int = 5

    # =====================
    # Output
    # =====================
    log_path: Optional[str] = None
    stats_path: Optional[str] = None
    leaderboard_path: Optional[str] = None
    leaderboard_save_interval: int = 1

    _mutation_ladder: Tuple[Tuple[int, MutationType], ...] = field(
        init=False, repr=False, compare=False, default=()
    )

    def __post_init__(self):
        if self.num_inputs < 0 or self.num_outputs < 1:
            raise ValueError("A network needs at least one output and a non-negative number of inputs")
        if self.pool_size < 1:
            raise ValueError("pool_size must be >= 1")
        if self.best_agent_count < 1:
            raise ValueError("best_agent_count must be >= 1")
        if self.num_generation_iterations < 0:
            raise ValueError("num_generation_iterations must be >= 0")
        if self.num_new_pools_to_create < 0:
            raise ValueError("num_new_pools_to_create must be >= 0")
        if self.max_pool_count <= self.num_new_pools_to_create:
            raise ValueError("max_pool_count must be > num_new_pools_to_create")
        if min(self.next_gen_num_to_preserve, self.next_gen_num_to_breed, self.next_gen_num_to_mutate_simple) < 0:
            raise ValueError("Next generation counts must be >= 0")
        if self.next_gen_size < 1:
            raise ValueError("The next generation must contain at least one agent")
        if self.next_gen_num_to_preserve > min(self.pool_size, self.next_gen_size):
            raise ValueError("Cannot preserve more agents than a pool holds")
        if self.link_weight_min > self.link_weight_max:
            raise ValueError("link_weight_min must be <= link_weight_max")
        if self.simple_mutation_policy not in SIMPLE_MUTATION_POLICIES:
            raise ValueError(f"simple_mutation_policy must be one of {SIMPLE_MUTATION_POLICIES}")
        if self.num_workers < 1:
            raise ValueError("num_workers must be >= 1")
        if self.max_rounds is not None and self.max_rounds < 1:
            raise ValueError("max_rounds must be >= 1 or None")
        if self.leaderboard_save_interval < 1:
            raise ValueError("leaderboard_save_interval must be >= 1")

        amounts = [
            (self.mutation_amount_modify_weight, MutationType.MODIFY_WEIGHT),
            (self.mutation_amount_add_link, MutationType.ADD_LINK),
            (self.mutation_amount_add_node, MutationType.ADD_NODE),
            (self.mutation_amount_delete_link, MutationType.DELETE_LINK),
            (self.mutation_amount_delete_node, MutationType.DELETE_NODE),
        ]
        if any(amount < 0 for amount, _ in amounts):
            raise ValueError("Mutation amounts must be >= 0")

        ladder = []
        total = 0
        for amount, mutation in amounts:
            total += amount
            ladder.append((total, mutation))
        object.__setattr__(self, "_mutation_ladder", tuple(ladder))

    @property
    def next_gen_size(self) -> int:
        return self.next_gen_num_to_preserve + self.next_gen_num_to_breed + self.next_gen_num_to_mutate_simple

    @property
    def weight_range(self) -> Tuple[float, float]:
        return (self.link_weight_min, self.link_weight_max)

    @property
    def mutation_amount_total(self) -> int:
        return self._mutation_ladder[-1][0]

    def choose_mutation_type(self, rng: random.Random) -> MutationType:
        """Draws a mutation type with probability proportional to its amount."""
        total = self.mutation_amount_total
        if total == 0:
            return MutationType.NONE

        selection = rng.randrange(total)
        for threshold, mutation in self._mutation_ladder:
            if selection < threshold:
                return mutation
        return MutationType.NONE
