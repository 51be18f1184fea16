import itertools
import logging
import multiprocessing as mp
import os
import pickle
import random
import traceback
from contextlib import contextmanager
from dataclasses import dataclass
from time import monotonic
from typing import Callable, List, Optional, Tuple

import pandas as pd

from .config import ExperimentConfig
from .data import Leaderboard
from .errors import NeuroevolutionError
from .experiment import Agent, Pool
from .network import MutationType, Network

LOGGER_NAME = "Neuroevolution"
LOG_FORMAT = "[%(asctime)s][%(processName)s][%(levelname)s] %(message)s"
STATS_HEADERS = [
    "round", "pools", "best_fitness", "mean_pool_best", "best_nodes", "best_links", "best_recurrent", "elapsed",
]

# Cumulative thresholds for the one topology mutation a new pool's template receives
NEW_POOL_TOPOLOGY_LADDER: Tuple[Tuple[float, MutationType], ...] = (
    (0.40, MutationType.ADD_NODE),
    (0.80, MutationType.ADD_LINK),
    (0.90, MutationType.DELETE_LINK),
    (1.00, MutationType.DELETE_NODE),
)


# -------------------------------
# Logging helpers
# -------------------------------
def setup_logging(log_path: Optional[str] = None, console_level: int = logging.INFO) -> logging.Logger:
    """Console logging at `console_level`, plus full DEBUG logging to `log_path` if given."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    for handler in list(logger.handlers):
        if getattr(handler, "_poolneat", False):
            logger.removeHandler(handler)
            handler.close()

    fmt = logging.Formatter(LOG_FORMAT)

    ch = logging.StreamHandler()
    ch.setLevel(console_level)
    ch.setFormatter(fmt)
    ch._poolneat = True
    logger.addHandler(ch)

    if log_path:
        directory = os.path.dirname(log_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        fh = logging.FileHandler(log_path)
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(fmt)
        fh._poolneat = True
        logger.addHandler(fh)

    return logger


# -------------------------------
# Worker logic
# -------------------------------
def _evaluate_worker(payload: Tuple[Callable[[Agent], float], Agent]) -> float:
    evaluate, agent = payload
    return float(evaluate(agent))


@dataclass
class EvolutionResult:
    best_agent: Optional[Agent]
    best_fitness: float
    rounds: int
    reached: bool


class EvolutionEngine:
    """Evolves agents across isolated pools until one is fit enough.

    Each round advances every pool through `num_generation_iterations`
    generations of elitism, breeding and simple mutation, then culls the
    weakest pools and seeds new ones from topology-mutated copies of the
    best agents. All randomness comes from one `random.Random`, consumed in a
    fixed order, so a seeded run is reproducible. With `num_workers > 1` the
    fitness function is shipped to worker processes and must be picklable.
    """
    def __init__(
        self,
        config: ExperimentConfig,
        evaluate: Callable[[Agent], float],
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config = config
        self.evaluate = evaluate
        self.rng = rng if rng is not None else random.Random(config.seed)
        self.logger = logging.getLogger(LOGGER_NAME)

        self.pools: List[Pool] = []
        self.leaderboard = Leaderboard(config.best_agent_count, clone=self.clone_agent)
        self.round = 0
        self._network_ids = itertools.count()
        self._workers = None

    # --- factories ---
    def new_network_id(self) -> int:
        return next(self._network_ids)

    def new_network(self) -> Network:
        config = self.config
        return Network.minimal(
            config.num_inputs,
            config.num_outputs,
            self.rng,
            network_id=self.new_network_id(),
            weight_range=config.weight_range,
            verify=config.enable_network_verifications,
        )

    def clone_agent(self, agent: Agent) -> Agent:
        return agent.copy(self.new_network_id())

    # --- main loop ---
    def run(self) -> EvolutionResult:
        config = self.config
        setup_logging(config.log_path)
        if config.stats_path:
            self._init_stats()

        self.logger.info(
            f"Starting evolution: {config.num_inputs} inputs, {config.num_outputs} outputs, "
            f"target fitness {config.desired_fitness}"
        )

        try:
            with self._worker_pool():
                if not self.pools:
                    self.create_initial_pool()

                best_fitness = self.leaderboard.best_fitness
                while best_fitness < config.desired_fitness:
                    if config.max_rounds is not None and self.round >= config.max_rounds:
                        self.logger.warning(
                            f"Stopping after {self.round} rounds without reaching {config.desired_fitness}"
                        )
                        break
                    best_fitness = self.step()
        except NeuroevolutionError:
            self.logger.error(f"[Evolution Error] Round {self.round}: {traceback.format_exc()}")
            raise

        reached = best_fitness >= config.desired_fitness
        self.logger.info(
            f"Evolution complete after {self.round} rounds | best fitness={best_fitness:.6f} | reached={reached}"
        )
        return EvolutionResult(
            best_agent=self.leaderboard.best,
            best_fitness=best_fitness,
            rounds=self.round,
            reached=reached,
        )

    def step(self) -> float:
        """Runs one round over every pool and returns the best fitness seen so far."""
        start_time = monotonic()
        if not self.pools:
            self.create_initial_pool()

        for index, pool in enumerate(self.pools):
            pool_start = monotonic()
            self.advance_pool(pool)
            self.logger.debug(
                f"Round {self.round} | Pool {index}: best={pool.best.fitness:.6f}, "
                f"nodes={pool.best.network.node_count}, links={pool.best.network.link_count}, "
                f"{monotonic() - pool_start:.3f}s"
            )

        best_fitness = self.leaderboard.best_fitness
        pool_bests = [pool.best.fitness for pool in self.pools]

        self.eliminate_worst_pools_if_necessary()
        self.create_pools_with_new_topologies()
        self.round += 1

        elapsed = monotonic() - start_time
        self.log_checkpoint(best_fitness, pool_bests, elapsed)
        if self.config.stats_path:
            self.log_stats(best_fitness, pool_bests, elapsed)
        if self.config.leaderboard_path and self.round % self.config.leaderboard_save_interval == 0:
            self.leaderboard.save(self.config.leaderboard_path)
        return best_fitness

    # --- pools ---
    def create_initial_pool(self) -> Pool:
        """The first pool holds minimal networks with random weights."""
        pool = Pool([Agent(self.new_network()) for _ in range(self.config.pool_size)])
        self.pools.append(pool)
        return pool

    def advance_pool(self, pool: Pool) -> None:
        for _ in range(self.config.num_generation_iterations):
            self.evaluate_pool(pool)
            self.create_next_gen_for_pool(pool)

        self.evaluate_pool(pool)
        pool.sort_by_fitness()

    def evaluate_pool(self, pool: Pool) -> None:
        """Scores every live agent, then offers each to the leaderboard in order."""
        for agent in pool.agents:
            agent.fitness = 0.0

        if self._workers is not None:
            payload = [(self.evaluate, agent) for agent in pool.agents]
            for agent, fitness in zip(pool.agents, self._workers.map(_evaluate_worker, payload)):
                agent.fitness = fitness
        else:
            for agent in pool.agents:
                agent.fitness = float(self.evaluate(agent))

        for agent in pool.agents:
            self.leaderboard.consider(agent)

    def create_next_gen_for_pool(self, pool: Pool) -> None:
        config = self.config
        pool.sort_by_fitness()
        pool.prepare_for_next_gen()
        live = pool.agents

        for elite in live[:config.next_gen_num_to_preserve]:
            elite.age += 1
            elite.fitness = 0.0
            pool.add_agent_to_next_gen(elite)

        for _ in range(config.next_gen_num_to_breed):
            parent1 = self.rng.choice(live)
            parent2 = self.rng.choice(live)
            pool.add_agent_to_next_gen(self.breed(parent1, parent2))

        for _ in range(config.next_gen_num_to_mutate_simple):
            victim = self.clone_agent(self.rng.choice(live))
            self.mutate_agent_simple(victim)
            victim.fitness = 0.0
            pool.add_agent_to_next_gen(victim)

        pool.make_next_gen_live()

    def eliminate_worst_pools_if_necessary(self) -> None:
        """Drops the pools with the weakest best agent to make room for new ones."""
        limit = self.config.max_pool_count - self.config.num_new_pools_to_create + 1
        if len(self.pools) < limit:
            return

        self.pools.sort(key=lambda p: p.best.fitness, reverse=True)
        removed = 0
        while len(self.pools) >= limit:
            self.pools.pop()
            removed += 1
        self.logger.debug(f"Round {self.round}: eliminated {removed} pools, {len(self.pools)} remain")

    def create_pools_with_new_topologies(self) -> List[Pool]:
        """Seeds new pools from topology-mutated copies of existing pools' best agents."""
        new_pools = []
        for _ in range(self.config.num_new_pools_to_create):
            source = self.rng.choice(self.pools)
            template = self.clone_agent(source.best)
            mutation = self.mutate_topology(template)

            pool = Pool()
            for _ in range(self.config.pool_size):
                agent = self.clone_agent(template)
                if self.rng.random() < 0.5:
                    self.mutate_agent_simple(agent)
                else:
                    agent.network.randomize_weights(self.rng)
                agent.fitness = 0.0
                pool.agents.append(agent)
            new_pools.append(pool)

            self.logger.debug(
                f"Round {self.round}: new pool from {mutation.value}, "
                f"nodes={template.network.node_count}, links={template.network.link_count}"
            )

        self.pools.extend(new_pools)
        return new_pools

    # --- agents ---
    def breed(self, parent1: Agent, parent2: Agent) -> Agent:
        return parent1.crossover(parent2, self.rng, network_id=self.new_network_id())

    def mutate_agent_simple(self, agent: Agent) -> MutationType:
        """A mutation that, under the default policy, leaves the topology alone."""
        return agent.mutate(self.rng, self.config)

    def mutate_topology(self, agent: Agent) -> MutationType:
        selection = self.rng.random()
        for threshold, mutation in NEW_POOL_TOPOLOGY_LADDER:
            if selection <= threshold:
                break
        agent.mutator(self.rng).apply(mutation)
        return mutation

    # --- workers ---
    @contextmanager
    def _worker_pool(self):
        if self.config.num_workers <= 1:
            yield None
            return

        # Workers receive the fitness function by pickle
        try:
            pickle.dumps(self.evaluate)
        except (pickle.PicklingError, AttributeError, TypeError) as e:
            raise ValueError(
                f"num_workers={self.config.num_workers} needs a picklable fitness function, "
                f"such as a module-level function; got {self.evaluate!r}"
            ) from e

        self.logger.info(f"Evaluating with {self.config.num_workers} worker processes")
        with mp.get_context().Pool(processes=self.config.num_workers) as workers:
            self._workers = workers
            try:
                yield workers
            finally:
                self._workers = None

    # --- reporting ---
    def _init_stats(self) -> None:
        directory = os.path.dirname(self.config.stats_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        if not os.path.exists(self.config.stats_path):
            df = pd.DataFrame(columns=STATS_HEADERS)
            df.to_csv(self.config.stats_path, index=False)

    def log_stats(self, best_fitness: float, pool_bests: List[float], elapsed: float) -> None:
        if not os.path.exists(self.config.stats_path):
            self._init_stats()

        best = self.leaderboard.best
        df = pd.DataFrame(
            {
                "round": [self.round],
                "pools": [len(self.pools)],
                "best_fitness": [best_fitness],
                "mean_pool_best": [sum(pool_bests) / len(pool_bests) if pool_bests else float("nan")],
                "best_nodes": [best.network.node_count if best else 0],
                "best_links": [best.network.link_count if best else 0],
                "best_recurrent": [best.network.is_recurrent() if best else False],
                "elapsed": [elapsed],
            }
        )
        df.to_csv(self.config.stats_path, mode="a", header=False, index=False)

    def log_checkpoint(self, best_fitness: float, pool_bests: List[float], elapsed: float) -> None:
        top_pools = sorted(pool_bests, reverse=True)[:5]
        pools_str = " | ".join(f"{fitness:.6f}" for fitness in top_pools)
        self.logger.info(
            f"[Checkpoint] Round: {self.round} | {elapsed:.2f}s | pools={len(self.pools)} | "
            f"Global Best -> fitness={best_fitness:.6f} | Best Pools -> {pools_str}"
        )
