import logging
import random

import pandas as pd
import pytest

from poolneat.config import ExperimentConfig
from poolneat.errors import ConnectivityInconsistent
from poolneat.evaluate import evaluate_xor, evaluate_xor_error
from poolneat.evolutionary_loop import LOGGER_NAME, STATS_HEADERS, EvolutionEngine
from poolneat.experiment import Agent, Pool
from poolneat.network import MutationType, Network, io

from .conftest import FixedRandom


def small_config(**overrides):
    settings = dict(
        num_inputs=2,
        num_outputs=1,
        pool_size=10,
        num_generation_iterations=5,
        max_pool_count=6,
        num_new_pools_to_create=2,
        next_gen_num_to_preserve=2,
        next_gen_num_to_breed=6,
        next_gen_num_to_mutate_simple=2,
        best_agent_count=10,
    )
    settings.update(overrides)
    return ExperimentConfig(**settings)


def topology(agent):
    network = agent.network
    return set(network.nodes), {(l.source, l.target) for l in network.links.values()}


def pool_with_best(fitness):
    agent = Agent(Network.minimal(1, 1, random.Random(0)))
    agent.fitness = fitness
    return Pool([agent])


def initial_pool_best(config):
    """Best XOR score of the first pool a run with this config starts from."""
    engine = EvolutionEngine(config, evaluate_xor)
    engine.evaluate_pool(engine.create_initial_pool())
    return engine.leaderboard.best_fitness


class TestPools:
    """Tests for pool creation, generations and culling."""

    def test_initial_pool(self):
        engine = EvolutionEngine(small_config(), evaluate_xor, rng=random.Random(1))
        pool = engine.create_initial_pool()

        assert engine.pools == [pool]
        assert len(pool) == 10
        assert len({agent.network.id for agent in pool}) == 10
        for agent in pool:
            assert agent.network.num_inputs == 2
            assert agent.network.num_outputs == 1
            assert agent.network.hidden_nodes == []

    def test_next_generation(self):
        engine = EvolutionEngine(small_config(), evaluate_xor, rng=random.Random(2))
        pool = engine.create_initial_pool()
        engine.evaluate_pool(pool)
        pool.sort_by_fitness()
        elites = pool.agents[:2]

        engine.create_next_gen_for_pool(pool)
        assert len(pool) == engine.config.next_gen_size
        assert pool.agents[:2] == elites
        for elite in elites:
            assert elite.age == 1
            assert elite.fitness == 0.0
        for agent in pool.agents[2:]:
            assert agent.age == 0
            assert agent not in elites

    def test_advance_pool_leaves_it_sorted(self):
        engine = EvolutionEngine(small_config(), evaluate_xor, rng=random.Random(3))
        pool = engine.create_initial_pool()
        engine.advance_pool(pool)

        fitnesses = [agent.fitness for agent in pool]
        assert fitnesses == sorted(fitnesses, reverse=True)
        assert engine.leaderboard.best_fitness >= pool.best.fitness

    def test_evaluation_feeds_leaderboard(self):
        engine = EvolutionEngine(small_config(), evaluate_xor, rng=random.Random(4))
        pool = engine.create_initial_pool()
        engine.evaluate_pool(pool)

        assert len(engine.leaderboard) == 10
        assert engine.leaderboard.best_fitness == max(agent.fitness for agent in pool)
        live_ids = {agent.network.id for agent in pool}
        assert all(entry.network.id not in live_ids for entry in engine.leaderboard.agents)

    def test_culls_weakest_pools(self):
        engine = EvolutionEngine(small_config(), evaluate_xor, rng=random.Random(5))
        engine.pools = [pool_with_best(f) for f in (0.3, 0.9, 0.1, 0.5, 0.7, 0.2)]

        engine.eliminate_worst_pools_if_necessary()
        # Room is left for exactly the pools created next
        assert [pool.best.fitness for pool in engine.pools] == [0.9, 0.7, 0.5, 0.3]

    def test_no_culling_below_limit(self):
        engine = EvolutionEngine(small_config(), evaluate_xor, rng=random.Random(5))
        engine.pools = [pool_with_best(f) for f in (0.3, 0.9, 0.1, 0.5)]
        engine.eliminate_worst_pools_if_necessary()
        assert len(engine.pools) == 4

    def test_new_pools_share_a_topology(self):
        engine = EvolutionEngine(small_config(), evaluate_xor, rng=random.Random(6))
        pool = engine.create_initial_pool()
        engine.advance_pool(pool)

        new_pools = engine.create_pools_with_new_topologies()
        assert len(new_pools) == 2
        assert engine.pools[1:] == new_pools
        for new_pool in new_pools:
            assert len(new_pool) == 10
            shapes = [topology(agent) for agent in new_pool]
            assert all(shape == shapes[0] for shape in shapes)
            assert all(agent.fitness == 0.0 for agent in new_pool)

    def test_step_keeps_pool_count_bounded(self):
        engine = EvolutionEngine(small_config(), evaluate_xor, rng=random.Random(7))
        for _ in range(5):
            engine.step()
            assert len(engine.pools) <= engine.config.max_pool_count
        assert engine.round == 5
        assert len(engine.pools) == 6


class TestTopologyMutation:
    """Tests for the topology mutation given to new pool templates."""

    @pytest.mark.parametrize(
        "draw, expected",
        [
            (0.1, MutationType.ADD_NODE),
            (0.4, MutationType.ADD_NODE),
            (0.6, MutationType.ADD_LINK),
            (0.85, MutationType.DELETE_LINK),
            (0.95, MutationType.DELETE_NODE),
        ],
    )
    def test_ladder(self, draw, expected):
        engine = EvolutionEngine(small_config(), evaluate_xor, rng=FixedRandom(draw))
        agent = Agent(engine.new_network())
        assert engine.mutate_topology(agent) == expected
        agent.network.verify_connectivity()

    def test_add_node_grows_network(self):
        engine = EvolutionEngine(small_config(), evaluate_xor, rng=FixedRandom(0.1))
        agent = Agent(engine.new_network())
        engine.mutate_topology(agent)
        assert len(agent.network.hidden_nodes) == 1

    def test_delete_link_soft_deletes(self):
        engine = EvolutionEngine(small_config(), evaluate_xor, rng=FixedRandom(0.85))
        agent = Agent(engine.new_network())
        links = agent.network.link_count
        engine.mutate_topology(agent)
        assert agent.network.link_count == links
        assert sum(not link.enabled for link in agent.network.links.values()) == 1


class TestRun:
    """End to end runs of the evolution engine."""

    def test_evolution_beats_initial_pool(self):
        config = small_config(desired_fitness=2.0, max_rounds=10, seed=11)
        start = initial_pool_best(config)
        result = EvolutionEngine(config, evaluate_xor).run()

        assert result.rounds == 10
        assert result.best_fitness > start
        assert evaluate_xor(result.best_agent) == pytest.approx(result.best_fitness)

    def test_reaches_target_out_of_initial_reach(self):
        start = initial_pool_best(small_config(seed=11))
        config = small_config(desired_fitness=start + 0.15, max_rounds=300, seed=11)
        result = EvolutionEngine(config, evaluate_xor).run()

        assert result.reached
        assert result.rounds > 1
        assert result.best_fitness >= start + 0.15
        assert result.best_agent.fitness == result.best_fitness
        assert evaluate_xor(result.best_agent) == pytest.approx(result.best_fitness)

        again = EvolutionEngine(config, evaluate_xor).run()
        assert (again.rounds, again.best_fitness) == (result.rounds, result.best_fitness)

    def test_stops_at_max_rounds(self):
        config = small_config(desired_fitness=2.0, max_rounds=3, seed=3)
        result = EvolutionEngine(config, evaluate_xor_error).run()
        assert not result.reached
        assert result.rounds == 3
        assert result.best_fitness <= 1.0

    def test_seeded_runs_are_reproducible(self):
        def run(seed):
            engine = EvolutionEngine(small_config(desired_fitness=2.0, max_rounds=2, seed=seed), evaluate_xor)
            engine.run()
            return [agent.fitness for agent in engine.leaderboard.agents], str(engine.leaderboard.best.network)

        assert run(21) == run(21)

    def test_parallel_matches_serial(self):
        def run(num_workers):
            config = small_config(desired_fitness=2.0, max_rounds=2, seed=5, num_workers=num_workers)
            engine = EvolutionEngine(config, evaluate_xor)
            engine.run()
            return [agent.fitness for agent in engine.leaderboard.agents]

        assert run(2) == run(1)

    def test_outputs(self, tmp_path):
        config = small_config(
            desired_fitness=2.0,
            max_rounds=2,
            seed=9,
            log_path=str(tmp_path / "logs" / "evolution.log"),
            stats_path=str(tmp_path / "stats.csv"),
            leaderboard_path=str(tmp_path / "best.txt"),
        )
        result = EvolutionEngine(config, evaluate_xor).run()

        stats = pd.read_csv(config.stats_path)
        assert list(stats.columns) == STATS_HEADERS
        assert list(stats["round"]) == [1, 2]

        networks = io.load(config.leaderboard_path)
        assert len(networks) == config.best_agent_count
        assert networks[0].id == result.best_agent.network.id

        with open(config.log_path) as f:
            assert "[Checkpoint] Round: 2" in f.read()

    def test_errors_propagate(self, caplog):
        def broken(agent):
            raise ConnectivityInconsistent("broken network")

        engine = EvolutionEngine(small_config(max_rounds=1), broken, rng=random.Random(0))
        with pytest.raises(ConnectivityInconsistent):
            engine.run()
        assert "[Evolution Error]" in caplog.text

    def test_console_logging_without_log_file(self):
        config = small_config(desired_fitness=2.0, max_rounds=1, seed=1)
        EvolutionEngine(config, evaluate_xor).run()

        handlers = logging.getLogger(LOGGER_NAME).handlers
        console = [h for h in handlers if type(h) is logging.StreamHandler]
        assert len(console) == 1
        assert console[0].level == logging.INFO
        assert not any(isinstance(h, logging.FileHandler) for h in handlers)

    def test_workers_need_a_picklable_fitness_function(self):
        config = small_config(desired_fitness=2.0, max_rounds=1, seed=1, num_workers=2)
        engine = EvolutionEngine(config, lambda agent: 0.0)
        with pytest.raises(ValueError, match="picklable"):
            engine.run()
        assert engine.round == 0
