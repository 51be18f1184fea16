from poolneat import EvolutionEngine, ExperimentConfig
from poolneat.evaluate import evaluate_xor

if __name__ == "__main__":
    config = ExperimentConfig(
        num_inputs=2,
        num_outputs=1,
        log_path="out/evolution.log",
        stats_path="out/stats.csv",
        leaderboard_path="out/best_networks.txt",
    )
    evolution_engine = EvolutionEngine(config, evaluate_xor)
    result = evolution_engine.run()
    print(result.best_agent.network)
