from typing import Callable, List, Tuple

from .experiment import Agent

FitnessFunction = Callable[[Agent], float]

XOR_CASES: List[Tuple[Tuple[float, float], float]] = [
    ((0.0, 0.0), 0.0),
    ((0.0, 1.0), 1.0),
    ((1.0, 0.0), 1.0),
    ((1.0, 1.0), 0.0),
]


def _xor_outputs(agent: Agent, ticks: int) -> List[List[float]]:
    # Recurrent links only see the previous tick, so every case is presented
    # several times and scored on each tick.
    network = agent.network
    network.reset_activations()
    outputs = []
    for _ in range(ticks):
        outputs.append([network.compute_activation(inputs)[0] for inputs, _ in XOR_CASES])
    return outputs


def evaluate_xor(agent: Agent, ticks: int = 3) -> float:
    """Scores an agent on XOR. Ranges from -3 to 1; 1 is a perfect XOR.

    Each case earns the distance of its output past a 0.25 / 0.75 margin, so
    partial progress still shows up in the score.
    """
    total = 0.0
    for tick_outputs in _xor_outputs(agent, ticks):
        for output, (_, expected) in zip(tick_outputs, XOR_CASES):
            if expected > 0.5:
                total += output - 0.75
            else:
                total += 0.25 - output
    return total / ticks


def evaluate_xor_error(agent: Agent, ticks: int = 3) -> float:
    """Scores an agent on XOR as 1 - mean absolute error, in [0, 1]."""
    error = 0.0
    count = 0
    for tick_outputs in _xor_outputs(agent, ticks):
        for output, (_, expected) in zip(tick_outputs, XOR_CASES):
            error += abs(expected - output)
            count += 1
    return 1.0 - error / count
