from .leaderboard import Leaderboard

__all__ = ["Leaderboard"]
