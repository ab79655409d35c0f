from .replay_position_source import ReplayPositionSource

__all__ = ["ReplayPositionSource"]
