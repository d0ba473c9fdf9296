"""
Agent state ownership for multi-sensor localization.

- MapState: single owner of the shared filter state, with a serialization lock
- Agent: pose view [p, q] into the map state and the run's reference origin
"""

from absloc.slam.agent import Agent, MapState

__all__ = [
    "Agent",
    "MapState",
]
