from coordinator.barrier import BarrierRound
from coordinator.coordinator import Coordinator
from coordinator.selection import SelectionState, round_budget, sample_and_pick_pivot

__all__ = [
    'BarrierRound',
    'Coordinator',
    'SelectionState',
    'round_budget',
    'sample_and_pick_pivot',
]
