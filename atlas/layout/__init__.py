"""
Node placement for the atlas view.
"""
from .force import ForceSimulation
from .synthesizer import (
    LayoutPhase,
    LayoutResult,
    LayoutStrategy,
    LayoutSynthesizer,
    make_layout_rng,
    normalize_positions,
)

__all__ = [
    "ForceSimulation",
    "LayoutPhase",
    "LayoutResult",
    "LayoutStrategy",
    "LayoutSynthesizer",
    "make_layout_rng",
    "normalize_positions",
]
