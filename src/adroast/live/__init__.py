"""Live analysis module for adroast.

Contains the loop that drives capture, analysis, segmentation and
commentary scheduling on a fixed cadence.

Public API:
    LiveAnalysisLoop -- Central orchestrator
    LoopState -- Lifecycle states of the loop
"""

from adroast.live.loop import LiveAnalysisLoop, LoopState, build_rolling_context

__all__ = ["LiveAnalysisLoop", "LoopState", "build_rolling_context"]
