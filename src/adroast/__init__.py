"""adroast -- Live, snarky commentary on whatever ad is on screen.

This package samples a live visual feed at a fixed cadence, sends each
frame to a vision-capable language model together with a rolling summary
of what it has seen so far, and turns the structured replies into a
segmented commentary stream: one record per ad, and a steady trickle of
readable on-screen bubbles.
"""

__version__ = "0.1.0"
