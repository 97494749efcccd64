"""Decoders for Subaru, Suzuki and VW key fob pulse trains, with capture history and a radio state model."""

__version__ = "0.1.0"
__all__ = ["base", "subaru", "suzuki", "vw", "history", "txrx"]