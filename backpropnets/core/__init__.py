"""Core numerical primitives for backpropnets."""

from . import activations, errors, losses, network, types

__all__ = ["activations", "errors", "losses", "network", "types"]
