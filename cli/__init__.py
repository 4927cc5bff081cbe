"""Command line tools for backpropnets."""
