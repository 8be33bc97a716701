"""Indigo protocol tools for agents: on-chain state resolution, CDP health and unsigned transactions."""

__version__ = "0.3.0"
