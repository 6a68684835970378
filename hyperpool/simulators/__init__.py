"""Randomized trade simulation"""
from .config import Config
from .simulators import SimulationRecord, Simulator
