"""Test package for the Brain Trainer games.

Core tests drive the engines with a fake clock so timeouts, feedback pauses
and phase changes are deterministic. UI smoke tests run headlessly using
pygame's dummy video driver. Run ``pytest`` from the project root.
"""
