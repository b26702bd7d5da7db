"""Test package for the bridge trainer.

Core engines are driven with fake clocks; the UI tests run headlessly using
pygame's dummy video driver. Run ``pytest`` from the project root.
"""
