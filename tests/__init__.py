"""Test package for Don't Pick It!

Core tests drive the pure session functions and the engine with a fake clock
and scripted random sources. The UI smoke tests run headlessly using pygame's
dummy video driver. Run ``pytest`` from the project root.
"""
