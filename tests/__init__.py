"""Test package for the N-back trainer engine.

The tests cover match-pattern generation, trial synthesis, scoring, level
adaptation and the headless session driver.  Randomness is seeded and time
comes from a fake clock, so nothing depends on wall time.  To run these
tests, execute ``pytest`` from the project root.
"""
