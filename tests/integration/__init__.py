"""
Integration Tests Package for the Parkade engine

These tests wire the real facility, service, command processor and event
bus together, driven by a ManualClock so billing is deterministic.
"""
