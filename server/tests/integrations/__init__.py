"""
Integration test modules

Tests for the e-signature provider adapters and the registry that wires them.
"""
