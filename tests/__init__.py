"""
Tests Package.

This package contains test suites for the walkthrough engine, including unit
tests for the registry, store, animation chains and geometry helpers, and
integration tests for navigation, autoplay, the YAML compiler, the live API
and the CLI. Timing is made deterministic with `VirtualScheduler`.
"""

# Tests Package
