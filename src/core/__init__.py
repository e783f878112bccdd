"""
Core domain models, host environment, and invariants.

This module contains the foundational building blocks shared by the
economy and governance contracts: wei units, domain models, the revert
taxonomy, configuration, JSON Schema contracts and the simulated chain.
"""
