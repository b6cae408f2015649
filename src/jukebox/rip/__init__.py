"""Rip orchestration.

The per-slot workflow, the two-drive batch scheduler and cassette
diagnostics.
"""
