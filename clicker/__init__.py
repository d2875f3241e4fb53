"""Idle clicker game-economy core.

Rank curve, tap economy, boosts and the per-season progression controller.
Persistence, ads and rendering are collaborators passed in from outside.
"""
