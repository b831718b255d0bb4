"""
Fish On Engine
==============

Core progression, economy and catch-resolution logic for the Fish On game,
plus the balance evaluation harness.

All balancing parameters live in game_config.yaml.
"""
