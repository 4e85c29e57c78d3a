"""Turn-resolution core for a Game-Master-driven party chat.

A human GM prompts; AI characters answer in character, one after another,
each aware of what teammates already did this turn.
"""
