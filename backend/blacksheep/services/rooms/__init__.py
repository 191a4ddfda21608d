"""Room domain services: word assignment, round resolution, the room state
machine, the versioned room store and the results timer.

The resolver, word assignment and state machine never touch the database
session; HTTP routes and socket handlers run them inside ``store.transact``,
keeping transport concerns separated from core game mechanics.
"""
