"""Exceptions raised by the battle resolver and rating engine."""


class CardArenaError(Exception):
    """Base class for all CardArena errors."""


class InvalidRosterError(CardArenaError, ValueError):
    """A roster is missing, empty, not a sequence, or holds an invalid unit."""


class InvalidRatingInputError(CardArenaError, ValueError):
    """A rating record or winner tag could not be interpreted."""


class BattleInvariantError(CardArenaError, RuntimeError):
    """An internal invariant was broken while resolving a battle.

    This indicates a bug in the resolver, never bad caller input.
    """
