"""CardArena - battle simulation and rating engine for collectible-card teams."""

__version__ = "0.1.0"
