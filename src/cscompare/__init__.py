"""cscompare - Changeset Comparison Tool.

Compares two divergent Git change-sets by replaying each onto a common
target branch and diffing the resulting synthetic trees.
"""

__version__ = "1.0.0"

__all__ = []
