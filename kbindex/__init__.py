"""kbindex -- incremental embedding index over a knowledge-base folder."""

__version__ = "0.1.0"
