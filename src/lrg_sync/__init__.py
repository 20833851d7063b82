"""lrg-sync: keep LRG records and a core annotation database in step."""

__version__ = "0.1.0"
