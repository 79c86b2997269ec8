"""MeshCore Scoreboard Bot - league scoreboards over a MeshCore mesh network"""

__version__ = "1.0.0"
