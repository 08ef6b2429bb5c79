"""Next-best-view planning loop for autonomous 3D reconstruction."""

__version__ = "0.1.0"
