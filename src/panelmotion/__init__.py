"""panelmotion: turn comic pages into animated storyboard scenes."""

__version__ = "0.1.0"
