"""SceneWeaver: scene-graph engine for branching visual-novel stories."""

__version__ = "0.1.0"
