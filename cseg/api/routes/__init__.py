from cseg.api.routes import game

__all__ = ["game"]
