from credscore.engine.scoring import ScoreEngine

__all__ = ["ScoreEngine"]
