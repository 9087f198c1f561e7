from .collector import COLLECTORS, Collector

__all__ = ["COLLECTORS", "Collector"]
