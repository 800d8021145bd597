from logsieve.matching.matcher import LogMatcher

__all__ = ["LogMatcher"]
