from logsieve.scan.fetch import fetch_matching_logs, is_range_limited, iter_logs_adaptive

__all__ = [
    "fetch_matching_logs",
    "is_range_limited",
    "iter_logs_adaptive",
]
