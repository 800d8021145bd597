"""In-domain log selection.

`LogMatcher` fixes, once, which logs belong to this system: an address
allow-list (empty means any address) and a set of topic0 event signatures.
It builds provider-side eth_getLogs filters and re-validates every log a
provider returns, since providers may ignore or partially apply filters.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any, TypeVar

from logsieve.abi_events import resolve_topic0s
from logsieve.core.exceptions import ConfigurationError
from logsieve.core.interfaces import IAbiLookup
from logsieve.core.models import parse_address, parse_topic0

L = TypeVar("L")


def _field(log: Any, name: str) -> Any:
    if isinstance(log, Mapping):
        return log.get(name)
    return getattr(log, name, None)


class LogMatcher:
    """Address allow-list + topic0 set, immutable after construction."""

    def __init__(self, topic0s: Iterable[str], addresses: Iterable[str] = ()) -> None:
        try:
            ordered: list[str] = []
            for t in topic0s:
                t0 = parse_topic0(t)
                if t0 not in ordered:
                    ordered.append(t0)
            allowed = frozenset(parse_address(a) for a in addresses if a and a.strip())
        except ValueError as e:
            raise ConfigurationError(str(e)) from e
        if not ordered:
            raise ConfigurationError("LogMatcher needs at least one event signature")
        self._topic0s: tuple[str, ...] = tuple(ordered)
        self._topic_set = frozenset(ordered)
        self._addresses: frozenset[str] = allowed

    @classmethod
    def from_abi(
        cls,
        lookup: IAbiLookup,
        event_names: Sequence[str],
        addresses: Iterable[str] = (),
    ) -> LogMatcher:
        """Resolve `event_names` through `lookup`; any unresolved name is fatal."""
        return cls(resolve_topic0s(lookup, event_names), addresses)

    @property
    def topic0s(self) -> tuple[str, ...]:
        return self._topic0s

    @property
    def addresses(self) -> frozenset[str]:
        return self._addresses

    def build_filter_params(self, from_block: int, to_block: int) -> dict[str, Any]:
        """eth_getLogs filter; `address` is omitted when any address is accepted."""
        params: dict[str, Any] = {
            "fromBlock": from_block,
            "toBlock": to_block,
            "topics": [list(self._topic0s)],
        }
        if self._addresses:
            params["address"] = sorted(self._addresses)
        return params

    def accept(self, log: Any) -> bool:
        """True iff the log's address is allowed and its topic0 is a known signature."""
        if self._addresses:
            address = str(_field(log, "address") or "").lower()
            if address not in self._addresses:
                return False
        topics = _field(log, "topics")
        if not topics:
            return False
        topic0 = topics[0]
        return topic0 is not None and str(topic0).lower() in self._topic_set

    def select(self, logs: Iterable[L]) -> list[L]:
        """Accepted logs, in input order."""
        return [log for log in logs if self.accept(log)]
