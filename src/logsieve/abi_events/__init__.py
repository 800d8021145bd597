"""ABI event lookup: event name → topic0.

Supplies the log matcher with event signatures from ABI JSON (an already
parsed list of entries, or a `Path` to a JSON file holding either a bare ABI
list or a build artifact with an `abi` key).
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any, Literal

from eth_utils.abi import event_signature_to_log_topic
from pydantic import BaseModel

from logsieve.core.exceptions import ConfigurationError
from logsieve.core.interfaces import IAbiLookup


class AbiInput(BaseModel):
    indexed: bool = False
    internalType: str | None = None
    name: str = ""
    type: str
    components: list[AbiInput] | None = None


AbiInput.model_rebuild()


class AbiEvent(BaseModel):
    anonymous: bool = False
    inputs: Sequence[AbiInput]
    name: str
    type: Literal["event"]


def get_canonical_type(event_input: AbiInput) -> str:
    """Canonical ABI type; tuples expand to `(t1,t2,...)` keeping array suffixes."""
    if event_input.type.startswith("tuple"):
        inner = ",".join(get_canonical_type(c) for c in event_input.components or [])
        return f"({inner}){event_input.type[len('tuple'):]}"
    return event_input.type


def get_event_signature(event: AbiEvent) -> str:
    return f"{event.name}({','.join(get_canonical_type(event_input) for event_input in event.inputs)})"


def get_event_topic0(event: AbiEvent) -> str:
    return "0x" + event_signature_to_log_topic(get_event_signature(event)).hex()


AbiJson = Iterable[dict[str, Any]]
AbiSpec = AbiJson | Path


def _load_abi(abi: AbiSpec) -> AbiJson:
    if isinstance(abi, Path):
        payload = json.loads(abi.read_text())
        if isinstance(payload, dict):
            if "abi" not in payload:
                raise ConfigurationError(f"ABI payload missing in {abi}")
            return payload["abi"]
        return payload
    return abi


def get_events_from_abi(abi: AbiSpec) -> dict[str, AbiEvent]:
    abi = _load_abi(abi)
    return {entry["name"]: AbiEvent.model_validate(entry) for entry in abi if entry.get("type") == "event"}


class AbiEventLookup(IAbiLookup):
    """In-memory `IAbiLookup` built from one or more ABIs."""

    def __init__(self, events: Iterable[AbiEvent]) -> None:
        self._topics: dict[str, str] = {event.name: get_event_topic0(event) for event in events}

    @classmethod
    def from_abis(cls, *abis: AbiSpec) -> AbiEventLookup:
        events: list[AbiEvent] = []
        for abi in abis:
            events.extend(get_events_from_abi(abi).values())
        return cls(events)

    def topic0(self, event_name: str) -> str | None:
        return self._topics.get(event_name)

    def names(self) -> list[str]:
        return sorted(self._topics)


def resolve_topic0s(lookup: IAbiLookup, event_names: Sequence[str]) -> list[str]:
    """Topic0 for every name, in order. Fails listing all names that did not resolve."""
    topics: list[str] = []
    missing: list[str] = []
    for name in event_names:
        t0 = lookup.topic0(name)
        if t0 is None:
            missing.append(name)
        else:
            topics.append(t0.lower())
    if missing:
        raise ConfigurationError(f"missing ABI fragment for {', '.join(missing)}")
    return topics
