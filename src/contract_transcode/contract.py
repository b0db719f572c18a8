"""Contract call and event tables, and the entry points built on them."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from contract_transcode.decoding import Decoder
from contract_transcode.encoding import Encoder
from contract_transcode.errors import (
    AmbiguousCall,
    ArityMismatch,
    CallNotFound,
    DuplicateArgument,
    DuplicateEventIndex,
    DuplicateSelector,
    TrailingBytes,
    TypeNotFound,
    UnexpectedEndOfInput,
    UnknownArgument,
    UnknownEventVariant,
    UnknownSelector,
)
from contract_transcode.parsing.value_parser import ValueParser
from contract_transcode.types import TypeRegistry
from contract_transcode.value import CompositeValue, TupleValue, Value

SELECTOR_SIZE = 4


def compute_selector(label: str) -> bytes:
    """First four bytes of the BLAKE2b-256 hash of a call's label."""
    return hashlib.blake2b(label.encode("utf-8"), digest_size=32).digest()[:SELECTOR_SIZE]


@dataclass(frozen=True)
class ArgumentSpec:
    """A declared parameter of a constructor or message."""

    label: str
    type_id: int
    display_name: str | None = None


@dataclass(frozen=True)
class CallEntry:
    """A constructor or message of the contract.

    ``mutates`` and ``payable`` are carried for callers; they have no
    effect on encoding.
    """

    label: str
    selector: bytes
    args: tuple[ArgumentSpec, ...] = ()
    return_type: int | None = None
    mutates: bool = False
    payable: bool = False
    is_constructor: bool = False
    default: bool = False
    docs: tuple[str, ...] = field(default=(), compare=False)

    @property
    def arg_names(self) -> list[str]:
        return [a.label for a in self.args]


@dataclass(frozen=True)
class EventFieldSpec:
    """A field of an event; ``indexed`` fields are also published as topics."""

    label: str
    type_id: int
    indexed: bool = False
    display_name: str | None = None


@dataclass(frozen=True)
class EventEntry:
    """An event the contract can emit, identified by its leading index byte."""

    label: str
    index: int
    args: tuple[EventFieldSpec, ...] = ()
    docs: tuple[str, ...] = field(default=(), compare=False)


# A Value, literal text, or a JSON-compatible object
Argument = Any


class ContractSpec:
    """The callable interface of a contract, bound to its type registry.

    Built once from a metadata document and read-only afterwards.
    """

    def __init__(
        self,
        registry: TypeRegistry,
        constructors: Iterable[CallEntry] = (),
        messages: Iterable[CallEntry] = (),
        events: Iterable[EventEntry] = (),
        name: str | None = None,
        version: str | None = None,
    ) -> None:
        self.registry = registry
        self.constructors: tuple[CallEntry, ...] = tuple(constructors)
        self.messages: tuple[CallEntry, ...] = tuple(messages)
        self.events: tuple[EventEntry, ...] = tuple(events)
        self.name = name
        self.version = version

        self.encoder = Encoder(registry)
        self.decoder = Decoder(registry)
        self.parser = ValueParser(registry)

        self._constructors_by_selector = self._index_selectors(self.constructors)
        self._messages_by_selector = self._index_selectors(self.messages)
        self._events_by_index = self._index_events(self.events)
        self._check_types()

    @staticmethod
    def _index_selectors(entries: tuple[CallEntry, ...]) -> dict[bytes, CallEntry]:
        """Map selectors to entries, rejecting duplicates within one set."""
        by_selector: dict[bytes, CallEntry] = {}
        for entry in entries:
            existing = by_selector.get(entry.selector)
            if existing is not None:
                raise DuplicateSelector(entry.selector, existing.label, entry.label)
            by_selector[entry.selector] = entry
        return by_selector

    @staticmethod
    def _index_events(events: tuple[EventEntry, ...]) -> dict[int, EventEntry]:
        """Map event indexes to events, rejecting duplicates."""
        by_index: dict[int, EventEntry] = {}
        for event in events:
            existing = by_index.get(event.index)
            if existing is not None:
                raise DuplicateEventIndex(event.index, existing.label, event.label)
            by_index[event.index] = event
        return by_index

    def _check_types(self) -> None:
        """Every type id named by a call or event must be in the registry."""
        for entry in (*self.constructors, *self.messages):
            ids = [a.type_id for a in entry.args]
            if entry.return_type is not None:
                ids.append(entry.return_type)
            for type_id in ids:
                if type_id not in self.registry:
                    raise TypeNotFound(type_id)
        for event in self.events:
            for arg in event.args:
                if arg.type_id not in self.registry:
                    raise TypeNotFound(arg.type_id)

    # ---- Lookup ----

    def _entries(self, constructor: bool | None) -> tuple[CallEntry, ...]:
        if constructor is None:
            return self.messages + self.constructors
        return self.constructors if constructor else self.messages

    def find_calls(self, name: str, constructor: bool | None = None) -> list[CallEntry]:
        """All entries labelled ``name``.

        Trait messages are labelled ``Trait::name``; they also match on the
        bare name unless an exact label exists.
        """
        entries = self._entries(constructor)
        exact = [e for e in entries if e.label == name]
        if exact:
            return exact
        return [e for e in entries if e.label.split("::")[-1] == name]

    def get_message(self, name: str) -> CallEntry:
        """Get the single message labelled ``name``."""
        return self._select(name, self.find_calls(name, constructor=False), None)

    def get_constructor(self, name: str) -> CallEntry:
        """Get the single constructor labelled ``name``."""
        return self._select(name, self.find_calls(name, constructor=True), None)

    def get_event(self, index: int) -> EventEntry:
        event = self._events_by_index.get(index)
        if event is None:
            raise UnknownEventVariant(index)
        return event

    def _select(
        self,
        name: str,
        candidates: list[CallEntry],
        arg_count: int | None,
        kwarg_names: Iterable[str] = (),
    ) -> CallEntry:
        """Pick one entry among same-named candidates.

        Overloads are told apart by parameter count and, failing that, by
        the names of keyword arguments; anything left over is ambiguous.
        """
        if not candidates:
            available = sorted({e.label for e in (*self.messages, *self.constructors)})
            raise CallNotFound(name, available)
        if len(candidates) == 1:
            return candidates[0]
        if arg_count is not None:
            matching = [e for e in candidates if len(e.args) == arg_count]
            if not matching:
                raise ArityMismatch(
                    len(candidates[0].args), arg_count,
                    f"{name} (no overload takes {arg_count} arguments)",
                )
            kwarg_names = list(kwarg_names)
            if len(matching) > 1 and kwarg_names:
                named = [e for e in matching if set(kwarg_names) <= set(e.arg_names)]
                matching = named or matching
            candidates = matching
        if len(candidates) > 1:
            raise AmbiguousCall(name, [e.selector for e in candidates])
        return candidates[0]

    # ---- Calls ----

    def to_value(self, arg: Argument, type_id: int) -> Value:
        """Accept a value as-is; parse text as a literal and anything else as JSON."""
        if isinstance(arg, Value):
            return arg
        if isinstance(arg, str):
            return self.parser.parse(arg, type_id)
        return self.parser.parse_json(arg, type_id)

    def bind_arguments(
        self,
        entry: CallEntry,
        args: Iterable[Argument] = (),
        kwargs: Mapping[str, Argument] | None = None,
    ) -> list[Value]:
        """Match positional and named arguments to the entry's parameters."""
        args = list(args)
        kwargs = dict(kwargs or {})
        supplied = len(args) + len(kwargs)
        if supplied != len(entry.args):
            raise ArityMismatch(len(entry.args), supplied, entry.label)

        slots: list[Argument | None] = list(args) + [None] * (len(entry.args) - len(args))
        filled = [True] * len(args) + [False] * (len(entry.args) - len(args))
        names = entry.arg_names
        for key, arg in kwargs.items():
            if key not in names:
                raise UnknownArgument(entry.label, key, names)
            position = names.index(key)
            if filled[position]:
                raise DuplicateArgument(entry.label, key)
            slots[position] = arg
            filled[position] = True

        return [self.to_value(arg, spec.type_id) for arg, spec in zip(slots, entry.args)]

    def encode_call(self, entry: CallEntry, values: Iterable[Value]) -> bytes:
        """Selector followed by each argument encoded in declared order."""
        values = list(values)
        if len(values) != len(entry.args):
            raise ArityMismatch(len(entry.args), len(values), entry.label)
        parts = [entry.selector]
        for value, spec in zip(values, entry.args):
            parts.append(self.encoder.encode(value, spec.type_id))
        return b"".join(parts)

    def resolve_call(
        self,
        name: str,
        args: Iterable[Argument] = (),
        kwargs: Mapping[str, Argument] | None = None,
        constructor: bool | None = None,
    ) -> bytes:
        """Encode a call to the named constructor or message.

        Arguments may be values, literal text, or JSON-compatible objects,
        given by position or by parameter name. ``constructor`` restricts
        the lookup to constructors (True) or messages (False).
        """
        args = list(args)
        kwargs = dict(kwargs or {})
        entry = self._select(
            name, self.find_calls(name, constructor), len(args) + len(kwargs), kwargs.keys()
        )
        return self.encode_call(entry, self.bind_arguments(entry, args, kwargs))

    def decode_call(self, data: bytes, constructor: bool = False) -> tuple[CallEntry, CompositeValue]:
        """Decode call data back into its entry and named arguments."""
        data = bytes(data)
        if len(data) < SELECTOR_SIZE:
            raise UnexpectedEndOfInput(0, SELECTOR_SIZE, len(data))
        selector = data[:SELECTOR_SIZE]
        table = self._constructors_by_selector if constructor else self._messages_by_selector
        entry = table.get(selector)
        if entry is None:
            raise UnknownSelector(selector)

        fields = tuple((a.label, a.type_id) for a in entry.args)
        values, _ = self._decode_fields(data, SELECTOR_SIZE, fields)
        return entry, CompositeValue(fields=values, name=entry.label)

    def decode_return(self, name: str, data: bytes) -> Value:
        """Decode the return value of the named message."""
        entry = self.get_message(name)
        if entry.return_type is None:
            if data:
                raise TrailingBytes(0, len(data))
            return TupleValue()
        return self.decoder.decode_all(data, entry.return_type)

    # ---- Events ----

    def decode_event(self, data: bytes) -> tuple[EventEntry, CompositeValue]:
        """Decode event data: a leading index byte followed by the event's fields."""
        data = bytes(data)
        if not data:
            raise UnexpectedEndOfInput(0, 1, 0)
        event = self.get_event(data[0])
        fields = tuple((a.label, a.type_id) for a in event.args)
        values, _ = self._decode_fields(data, 1, fields)
        return event, CompositeValue(fields=values, name=event.label)

    def _decode_fields(
        self, data: bytes, offset: int, fields: tuple[tuple[str, int], ...]
    ) -> tuple[tuple[tuple[str | None, Value], ...], int]:
        values: list[tuple[str | None, Value]] = []
        for label, type_id in fields:
            value, consumed = self.decoder.decode(data, offset, type_id)
            values.append((label, value))
            offset += consumed
        if offset != len(data):
            raise TrailingBytes(offset, len(data))
        return tuple(values), offset

    # ---- Plain values ----

    def encode(self, value: Value, type_id: int) -> bytes:
        return self.encoder.encode(value, type_id)

    def decode(self, data: bytes, type_id: int) -> Value:
        return self.decoder.decode_all(data, type_id)

    def parse(self, text: str, type_id: int) -> Value:
        return self.parser.parse(text, type_id)

    def parse_json(self, obj: Any, type_id: int) -> Value:
        return self.parser.parse_json(obj, type_id)


def resolve_call(
    name: str,
    args: Iterable[Argument],
    spec: ContractSpec,
    kwargs: Mapping[str, Argument] | None = None,
) -> bytes:
    """Encode a call to the named constructor or message of ``spec``."""
    return spec.resolve_call(name, args, kwargs)


def decode_event(data: bytes, spec: ContractSpec) -> tuple[EventEntry, CompositeValue]:
    """Decode event data emitted by the contract described by ``spec``."""
    return spec.decode_event(data)
