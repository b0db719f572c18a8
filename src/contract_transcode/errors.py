"""Exceptions raised by the transcoder."""

from __future__ import annotations

from typing import Any


class TranscodeError(Exception):
    """Base class for all transcoder errors."""


# ---- Registry construction ----


class RegistryError(TranscodeError):
    """The type registry could not be built or queried."""


class TypeNotFound(RegistryError, LookupError):
    """A type id is not present in the registry."""

    def __init__(self, type_id: int) -> None:
        self.type_id = type_id
        super().__init__(f"Type {type_id} not found in registry")


class DanglingTypeReference(RegistryError):
    """A type definition references a type id that does not exist."""

    def __init__(self, type_id: int, referenced_id: int) -> None:
        self.type_id = type_id
        self.referenced_id = referenced_id
        super().__init__(f"Type {type_id} references missing type {referenced_id}")


class MetadataError(RegistryError, ValueError):
    """The metadata document has a shape the loader does not understand."""


# ---- Encoding ----


class EncodeError(TranscodeError, ValueError):
    """A value could not be encoded against its target type."""


class ArityMismatch(EncodeError):
    """The number of fields/elements/arguments differs from the declared count."""

    def __init__(self, expected: int, actual: int, context: str) -> None:
        self.expected = expected
        self.actual = actual
        self.context = context
        super().__init__(f"{context}: expected {expected} values, got {actual}")


class InvalidVariantCase(EncodeError):
    """A variant value names a case absent from the variant type."""

    def __init__(self, type_name: str, case: str, discriminant: int | None = None) -> None:
        self.type_name = type_name
        self.case = case
        self.discriminant = discriminant
        super().__init__(f"'{case}' is not a case of {type_name}")


class TypeMismatch(EncodeError):
    """A value's shape does not fit the target type."""

    def __init__(self, type_name: str, value: Any, reason: str | None = None) -> None:
        self.type_name = type_name
        self.value = value
        message = f"Cannot encode {type(value).__name__} as {type_name}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


# ---- Decoding ----


class DecodeError(TranscodeError, ValueError):
    """Bytes could not be decoded against the expected type."""


class UnexpectedEndOfInput(DecodeError):
    """The input ran out in the middle of a value."""

    def __init__(self, offset: int, needed: int, available: int) -> None:
        self.offset = offset
        self.needed = needed
        self.available = available
        super().__init__(
            f"Unexpected end of input at offset {offset}: "
            f"need {needed} bytes, {available} available"
        )


class TrailingBytes(DecodeError):
    """Bytes remain after the expected value was decoded."""

    def __init__(self, consumed: int, total: int) -> None:
        self.consumed = consumed
        self.total = total
        super().__init__(f"{total - consumed} trailing bytes after offset {consumed}")


class InvalidDiscriminant(DecodeError):
    """A variant discriminant byte matches no declared case."""

    def __init__(self, type_name: str, discriminant: int, offset: int) -> None:
        self.type_name = type_name
        self.discriminant = discriminant
        self.offset = offset
        super().__init__(
            f"Invalid discriminant {discriminant} for {type_name} at offset {offset}"
        )


class InvalidEncoding(DecodeError):
    """Bytes are structurally present but not a valid encoding of the type."""

    def __init__(self, type_name: str, offset: int, reason: str) -> None:
        self.type_name = type_name
        self.offset = offset
        self.reason = reason
        super().__init__(f"Invalid {type_name} at offset {offset}: {reason}")


class NestingTooDeep(DecodeError):
    """The encoded value nests deeper than the decoder allows."""

    def __init__(self, type_name: str, offset: int, limit: int) -> None:
        self.type_name = type_name
        self.offset = offset
        self.limit = limit
        super().__init__(f"{type_name} at offset {offset} is nested more than {limit} levels deep")


class UnknownEventVariant(DecodeError):
    """The leading event byte matches no event of the contract."""

    def __init__(self, index: int) -> None:
        self.index = index
        super().__init__(f"No event with index {index}")


class UnknownSelector(DecodeError):
    """Call data starts with a selector no constructor/message declares."""

    def __init__(self, selector: bytes) -> None:
        self.selector = selector
        super().__init__(f"No constructor or message with selector 0x{selector.hex()}")


# ---- Literal parsing ----


class LiteralParseError(TranscodeError, ValueError):
    """Text or JSON input could not be interpreted as the expected type."""

    def __init__(
        self,
        text: str,
        expected: str,
        span: tuple[int, int] | None = None,
        reason: str | None = None,
    ) -> None:
        self.text = text
        self.expected = expected
        self.span = span
        self.reason = reason
        message = f"Cannot parse '{text}' as {expected}"
        if span is not None:
            message = f"{message} (at {span[0]}..{span[1]})"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class UnknownVariantCase(LiteralParseError):
    """A variant literal names a case the variant type does not have."""

    def __init__(
        self,
        text: str,
        expected: str,
        case: str,
        known: list[str],
        span: tuple[int, int] | None = None,
    ) -> None:
        self.case = case
        self.known = known
        super().__init__(
            text, expected, span, f"unknown case '{case}', expected one of {known}"
        )


class LengthMismatch(LiteralParseError):
    """An array literal has the wrong number of elements."""

    def __init__(
        self,
        text: str,
        expected: str,
        expected_length: int,
        actual_length: int,
        span: tuple[int, int] | None = None,
    ) -> None:
        self.expected_length = expected_length
        self.actual_length = actual_length
        super().__init__(
            text, expected, span,
            f"expected {expected_length} elements, got {actual_length}",
        )


# ---- Call resolution ----


class CallError(TranscodeError):
    """A constructor or message call could not be resolved."""


class CallNotFound(CallError, LookupError):
    """No constructor or message has the requested name."""

    def __init__(self, name: str, available: list[str]) -> None:
        self.name = name
        self.available = available
        super().__init__(f"No constructor or message named '{name}'; available: {available}")


class AmbiguousCall(CallError):
    """More than one overload matches the supplied arguments."""

    def __init__(self, name: str, candidates: list[bytes]) -> None:
        self.name = name
        self.candidates = candidates
        selectors = ", ".join(f"0x{s.hex()}" for s in candidates)
        super().__init__(f"Call '{name}' is ambiguous between selectors {selectors}")


class UnknownArgument(CallError, ValueError):
    """A named argument does not match any declared parameter."""

    def __init__(self, call: str, argument: str, parameters: list[str]) -> None:
        self.call = call
        self.argument = argument
        self.parameters = parameters
        super().__init__(f"'{call}' has no parameter '{argument}'; parameters: {parameters}")


class DuplicateSelector(CallError, ValueError):
    """Two constructors (or two messages) share a selector."""

    def __init__(self, selector: bytes, first: str, second: str) -> None:
        self.selector = selector
        super().__init__(f"Selector 0x{selector.hex()} used by both '{first}' and '{second}'")


class DuplicateEventIndex(CallError, ValueError):
    """Two events share an index."""

    def __init__(self, index: int, first: str, second: str) -> None:
        self.index = index
        super().__init__(f"Event index {index} used by both '{first}' and '{second}'")


class DuplicateArgument(CallError, ValueError):
    """An argument is supplied both by position and by name."""

    def __init__(self, call: str, argument: str) -> None:
        self.call = call
        self.argument = argument
        super().__init__(f"'{call}' got multiple values for parameter '{argument}'")
