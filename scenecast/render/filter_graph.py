"""Typed FFmpeg filter graph and its serialization to -filter_complex syntax.

The synthesizer builds the graph out of `FilterNode`s (ordered input streams,
a chain of filters, output labels); turning it into text happens only here,
so quoting and escaping rules live in a single place.

FFmpeg parses a filter graph in two passes, each of which removes one level
of backslash escaping:

1. the graph parser splits filters on ``[ ] , ;`` and honours ``\\`` and ``'``
2. each filter's option parser splits ``key=value`` pairs on ``:`` and again
   honours ``\\`` and ``'``

Free text (subtitles, font paths) is therefore escaped for the option level
first and the graph level second. Expressions written by us only need the
graph level.
"""

from dataclasses import dataclass, field
from typing import Union

# Backslash must stay first in both tuples
OPTION_SPECIAL_CHARS = ("\\", "'", '"', ":")
GRAPH_SPECIAL_CHARS = ("\\", "'", "[", "]", ",", ";")


class GraphBuildError(ValueError):
    """The graph violates label wiring rules."""


def _backslash_escape(value: str, specials: tuple[str, ...]) -> str:
    for ch in specials:
        value = value.replace(ch, "\\" + ch)
    return value


def escape_option_value(value: str) -> str:
    """Escape a value for a filter's key=value option list."""
    return _backslash_escape(value, OPTION_SPECIAL_CHARS)


def escape_graph_value(value: str) -> str:
    """Escape a value so the graph parser keeps it inside one filter."""
    return _backslash_escape(value, GRAPH_SPECIAL_CHARS)


def escape_text(value: str) -> str:
    """Escape free text (e.g. drawtext's text=) for use inside -filter_complex."""
    return escape_graph_value(escape_option_value(value))


@dataclass(frozen=True)
class Text:
    """Marks an option value as free text that must be fully escaped."""

    value: str


OptionValue = Union[str, int, float, Text]


def _format_value(value: OptionValue) -> str:
    if isinstance(value, Text):
        return escape_text(value.value)
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, float):
        # Avoid exponent notation, FFmpeg expressions reject "1e-05"
        text = f"{value:.6f}".rstrip("0").rstrip(".")
        return text or "0"
    return escape_graph_value(str(value))


@dataclass
class Filter:
    """One filter with positional and named options, e.g. scale=1280:720:flags=lanczos."""

    name: str
    args: list[OptionValue] = field(default_factory=list)
    options: dict[str, OptionValue] = field(default_factory=dict)

    @classmethod
    def of(cls, name: str, *args: OptionValue, **options: OptionValue) -> "Filter":
        return cls(name=name, args=list(args), options=dict(options))

    def serialize(self) -> str:
        parts = [_format_value(a) for a in self.args]
        parts.extend(f"{key}={_format_value(value)}" for key, value in self.options.items())
        if not parts:
            return self.name
        return f"{self.name}=" + ":".join(parts)


@dataclass(frozen=True)
class InputStream:
    """A stream of a physical input, referenced as [index:kind]."""

    index: int
    kind: str  # "v" or "a"

    def __str__(self) -> str:
        return f"{self.index}:{self.kind}"


StreamRef = Union[InputStream, str]


@dataclass
class FilterNode:
    """A linear filter chain consuming `inputs` and producing `outputs`."""

    inputs: list[StreamRef]
    filters: list[Filter]
    outputs: list[str]

    def serialize(self) -> str:
        head = "".join(f"[{ref}]" for ref in self.inputs)
        chain = ",".join(f.serialize() for f in self.filters)
        tail = "".join(f"[{label}]" for label in self.outputs)
        return f"{head}{chain}{tail}"


class FilterGraph:
    """Append-only filter graph that enforces label wiring as nodes are added.

    - an output label may be produced only once
    - a label must be produced before any node consumes it
    - a produced label may be consumed only once (FFmpeg links are 1:1)
    """

    def __init__(self) -> None:
        self.nodes: list[FilterNode] = []
        self._produced: list[str] = []
        self._consumed: set[str] = set()

    def add(
        self,
        inputs: list[StreamRef],
        filters: list[Filter],
        output: str | list[str],
    ) -> FilterNode:
        outputs = [output] if isinstance(output, str) else list(output)
        if not filters:
            raise GraphBuildError("A filter node needs at least one filter")

        for ref in inputs:
            if isinstance(ref, InputStream):
                continue
            if ref not in self._produced:
                raise GraphBuildError(f"Label [{ref}] is consumed before it is produced")
            if ref in self._consumed:
                raise GraphBuildError(f"Label [{ref}] is consumed more than once")

        for label in outputs:
            if label in self._produced or outputs.count(label) > 1:
                raise GraphBuildError(f"Label [{label}] is produced more than once")

        node = FilterNode(inputs=list(inputs), filters=list(filters), outputs=outputs)
        self._consumed.update(ref for ref in inputs if isinstance(ref, str))
        self._produced.extend(outputs)
        self.nodes.append(node)
        return node

    def serialize(self) -> str:
        return ";".join(node.serialize() for node in self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)
