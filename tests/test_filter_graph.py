"""
Tests for the typed filter graph and its serialization.

Test cases:
1. Two-level escaping of free text
2. Filter and node serialization
3. Label wiring rules (produce once, consume once, produce before consume)
"""

import pytest

from scenecast.render.filter_graph import (
    Filter,
    FilterGraph,
    GraphBuildError,
    InputStream,
    Text,
    escape_graph_value,
    escape_option_value,
    escape_text,
)


class TestEscaping:
    """Test FFmpeg escaping levels."""

    def test_colon_escaped_for_both_levels(self):
        """The option-level backslash is itself escaped at graph level."""
        assert escape_text("a:b") == "a\\\\:b"

    def test_single_quote_escaped(self):
        assert escape_text("it's") == "it\\\\\\'s"

    def test_double_quote_escaped(self):
        assert escape_text('say "hi"') == 'say \\\\"hi\\\\"'

    def test_graph_specials_escaped(self):
        assert escape_text("a,b;c[d]") == "a\\,b\\;c\\[d\\]"

    def test_backslash_escaped_first(self):
        assert escape_option_value("a\\b") == "a\\\\b"
        assert escape_graph_value("a\\b") == "a\\\\b"

    def test_plain_text_unchanged(self):
        assert escape_text("Hello world") == "Hello world"


class TestFilterSerialization:
    def test_positional_and_named_options(self):
        f = Filter.of("scale", 1280, 720, force_original_aspect_ratio="decrease")

        assert f.serialize() == "scale=1280:720:force_original_aspect_ratio=decrease"

    def test_filter_without_options(self):
        assert Filter.of("anull").serialize() == "anull"

    def test_float_formatting(self):
        assert Filter.of("volume", 0.3).serialize() == "volume=0.3"
        assert Filter.of("volume", 1.0).serialize() == "volume=1"
        assert Filter.of("volume", 0.00001).serialize() == "volume=0.00001"

    def test_text_option_fully_escaped(self):
        f = Filter("drawtext", options={"text": Text("10:30")})

        assert f.serialize() == "drawtext=text=10\\\\:30"

    def test_expression_commas_escaped(self):
        f = Filter.of("drawtext", enable="gte(t,1)*lt(t,2)")

        assert f.serialize() == "drawtext=enable=gte(t\\,1)*lt(t\\,2)"


class TestFilterGraph:
    """Test label wiring rules."""

    def test_serializes_nodes_in_order(self):
        graph = FilterGraph()
        graph.add([InputStream(0, "v")], [Filter.of("setsar", 1)], "v0")
        graph.add([InputStream(1, "v")], [Filter.of("setsar", 1)], "v1")
        graph.add(["v0", "v1"], [Filter.of("concat", n=2, v=1, a=0)], "video")

        assert graph.serialize() == (
            "[0:v]setsar=1[v0];[1:v]setsar=1[v1];[v0][v1]concat=n=2:v=1:a=0[video]"
        )
        assert len(graph) == 3

    def test_chain_joined_with_commas(self):
        graph = FilterGraph()
        graph.add([InputStream(0, "a")], [Filter.of("asetpts", "PTS-STARTPTS"), Filter.of("volume", 0.5)], "a0")

        assert graph.serialize() == "[0:a]asetpts=PTS-STARTPTS,volume=0.5[a0]"

    def test_consume_before_produce_rejected(self):
        graph = FilterGraph()

        with pytest.raises(GraphBuildError):
            graph.add(["missing"], [Filter.of("null")], "out")

    def test_double_consume_rejected(self):
        graph = FilterGraph()
        graph.add([InputStream(0, "v")], [Filter.of("null")], "v0")
        graph.add(["v0"], [Filter.of("null")], "v1")

        with pytest.raises(GraphBuildError):
            graph.add(["v0"], [Filter.of("null")], "v2")

    def test_double_produce_rejected(self):
        graph = FilterGraph()
        graph.add([InputStream(0, "v")], [Filter.of("null")], "v0")

        with pytest.raises(GraphBuildError):
            graph.add([InputStream(1, "v")], [Filter.of("null")], "v0")

    def test_empty_filter_chain_rejected(self):
        with pytest.raises(GraphBuildError):
            FilterGraph().add([InputStream(0, "v")], [], "v0")
