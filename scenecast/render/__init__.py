from scenecast.render.filter_graph import Filter, FilterGraph, FilterNode, GraphBuildError, escape_text
from scenecast.render.invoker import TranscodeInvoker, parse_progress_line
from scenecast.render.synthesizer import FilterGraphPlan, GraphSynthesizer, select_font_file

__all__ = [
    "Filter",
    "FilterGraph",
    "FilterNode",
    "GraphBuildError",
    "escape_text",
    "GraphSynthesizer",
    "FilterGraphPlan",
    "select_font_file",
    "TranscodeInvoker",
    "parse_progress_line",
]
