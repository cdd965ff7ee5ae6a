"""Responsive image planning for ODI.

This package contains the breakpoint algorithms that decide which physical
derivatives a displayed image needs.

Public API:
    - resolve_breakpoints: Sparse per-breakpoint sizes -> breakpoint table.
    - quantize_widths: Breakpoint table -> bounded list of widths.
    - assemble_sources: Breakpoint table -> ``<source>`` clusters.
    - PicturePlanner: Runs the pipeline and materializes derivatives.
"""

from odi.responsive.breakpoints import (
    BreakPoint,
    BreakpointTable,
    ContainedMaxWidth,
    SizeExpression,
    Unit,
    parse_size_expression,
    resolve_breakpoints,
)
from odi.responsive.picture import PicturePlan, PicturePlanner, PictureSource, SrcsetEntry
from odi.responsive.quantizer import candidate_widths, quantize_widths
from odi.responsive.sources import SourceCluster, assemble_sources

__all__ = [
    "BreakPoint",
    "BreakpointTable",
    "ContainedMaxWidth",
    "PicturePlan",
    "PicturePlanner",
    "PictureSource",
    "SizeExpression",
    "SourceCluster",
    "SrcsetEntry",
    "Unit",
    "assemble_sources",
    "candidate_widths",
    "parse_size_expression",
    "quantize_widths",
    "resolve_breakpoints",
]
