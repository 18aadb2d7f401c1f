"""
Performance diagnostics extracted from page-load traces and JavaScript bundles.

Two independent pipelines:
- layout_shift + resolver: which elements shifted the most, described via the live DOM
- attribution + duplication + savings: which shipped bytes duplicate code shipped elsewhere
"""

from .attribution import BundleRecord, SourceBytes, attribute, attribute_bundle, attribute_bundles
from .config import AnalysisConfig
from .dom_session import CdpDomSession, DomSession
from .duplication import DuplicateGroup, DuplicationResult, canonical_source, detect
from .errors import AnalysisError, CdpError, InputError, InvalidSourceMapError, MissingTraceDataError, ResolutionError
from .geometry import Rect, area, normalize, overlap_area
from .layout_shift import LayoutShiftRecord, contributions, rank, shift_records
from .resolver import METRIC_CLS, METRIC_LCP, NodeResolver, TraceElement, group_by_metric
from .savings import NetworkModel, ThroughputNetworkModel, estimate
from .sourcemap import Mapping, SourceMap, decode_source_map

__all__ = [
    "METRIC_CLS",
    "METRIC_LCP",
    "AnalysisConfig",
    "AnalysisError",
    "BundleRecord",
    "CdpDomSession",
    "CdpError",
    "DomSession",
    "DuplicateGroup",
    "DuplicationResult",
    "InputError",
    "InvalidSourceMapError",
    "LayoutShiftRecord",
    "Mapping",
    "MissingTraceDataError",
    "NetworkModel",
    "NodeResolver",
    "Rect",
    "ResolutionError",
    "SourceBytes",
    "SourceMap",
    "ThroughputNetworkModel",
    "TraceElement",
    "area",
    "attribute",
    "attribute_bundle",
    "attribute_bundles",
    "canonical_source",
    "contributions",
    "decode_source_map",
    "detect",
    "estimate",
    "group_by_metric",
    "normalize",
    "overlap_area",
    "rank",
    "shift_records",
]
