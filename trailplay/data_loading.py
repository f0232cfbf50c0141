"""
Data Loading and Decoding for Track Analysis

This module handles loading raw GPX content and decoding it into tiered raw
point records (track points, route points, waypoints). Each record is a plain
dict of strings; numeric validation happens later in the parser.
"""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from . import constants
from .errors import InvalidFormatError

logger = logging.getLogger(__name__)

PointRecord = Dict[str, Optional[str]]

HEART_RATE_TAGS = ("hr", "heartrate")


@dataclass
class RawPointSource:
    """
    Point records grouped by source tier, in fallback order.

    The parser uses the first non-empty tier: track points, then route
    points, then waypoints.
    """

    track_points: List[PointRecord] = field(default_factory=list)
    route_points: List[PointRecord] = field(default_factory=list)
    waypoints: List[PointRecord] = field(default_factory=list)
    name: Optional[str] = None

    def tiers(self):
        return (
            ("trkpt", self.track_points),
            ("rtept", self.route_points),
            ("wpt", self.waypoints),
        )


def local_name(tag: str) -> str:
    """
    Strip the XML namespace and any prefix from a tag.

    Args:
        tag: Element tag such as "{http://www.topografix.com/GPX/1/1}trkpt".

    Returns:
        The bare lower-case name, e.g. "trkpt".
    """
    if "}" in tag:
        tag = tag.split("}", 1)[1]
    if ":" in tag:
        tag = tag.split(":", 1)[1]
    return tag.lower()


def _child_text(element: ET.Element, name: str) -> Optional[str]:
    for child in element:
        if local_name(child.tag) == name:
            return (child.text or "").strip() or None
    return None


def extract_heart_rate(element: ET.Element) -> Optional[str]:
    """
    Find a heart-rate value for a point element.

    Looks at direct ``hr``/``heartrate`` children first, then anywhere below
    ``extensions`` (e.g. ``gpxtpx:TrackPointExtension/gpxtpx:hr``).

    Returns:
        Raw text of the first heart-rate element found, or None.
    """
    for name in HEART_RATE_TAGS:
        value = _child_text(element, name)
        if value is not None:
            return value

    for child in element:
        if local_name(child.tag) != "extensions":
            continue
        for node in child.iter():
            if local_name(node.tag) in HEART_RATE_TAGS and node.text:
                return node.text.strip()
    return None


def point_record(element: ET.Element) -> PointRecord:
    """Convert a trkpt/rtept/wpt element into a raw point record."""
    return {
        "lat": element.get("lat"),
        "lon": element.get("lon"),
        "ele": _child_text(element, "ele"),
        "time": _child_text(element, "time"),
        "hr": extract_heart_rate(element),
    }


def _track_name(root: ET.Element) -> Optional[str]:
    for element in root.iter():
        if local_name(element.tag) == "trk":
            name = _child_text(element, "name")
            if name:
                return name
    for element in root.iter():
        if local_name(element.tag) == "metadata":
            name = _child_text(element, "name")
            if name:
                return name
    return None


def decode_gpx(content: str) -> RawPointSource:
    """
    Decode GPX text into tiered raw point records.

    Namespace-agnostic: GPX 1.0, 1.1 and files without a namespace decode
    the same way.

    Args:
        content: GPX document as text.

    Returns:
        RawPointSource with all three tiers filled from the document.

    Raises:
        InvalidFormatError: If the content is not well-formed XML.
    """
    try:
        root = ET.fromstring(content)
    except ET.ParseError as exc:
        raise InvalidFormatError("Invalid GPX file format") from exc

    source = RawPointSource(name=_track_name(root))
    tiers = {
        "trkpt": source.track_points,
        "rtept": source.route_points,
        "wpt": source.waypoints,
    }
    for element in root.iter():
        bucket = tiers.get(local_name(element.tag))
        if bucket is not None:
            bucket.append(point_record(element))

    logger.debug(
        "Decoded GPX: %d trkpt, %d rtept, %d wpt",
        len(source.track_points), len(source.route_points), len(source.waypoints),
    )
    return source


def load_gpx_file(file_path: Path) -> str:
    """Read a GPX file from disk as text."""
    with Path(file_path).open("r", encoding="utf-8") as file:
        return file.read()


def list_datasets(data_dir: Path = constants.DATA_DIR) -> List[Dict[str, str]]:
    """
    Discover available GPX files in the data directory.

    Returns:
        List of dictionaries with 'filename' and 'display_name' keys, sorted
        by filename. Empty if the directory does not exist.
    """
    data_dir = Path(data_dir)
    if not data_dir.exists():
        return []

    datasets = []
    for file_path in data_dir.glob("*.gpx"):
        datasets.append({
            "filename": file_path.name,
            "display_name": file_path.stem.replace("_", " ").title(),
        })

    datasets.sort(key=lambda x: x["filename"])
    return datasets
