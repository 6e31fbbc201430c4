import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from .models import DeviceWithPorts
from .patterns import matches_any

logger = logging.getLogger(__name__)

UNCATEGORIZED_SECTION = "Uncategorized"


@dataclass(frozen=True)
class SectionConfig:
    """A named display section and the hostname patterns that auto-assign devices to it."""

    name: str
    patterns: Sequence[str] = field(default_factory=tuple)


def assign_section(hostname: str, sections: Sequence[SectionConfig]) -> str:
    """Return the first section whose patterns match hostname, else Uncategorized."""
    for section in sections:
        if section.patterns and matches_any(hostname, section.patterns):
            return section.name
    return UNCATEGORIZED_SECTION


def section_names(sections: Sequence[SectionConfig]) -> List[str]:
    names = [s.name for s in sections]
    if UNCATEGORIZED_SECTION not in names:
        names.append(UNCATEGORIZED_SECTION)
    return names


def group_by_section(
    devices: Sequence[DeviceWithPorts],
    sections: Sequence[SectionConfig],
) -> Dict[str, List[int]]:
    """
    Map every section name (configured order, Uncategorized last) to the ids of
    its devices. Device order within a section follows the inventory order.
    """
    grouped: Dict[str, List[int]] = {name: [] for name in section_names(sections)}
    for device in devices:
        grouped[assign_section(device.hostname, sections)].append(device.device_id)

    logger.debug(
        "Grouped %s devices into sections: %s",
        len(devices),
        {name: len(ids) for name, ids in grouped.items()},
    )
    return grouped
