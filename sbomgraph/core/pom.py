"""Reads the declared license of a Maven POM descriptor."""
from pathlib import Path
from xml.etree.ElementTree import Element

import structlog
from defusedxml import ElementTree
from defusedxml.common import DefusedXmlException

from sbomgraph.core.spdx import normalize_license
from sbomgraph.models.license import LicenseRecord

logger = structlog.get_logger('pom')


def _local_name(tag: str) -> str:
    return tag.rsplit('}', 1)[-1]


def _child_text(element: Element, name: str) -> str | None:
    for child in element:
        if _local_name(child.tag) == name:
            text = (child.text or '').strip()
            return text or None
    return None


def parse_pom_license(content: str | bytes) -> LicenseRecord | None:
    """Return the first declared license of a POM document, or None."""
    try:
        root = ElementTree.fromstring(content)
    except (ElementTree.ParseError, DefusedXmlException, ValueError) as e:
        logger.debug('Unparseable POM', error=str(e))
        return None

    for element in root.iter():
        if _local_name(element.tag) != 'license':
            continue
        name = _child_text(element, 'name')
        url = _child_text(element, 'url')
        spdx_id = normalize_license(name, url)
        if spdx_id is None:
            return None
        return LicenseRecord(id=spdx_id, name=name or spdx_id, url=url)

    return None


def parse_pom_file(pom_file: Path) -> LicenseRecord | None:
    if not pom_file.is_file():
        return None
    try:
        content = pom_file.read_bytes()
    except OSError as e:
        logger.debug('Unreadable POM', path=str(pom_file), error=str(e))
        return None
    return parse_pom_license(content)
