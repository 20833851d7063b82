"""Build RecordNode trees from LRG XML documents."""

from pathlib import Path
from typing import Union

import structlog
from lxml import etree

from lrg_sync.errors import ConfigurationError
from lrg_sync.record.tree import RecordNode

logger = structlog.get_logger()


def _to_node(element) -> RecordNode:
    children = tuple(
        _to_node(child) for child in element
        if isinstance(child.tag, str)  # skip comments and processing instructions
    )
    return RecordNode(
        name=etree.QName(element).localname,
        attributes=dict(element.attrib),
        text=(element.text or "").strip(),
        children=children,
    )


def parse_record(source: Union[Path, str, bytes]) -> RecordNode:
    """Parse an LRG XML document into an immutable tree.

    Args:
        source: Path to an XML file, or the document itself as bytes

    Returns:
        Root RecordNode (the <lrg> element)

    Raises:
        ConfigurationError: If the file is missing or is not well-formed XML
    """
    parser = etree.XMLParser(remove_blank_text=True, resolve_entities=False)
    try:
        if isinstance(source, bytes):
            root = etree.fromstring(source, parser=parser)
        else:
            path = Path(source)
            if not path.exists():
                raise ConfigurationError(f"Input file {path} does not exist")
            root = etree.parse(str(path), parser=parser).getroot()
    except etree.XMLSyntaxError as e:
        raise ConfigurationError(f"Could not parse LRG XML: {e}") from e

    node = _to_node(root)
    logger.debug("record_parsed", root=node.name, children=len(node.children))
    return node
