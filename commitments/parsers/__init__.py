"""Commitments XML parser package.

Public API
----------
parse_xml         Parse a document into a ``ParsedXml`` (header + records).
read_xml_upload   Decode an uploaded file (UTF-8, BOM tolerated).
ParsedXml         Dataclass returned by ``parse_xml``.

Usage example::

    from commitments.parsers import parse_xml, read_xml_upload

    parsed = parse_xml(read_xml_upload(Path("commitments_2026-01-31.xml")))
    print(parsed.summary())
"""

from .xml_parser import ParsedXml, parse_xml, read_xml_upload

__all__: list[str] = [
    "ParsedXml",
    "parse_xml",
    "read_xml_upload",
]
