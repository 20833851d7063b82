"""Typed accessors over a parsed LRG record.

The fixed annotation section holds the record sequence and transcript
structure in LRG coordinates; the updatable annotation section holds the
mappings to chromosome assemblies and the annotation sets used for xrefs.
"""

import re
from dataclasses import dataclass, field
from typing import Optional

import structlog

from lrg_sync.errors import (
    ConfigurationError,
    InvalidIdentifierError,
    MappingError,
    NoApplicableMappingError,
)
from lrg_sync.mapping.models import MappingSpan
from lrg_sync.record.tree import RecordNode

logger = structlog.get_logger()

LRG_ID_PATTERN = re.compile(r"^LRG_[0-9]+$")


def validate_lrg_id(lrg_id: str) -> str:
    """Return ``lrg_id`` unchanged or raise InvalidIdentifierError."""
    if not isinstance(lrg_id, str) or not LRG_ID_PATTERN.match(lrg_id):
        raise InvalidIdentifierError(
            f"Supplied LRG id '{lrg_id}' is not in the correct format ('LRG_NNN')"
        )
    return lrg_id


def _clean_sequence(text: Optional[str]) -> str:
    return "".join((text or "").split()).upper()


def _int_attr(
    node: RecordNode,
    *names: str,
    required: bool = False,
    lrg_id: str = "",
) -> Optional[int]:
    """First present attribute of ``names`` as an int.

    Raises:
        MappingError: If the value is not an integer, or if ``required`` and
            none of the attributes is present
    """
    for name in names:
        value = node.get(name)
        if value not in (None, ""):
            try:
                return int(value)
            except ValueError as e:
                raise MappingError(
                    f"Attribute '{name}' of <{node.name}> is not an integer: '{value}'",
                    lrg_id=lrg_id,
                ) from e
    if required:
        raise MappingError(
            f"<{node.name}> has no '{' or '.join(names)}' attribute", lrg_id=lrg_id
        )
    return None


@dataclass
class ExonAnnotation:
    """Exon in LRG coordinates (1-based, inclusive, always forward strand)."""
    start: int
    end: int
    label: Optional[str] = None

    @property
    def length(self) -> int:
        return self.end - self.start + 1


@dataclass
class TranscriptAnnotation:
    """Transcript from the fixed annotation section.

    Attributes:
        name: Fixed transcript name (e.g. "t1")
        exons: Exons ordered by position
        cdna: Declared spliced sequence ("" if absent)
        coding_start: First coding base in LRG coordinates (None for non-coding)
        coding_end: Last coding base in LRG coordinates
        translation_name: Fixed protein name (e.g. "p1")
        peptide: Declared peptide sequence ("" if absent)
    """
    name: str
    exons: list[ExonAnnotation] = field(default_factory=list)
    cdna: str = ""
    coding_start: Optional[int] = None
    coding_end: Optional[int] = None
    translation_name: Optional[str] = None
    peptide: str = ""

    @property
    def start(self) -> int:
        return min(e.start for e in self.exons)

    @property
    def end(self) -> int:
        return max(e.end for e in self.exons)

    @property
    def is_coding(self) -> bool:
        return self.coding_start is not None and self.coding_end is not None


class LRGRecord:
    """Read-only view of one LRG document."""

    def __init__(self, root: RecordNode):
        self.root = root
        if root.find("fixed_annotation") is None:
            raise ConfigurationError("Document has no fixed_annotation section")

    @property
    def lrg_id(self) -> str:
        lrg_id = self.root.find_text("fixed_annotation/id")
        if not lrg_id:
            raise ConfigurationError("Could not find fixed_annotation/id in LRG document")
        return validate_lrg_id(lrg_id)

    @property
    def sequence(self) -> str:
        return _clean_sequence(self.root.find_text("fixed_annotation/sequence"))

    def transcripts(self) -> list[TranscriptAnnotation]:
        """Transcripts of the fixed annotation section, in document order."""
        lrg_id = self.lrg_id
        transcripts = []
        for node in self.root.find_all("fixed_annotation/transcript"):
            exons = []
            for exon_node in node.find_all("exon"):
                coords = exon_node.find("lrg_coords")
                if coords is None:
                    coords = exon_node.find("coordinates", {"coord_system": lrg_id})
                if coords is None:
                    continue
                exons.append(ExonAnnotation(
                    start=_int_attr(coords, "start", required=True, lrg_id=lrg_id),
                    end=_int_attr(coords, "end", required=True, lrg_id=lrg_id),
                    label=exon_node.get("label") or exon_node.get("lrg_number"),
                ))
            exons.sort(key=lambda e: e.start)

            coding = node.find("coding_region")
            translation = coding.find("translation") if coding is not None else None
            coding_coords = None
            if coding is not None:
                coding_coords = coding.find("coordinates", {"coord_system": lrg_id}) or coding

            transcripts.append(TranscriptAnnotation(
                name=node.get("name"),
                exons=exons,
                cdna=_clean_sequence(node.find_text("cdna/sequence")),
                coding_start=_int_attr(coding_coords, "start", lrg_id=lrg_id) if coding_coords is not None else None,
                coding_end=_int_attr(coding_coords, "end", lrg_id=lrg_id) if coding_coords is not None else None,
                translation_name=translation.get("name") if translation is not None else None,
                peptide=_clean_sequence(translation.find_text("sequence")) if translation is not None else "",
            ))
        return transcripts

    def mapping_node(self, assembly: str) -> RecordNode:
        """The mapping targeting ``assembly``.

        Annotation sets are searched in document order and the first mapping
        whose ``assembly`` attribute matches wins, even if a later one is
        flagged as the most recent.

        Raises:
            NoApplicableMappingError: If no mapping targets ``assembly``
        """
        for annotation_set in self.root.find_all("updatable_annotation/annotation_set"):
            node = annotation_set.find("mapping", {"assembly": assembly})
            if node is not None:
                return node
        raise NoApplicableMappingError(
            f"Could not find the LRG->Genome mapping corresponding to the core assembly ({assembly})",
            lrg_id=self.root.find_text("fixed_annotation/id") or "",
            assembly=assembly,
        )

    def mapping_spans(self, assembly: str) -> list[MappingSpan]:
        """Mapping spans for ``assembly`` in document order."""
        lrg_id = self.lrg_id
        node = self.mapping_node(assembly)
        most_recent = node.get("most_recent") == "1"
        if not most_recent:
            logger.warning(
                "mapping_not_most_recent",
                lrg_id=lrg_id,
                assembly=assembly,
            )

        spans = []
        for span_node in node.find_all("mapping_span"):
            strand = _int_attr(span_node, "strand", lrg_id=lrg_id)
            if strand is None:
                strand = 1
            elif strand not in (1, -1):
                raise MappingError(
                    f"Mapping span strand must be 1 or -1, got {strand}", lrg_id=lrg_id
                )
            spans.append(MappingSpan(
                record_start=_int_attr(span_node, "lrg_start", required=True, lrg_id=lrg_id),
                record_end=_int_attr(span_node, "lrg_end", required=True, lrg_id=lrg_id),
                chr_start=_int_attr(
                    span_node, "start", "other_start", required=True, lrg_id=lrg_id
                ),
                chr_end=_int_attr(
                    span_node, "end", "other_end", required=True, lrg_id=lrg_id
                ),
                strand=strand,
                assembly=assembly,
                chr_name=node.get("chr_name") or node.get("other_name"),
                most_recent=most_recent,
            ))
        if not spans:
            raise NoApplicableMappingError(
                f"Mapping for assembly {assembly} declares no mapping spans",
                lrg_id=lrg_id,
                assembly=assembly,
            )
        return spans

    def gene_symbol(self, source: str = "HGNC") -> Optional[str]:
        return self.root.find_text(
            "updatable_annotation/annotation_set/lrg_gene_name", {"source": source}
        )

    def annotation_set(self, source_name: str) -> Optional[RecordNode]:
        """First annotation set whose source/name equals ``source_name``."""
        return self.root.find(
            "updatable_annotation/annotation_set",
            lambda node: node.find_text("source/name") == source_name,
        )
