"""Shared fixtures: synthetic LRG documents and a seeded core database.

The chromosome is a fixed pseudo-random sequence of 3000 bases named "17"
on assembly GRCh38. The default record LRG_1 is chromosome 1001-2000 on
the forward strand, with one coding and one non-coding transcript.
"""

import random

import pytest
from Bio.Seq import Seq

from lrg_sync.config.schema import DatabaseConfig, SyncConfig
from lrg_sync.persistence import CoreStore
from lrg_sync.record import LRGRecord, parse_record

CHR_SEQ = "".join(random.Random(20100601).choices("ACGT", k=3000))

DEFAULT_TRANSCRIPTS = [
    {"name": "t1", "exons": [(101, 200), (301, 400)], "coding": (131, 371)},
    {"name": "t2", "exons": [(501, 650)], "coding": None},
]


def chr_slice(start: int, end: int) -> str:
    """Chromosome bases start..end (1-based, inclusive)."""
    return CHR_SEQ[start - 1:end]


def spliced(record_seq: str, exons) -> str:
    return "".join(record_seq[s - 1:e] for s, e in exons)


def coding(record_seq: str, exons, coding_start: int, coding_end: int) -> str:
    bases = []
    for s, e in exons:
        lo, hi = max(s, coding_start), min(e, coding_end)
        if lo <= hi:
            bases.append(record_seq[lo - 1:hi])
    cds = "".join(bases)
    return cds[:len(cds) - len(cds) % 3]


def _transcript_xml(lrg_id: str, record_seq: str, transcript: dict) -> str:
    exons = transcript["exons"]
    cdna = transcript.get("cdna", spliced(record_seq, exons))
    exon_xml = "".join(
        f'<exon label="{i}"><coordinates coord_system="{lrg_id}" start="{s}" end="{e}"/></exon>'
        for i, (s, e) in enumerate(exons, start=1)
    )
    coding_xml = ""
    if transcript.get("coding"):
        start, end = transcript["coding"]
        peptide = transcript.get(
            "peptide", str(Seq(coding(record_seq, exons, start, end)).translate())
        )
        protein = transcript["name"].replace("t", "p", 1)
        coding_xml = (
            f'<coding_region>'
            f'<coordinates coord_system="{lrg_id}" start="{start}" end="{end}"/>'
            f'<translation name="{protein}"><sequence>{peptide}</sequence></translation>'
            f'</coding_region>'
        )
    return (
        f'<transcript name="{transcript["name"]}">'
        f'<coordinates coord_system="{lrg_id}" start="{exons[0][0]}" end="{exons[-1][1]}"/>'
        f'<cdna><sequence>{cdna}</sequence></cdna>'
        f'{coding_xml}{exon_xml}'
        f'</transcript>'
    )


def build_lrg_xml(
    lrg_id: str = "LRG_1",
    record_seq: str | None = None,
    spans=None,
    transcripts=None,
    assembly: str = "GRCh38",
    chr_name: str = "17",
    most_recent: bool = True,
    hgnc_symbol: str = "COL1A1",
) -> bytes:
    """Render a minimal but schema-shaped LRG document."""
    if record_seq is None:
        record_seq = chr_slice(1001, 2000)
    if spans is None:
        spans = [(1, 1000, 1001, 2000, 1)]
    if transcripts is None:
        transcripts = DEFAULT_TRANSCRIPTS

    span_xml = "".join(
        f'<mapping_span lrg_start="{ls}" lrg_end="{le}" other_start="{cs}" '
        f'other_end="{ce}" strand="{strand}"/>'
        for ls, le, cs, ce, strand in spans
    )
    # wrap the sequence like real records do
    wrapped = "\n".join(record_seq[i:i + 60] for i in range(0, len(record_seq), 60))
    transcripts_xml = "".join(_transcript_xml(lrg_id, record_seq, t) for t in transcripts)
    other_start = min(s[2] for s in spans)
    other_end = max(s[3] for s in spans)

    document = f"""<?xml version="1.0" encoding="UTF-8"?>
<lrg schema_version="1.9">
  <fixed_annotation>
    <id>{lrg_id}</id>
    <!-- record sequence -->
    <sequence>
{wrapped}
    </sequence>
    {transcripts_xml}
  </fixed_annotation>
  <updatable_annotation>
    <annotation_set type="lrg">
      <source><name>LRG</name></source>
      <lrg_locus source="HGNC">{hgnc_symbol}</lrg_locus>
      <mapping coord_system="{assembly}" other_name="{chr_name}" other_start="{other_start}"
               other_end="{other_end}" assembly="{assembly}" chr_name="{chr_name}"
               most_recent="{1 if most_recent else 0}">
        {span_xml}
      </mapping>
    </annotation_set>
    <annotation_set type="ensembl">
      <source><name>Ensembl</name></source>
      <lrg_gene_name source="HGNC">{hgnc_symbol}</lrg_gene_name>
      <features>
        <gene symbol="{hgnc_symbol}" source="Ensembl">
          <db_xref source="HGNC" accession="2197"/>
          <db_xref source="Ensembl" accession="ENSG00000108821"/>
          <transcript source="Ensembl" transcript_id="ENST00000225964" fixed_id="t1">
            <protein_product source="Ensembl" accession="ENSP00000225964"/>
          </transcript>
        </gene>
      </features>
    </annotation_set>
  </updatable_annotation>
</lrg>
"""
    return document.encode()


def seed_core(store: CoreStore) -> dict:
    """Chromosome 17 with sequence plus three Ensembl genes around LRG_1."""
    store.set_meta("assembly.default", "GRCh38")
    chr_cs = store.add_coord_system("chromosome", version="GRCh38", rank=1, attrib="default_version")
    chr_id = store.add_seq_region("17", chr_cs, len(CHR_SEQ), sequence=CHR_SEQ)
    analysis_id = store.add_analysis("ensembl")

    genes = {}
    for stable_id, start, end in (
        ("ENSG00000108821", 1200, 1500),   # inside 1001-2000
        ("ENSG00000000002", 1900, 2500),   # crosses the right boundary
        ("ENSG00000000003", 2600, 2900),   # outside
    ):
        genes[stable_id] = store.insert("gene", {
            "biotype": "protein_coding",
            "analysis_id": analysis_id,
            "seq_region_id": chr_id,
            "seq_region_start": start,
            "seq_region_end": end,
            "seq_region_strand": 1,
            "stable_id": stable_id,
        }, returning="gene_id")

    transcript_id = store.insert("transcript", {
        "gene_id": genes["ENSG00000108821"],
        "analysis_id": analysis_id,
        "seq_region_id": chr_id,
        "seq_region_start": 1200,
        "seq_region_end": 1500,
        "seq_region_strand": 1,
        "biotype": "protein_coding",
        "stable_id": "ENST00000225964",
    }, returning="transcript_id")
    exon_id = store.insert("exon", {
        "seq_region_id": chr_id,
        "seq_region_start": 1200,
        "seq_region_end": 1500,
        "seq_region_strand": 1,
        "stable_id": "ENSE00000001",
    }, returning="exon_id")
    store.insert("exon_transcript", {"exon_id": exon_id, "transcript_id": transcript_id, "rank": 1})
    store.insert("translation", {
        "transcript_id": transcript_id,
        "seq_start": 1,
        "start_exon_id": exon_id,
        "seq_end": 300,
        "end_exon_id": exon_id,
        "stable_id": "ENSP00000225964",
    })
    return {"chr_id": chr_id, "genes": genes, "transcript_id": transcript_id}


@pytest.fixture
def lrg_xml():
    """Factory for LRG documents (see build_lrg_xml)."""
    return build_lrg_xml


@pytest.fixture
def lrg_record():
    """Default LRG_1 record."""
    return LRGRecord(parse_record(build_lrg_xml()))


@pytest.fixture
def store(tmp_path):
    """Empty core database."""
    core = CoreStore(tmp_path / "core.duckdb")
    yield core
    core.close()


@pytest.fixture
def core_store(store):
    """Core database seeded with chromosome 17 and Ensembl genes."""
    store.seeded = seed_core(store)
    return store


@pytest.fixture
def sync_config(tmp_path):
    """SyncConfig pointing at tmp_path."""
    return SyncConfig(
        data_dir=tmp_path / "data",
        cache_dir=tmp_path / "cache",
        database=DatabaseConfig(path=tmp_path / "core.duckdb"),
    )


@pytest.fixture
def config_file(tmp_path):
    """YAML config file pointing at tmp_path."""
    config_path = tmp_path / "test_config.yaml"
    config_path.write_text(f"""
data_dir: {tmp_path}/data
cache_dir: {tmp_path}/cache

database:
  path: {tmp_path}/core.duckdb
  transactional: true

api:
  rate_limit_per_second: 5
  max_retries: 3
  cache_ttl_seconds: 3600
  timeout_seconds: 30

lrg:
  coord_system_name: lrg
  biotype: LRG_gene
  analysis_logic_name: LRG_import
""")
    return config_path
