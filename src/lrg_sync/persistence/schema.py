"""Core database schema.

A subset of the Ensembl core schema, enough to hold LRG mappings and
annotation. Keyed tables draw their primary keys from DuckDB sequences so
keys only ever grow and are never handed out twice.
"""


# attrib_type codes attached to genes overlapping a record; the value is the record id
OVERLAP_ATTRIB_CODES = ("GeneInLRG", "GeneOverlapLRG")

CORE_SCHEMA = """
CREATE SEQUENCE IF NOT EXISTS seq_coord_system_id START 1;
CREATE SEQUENCE IF NOT EXISTS seq_seq_region_id START 1;
CREATE SEQUENCE IF NOT EXISTS seq_meta_id START 1;
CREATE SEQUENCE IF NOT EXISTS seq_analysis_id START 1;
CREATE SEQUENCE IF NOT EXISTS seq_attrib_type_id START 1;
CREATE SEQUENCE IF NOT EXISTS seq_gene_id START 1;
CREATE SEQUENCE IF NOT EXISTS seq_transcript_id START 1;
CREATE SEQUENCE IF NOT EXISTS seq_exon_id START 1;
CREATE SEQUENCE IF NOT EXISTS seq_translation_id START 1;
CREATE SEQUENCE IF NOT EXISTS seq_external_db_id START 1;
CREATE SEQUENCE IF NOT EXISTS seq_xref_id START 1;
CREATE SEQUENCE IF NOT EXISTS seq_object_xref_id START 1;

CREATE TABLE IF NOT EXISTS coord_system (
    coord_system_id INTEGER PRIMARY KEY DEFAULT nextval('seq_coord_system_id'),
    name VARCHAR NOT NULL,
    version VARCHAR,
    rank INTEGER,
    attrib VARCHAR
);

CREATE TABLE IF NOT EXISTS seq_region (
    seq_region_id INTEGER PRIMARY KEY DEFAULT nextval('seq_seq_region_id'),
    name VARCHAR NOT NULL,
    coord_system_id INTEGER NOT NULL,
    length INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS dna (
    seq_region_id INTEGER PRIMARY KEY,
    sequence VARCHAR NOT NULL
);

CREATE TABLE IF NOT EXISTS assembly (
    asm_seq_region_id INTEGER NOT NULL,
    cmp_seq_region_id INTEGER NOT NULL,
    asm_start INTEGER NOT NULL,
    asm_end INTEGER NOT NULL,
    cmp_start INTEGER NOT NULL,
    cmp_end INTEGER NOT NULL,
    ori TINYINT NOT NULL
);

CREATE TABLE IF NOT EXISTS meta (
    meta_id INTEGER PRIMARY KEY DEFAULT nextval('seq_meta_id'),
    species_id INTEGER DEFAULT 1,
    meta_key VARCHAR NOT NULL,
    meta_value VARCHAR
);

CREATE TABLE IF NOT EXISTS analysis (
    analysis_id INTEGER PRIMARY KEY DEFAULT nextval('seq_analysis_id'),
    created TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    logic_name VARCHAR NOT NULL
);

CREATE TABLE IF NOT EXISTS analysis_description (
    analysis_id INTEGER PRIMARY KEY,
    description VARCHAR,
    display_label VARCHAR,
    displayable BOOLEAN DEFAULT TRUE,
    web_data VARCHAR
);

CREATE TABLE IF NOT EXISTS attrib_type (
    attrib_type_id INTEGER PRIMARY KEY DEFAULT nextval('seq_attrib_type_id'),
    code VARCHAR NOT NULL,
    name VARCHAR,
    description VARCHAR
);

CREATE TABLE IF NOT EXISTS gene (
    gene_id INTEGER PRIMARY KEY DEFAULT nextval('seq_gene_id'),
    biotype VARCHAR,
    analysis_id INTEGER,
    seq_region_id INTEGER NOT NULL,
    seq_region_start INTEGER NOT NULL,
    seq_region_end INTEGER NOT NULL,
    seq_region_strand TINYINT NOT NULL,
    display_xref_id INTEGER,
    description VARCHAR,
    stable_id VARCHAR
);

CREATE TABLE IF NOT EXISTS gene_attrib (
    gene_id INTEGER NOT NULL,
    attrib_type_id INTEGER NOT NULL,
    value VARCHAR
);

CREATE TABLE IF NOT EXISTS transcript (
    transcript_id INTEGER PRIMARY KEY DEFAULT nextval('seq_transcript_id'),
    gene_id INTEGER,
    analysis_id INTEGER,
    seq_region_id INTEGER NOT NULL,
    seq_region_start INTEGER NOT NULL,
    seq_region_end INTEGER NOT NULL,
    seq_region_strand TINYINT NOT NULL,
    biotype VARCHAR,
    stable_id VARCHAR
);

CREATE TABLE IF NOT EXISTS exon (
    exon_id INTEGER PRIMARY KEY DEFAULT nextval('seq_exon_id'),
    seq_region_id INTEGER NOT NULL,
    seq_region_start INTEGER NOT NULL,
    seq_region_end INTEGER NOT NULL,
    seq_region_strand TINYINT NOT NULL,
    phase TINYINT DEFAULT -1,
    end_phase TINYINT DEFAULT -1,
    stable_id VARCHAR
);

CREATE TABLE IF NOT EXISTS exon_transcript (
    exon_id INTEGER NOT NULL,
    transcript_id INTEGER NOT NULL,
    rank INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS translation (
    translation_id INTEGER PRIMARY KEY DEFAULT nextval('seq_translation_id'),
    transcript_id INTEGER NOT NULL,
    seq_start INTEGER NOT NULL,
    start_exon_id INTEGER NOT NULL,
    seq_end INTEGER NOT NULL,
    end_exon_id INTEGER NOT NULL,
    stable_id VARCHAR
);

CREATE TABLE IF NOT EXISTS external_db (
    external_db_id INTEGER PRIMARY KEY DEFAULT nextval('seq_external_db_id'),
    db_name VARCHAR NOT NULL,
    status VARCHAR,
    priority INTEGER,
    db_display_name VARCHAR,
    db_release VARCHAR,
    dbprimary_acc_linkable BOOLEAN,
    display_label_linkable BOOLEAN,
    type VARCHAR
);

CREATE TABLE IF NOT EXISTS xref (
    xref_id INTEGER PRIMARY KEY DEFAULT nextval('seq_xref_id'),
    external_db_id INTEGER NOT NULL,
    dbprimary_acc VARCHAR NOT NULL,
    display_label VARCHAR,
    version VARCHAR DEFAULT '0',
    description VARCHAR,
    info_type VARCHAR
);

CREATE TABLE IF NOT EXISTS object_xref (
    object_xref_id INTEGER PRIMARY KEY DEFAULT nextval('seq_object_xref_id'),
    ensembl_id INTEGER NOT NULL,
    ensembl_object_type VARCHAR NOT NULL,
    xref_id INTEGER NOT NULL
);
"""
