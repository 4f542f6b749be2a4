# -*- coding: utf-8 -*-
"""
Emission factor import: file reading, row validation, duplicate
detection, duplicate policies and the import orchestrator.
"""

from ghgengine.factor_import.csv_reader import HEADER_SYNONYMS, FactorFileReader, ParsedFactorFile
from ghgengine.factor_import.duplicate_resolver import DuplicateResolver
from ghgengine.factor_import.models import (
    DuplicateAction,
    DuplicateMatch,
    EmissionFactorData,
    EmissionFactorRecord,
    FactorOrigin,
    ImportOutcome,
    ImportReport,
    ImportRow,
    ImportStatus,
    MatchType,
    RowValidationResult,
)
from ghgengine.factor_import.orchestrator import FactorImportOrchestrator
from ghgengine.factor_import.policies import (
    CallbackPolicy,
    DuplicatePolicy,
    KeepBothPolicy,
    ReplacePolicy,
    SkipPolicy,
    resolve_policy,
)
from ghgengine.factor_import.row_validator import RowValidator, parse_number
from ghgengine.factor_import.seeding import SeedSummary, seed_catalog_factors
from ghgengine.factor_import.similarity import levenshtein_distance, similarity

__all__ = [
    "HEADER_SYNONYMS",
    "FactorFileReader",
    "ParsedFactorFile",
    "DuplicateResolver",
    "DuplicateAction",
    "DuplicateMatch",
    "EmissionFactorData",
    "EmissionFactorRecord",
    "FactorOrigin",
    "ImportOutcome",
    "ImportReport",
    "ImportRow",
    "ImportStatus",
    "MatchType",
    "RowValidationResult",
    "FactorImportOrchestrator",
    "CallbackPolicy",
    "DuplicatePolicy",
    "KeepBothPolicy",
    "ReplacePolicy",
    "SkipPolicy",
    "resolve_policy",
    "RowValidator",
    "parse_number",
    "SeedSummary",
    "seed_catalog_factors",
    "levenshtein_distance",
    "similarity",
]
