# ==============================================
# File: specguard/rules/catalog.py
# Description: Static rule catalog loader (knowledge base, critical
#              violation rules, auto-compliance patterns)
# ==============================================

from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from typing import Any, Dict, List, Optional, Tuple

from specguard.core.compliance_types import (
    PREDICATE_EVALUATORS,
    AutoCompliancePattern,
    ComplianceDocument,
    CriticalViolationRule,
    MatchMode,
    RequirementBundle,
    SecondaryCheck,
    Severity,
    Violation,
)

logger = logging.getLogger(__name__)

RULES_DIR = os.path.dirname(os.path.abspath(__file__))
KNOWLEDGE_BASE_PATH = os.path.join(RULES_DIR, "knowledge_base.json")
CRITICAL_VIOLATIONS_PATH = os.path.join(RULES_DIR, "critical_violations.json")
AUTO_COMPLIANCE_PATTERNS_PATH = os.path.join(RULES_DIR, "auto_compliance_patterns.json")


class CatalogError(ValueError):
    """Malformed catalog data; indicates a broken deployment"""


def _read_section(path: str, key: str) -> List[Dict[str, Any]]:
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)

    if not isinstance(raw, dict) or not isinstance(raw.get(key), list):
        raise CatalogError(f"{os.path.basename(path)} must be an object with a '{key}' list")

    logger.debug("Loaded %s entries from %s (version=%s)", len(raw[key]), path, raw.get("version"))
    return raw[key]


def _terms(values: Any, *, field_name: str) -> Tuple[str, ...]:
    if values is None:
        return ()
    if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
        raise CatalogError(f"'{field_name}' must be a list of strings")
    # Matching is done on lower-cased text
    return tuple(v.lower() for v in values)


def _severity(value: Any) -> Severity:
    try:
        return Severity(str(value).lower())
    except ValueError as e:
        raise CatalogError(f"Unknown severity: {value!r}") from e


def _match_mode(value: Any) -> MatchMode:
    try:
        return MatchMode(str(value).lower())
    except ValueError as e:
        raise CatalogError(f"Unknown match_mode: {value!r}") from e


def _violation(item: Dict[str, Any]) -> Violation:
    try:
        return Violation(
            code=str(item["code"]),
            framework=str(item["framework"]),
            title=str(item["title"]),
            description=str(item["description"]),
            severity=_severity(item["severity"]),
            source=str(item["source"]),
            coaching=str(item.get("coaching", "")),
            required_actions=tuple(str(a) for a in item.get("required_actions", [])),
            block_generation=bool(item.get("block_generation", False)),
        )
    except KeyError as e:
        raise CatalogError(f"Violation missing field {e}") from e


def _secondary_check(item: Optional[Dict[str, Any]]) -> Optional[SecondaryCheck]:
    if item is None:
        return None
    kind = item.get("kind")
    if kind not in PREDICATE_EVALUATORS:
        raise CatalogError(f"Unknown secondary check kind: {kind!r}")
    return SecondaryCheck(
        kind=kind,
        require_all=_terms(item.get("require_all"), field_name="require_all"),
        require_any=_terms(item.get("require_any"), field_name="require_any"),
        unless_any=_terms(item.get("unless_any"), field_name="unless_any"),
    )


def load_documents_from_json(path: str) -> List[ComplianceDocument]:
    documents: List[ComplianceDocument] = []
    for item in _read_section(path, "documents"):
        try:
            documents.append(
                ComplianceDocument(
                    id=str(item["id"]),
                    framework=str(item["framework"]),
                    title=str(item["title"]),
                    content=str(item["content"]),
                    severity=_severity(item["severity"]),
                    source=str(item["source"]),
                )
            )
        except KeyError as e:
            raise CatalogError(f"Document missing field {e}") from e
    return documents


def load_critical_rules_from_json(path: str) -> List[CriticalViolationRule]:
    rules: List[CriticalViolationRule] = []
    for item in _read_section(path, "rules"):
        if "violation" not in item:
            raise CatalogError("Critical violation rule without a violation record")
        rules.append(
            CriticalViolationRule(
                keywords=_terms(item.get("keywords"), field_name="keywords"),
                match_mode=_match_mode(item.get("match_mode", "any")),
                violation=_violation(item["violation"]),
                secondary_check=_secondary_check(item.get("secondary_check")),
            )
        )
    return rules


def load_patterns_from_json(path: str) -> List[AutoCompliancePattern]:
    patterns: List[AutoCompliancePattern] = []
    for item in _read_section(path, "patterns"):
        bundles = []
        for req in item.get("requirements", []):
            try:
                bundles.append(
                    RequirementBundle(
                        type=str(req["type"]),
                        title=str(req["title"]),
                        specs=tuple(str(s) for s in req["specs"]),
                        frameworks=tuple(str(f) for f in req["frameworks"]),
                    )
                )
            except KeyError as e:
                raise CatalogError(f"Requirement bundle missing field {e}") from e
        patterns.append(
            AutoCompliancePattern(
                keywords=_terms(item.get("keywords"), field_name="keywords"),
                match_mode=_match_mode(item.get("match_mode", "any")),
                requirements=tuple(bundles),
            )
        )
    return patterns


# Loaded once per process; the returned tuples are shared read-only

@lru_cache(maxsize=None)
def get_knowledge_base() -> Tuple[ComplianceDocument, ...]:
    return tuple(load_documents_from_json(KNOWLEDGE_BASE_PATH))


@lru_cache(maxsize=None)
def get_critical_rules() -> Tuple[CriticalViolationRule, ...]:
    return tuple(load_critical_rules_from_json(CRITICAL_VIOLATIONS_PATH))


@lru_cache(maxsize=None)
def get_auto_compliance_patterns() -> Tuple[AutoCompliancePattern, ...]:
    return tuple(load_patterns_from_json(AUTO_COMPLIANCE_PATTERNS_PATH))
