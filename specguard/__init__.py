"""
SpecGuard - compliance decision engine for project specifications.

Usage:
    from specguard.services.decision_engine import analyze_compliance

    verdict = await analyze_compliance(title, description)
    if verdict.blocks_generation:
        ...
"""

__version__ = "1.0.0"
