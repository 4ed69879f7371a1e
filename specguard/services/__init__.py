"""
Compliance services: retrieval, AI analysis, coaching, orchestration and audit events.
"""
