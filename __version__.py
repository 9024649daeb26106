# ============================================================================
# VERSION - STUDIO WORKFLOW CORE
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# ============================================================================
"""
Version information for the Studio Workflow Core.

This is the single source of truth for the application version.
Updated manually for each release.
"""
# Version format: major.minor.patch.build
# Criteria for 0.2 - chain advance + package debit end to end
__version__ = "0.1.4.0"
__version_info__ = tuple(int(x) for x in __version__.split("."))

# Build metadata
BUILD_DATE = "2026-10-19"

EPOCH = 1
CODENAME = "Studio Workflow"
