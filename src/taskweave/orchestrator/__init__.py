"""Workflow orchestration components.

Provides:
- Settings loaded from .env
- Structured logging
- The workflow engine (`taskweave.orchestrator.workflow`)
- A small CLI surface with bundled demo workflows
"""
